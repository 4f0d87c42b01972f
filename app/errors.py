"""
ExecBoard - Error taxonomy and exception handlers.

Routers and dependencies raise AppError subclasses; the handlers registered
by install_exception_handlers() render them through the error envelope.
Anything unexpected becomes a generic 500 that never leaks internal text.
"""
import logging
from typing import Any, Dict, Optional

import httpx
import stripe
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException

from .responses import error_response

logger = logging.getLogger("execboard.api")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


class AppError(Exception):
    """Base class for errors that are safe to show to the client."""
    status_code = 500
    default_message = GENERIC_ERROR_MESSAGE

    def __init__(
        self,
        message: Optional[str] = None,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.headers = headers
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationRequired(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden: Insufficient permissions"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    """Duplicate or out-of-order action. 400 by default; pass status_code=409 for state conflicts."""
    status_code = 400
    default_message = "Conflict"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        if status_code is not None:
            self.status_code = status_code


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many requests"


class DependencyUnavailable(AppError):
    status_code = 503
    default_message = "Service temporarily unavailable"


class UpstreamFailed(AppError):
    status_code = 502
    default_message = "Upstream service failed"


# -----------------------------------------------------------------------------
# Friendly messages for known infrastructure failures
# -----------------------------------------------------------------------------

def friendly_error(exc: Exception) -> AppError:
    """Map infrastructure exceptions to a safe AppError."""
    if isinstance(exc, OperationalError):
        return DependencyUnavailable("Database is temporarily unavailable. Please try again.")
    if isinstance(exc, stripe.StripeError):
        return UpstreamFailed("Payment processor error. Please try again.")
    if isinstance(exc, httpx.TimeoutException):
        return DependencyUnavailable("An upstream service timed out. Please try again.")
    return AppError()


def format_validation_errors(errors) -> list:
    """Turn pydantic error dicts into [{path, message}] without the body/query prefix."""
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        formatted.append({"path": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return formatted


def validation_message(details: list) -> str:
    parts = [f"{d['path']}: {d['message']}" if d["path"] else d["message"] for d in details]
    return "Validation failed: " + ", ".join(parts)


# -----------------------------------------------------------------------------
# Handlers
# -----------------------------------------------------------------------------

async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc.message, exc.status_code, details=exc.details, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = format_validation_errors(exc.errors())
    return error_response(validation_message(details), 400, details=details)


async def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(detail, exc.status_code, headers=getattr(exc, "headers", None))


async def slowapi_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return error_response("Too many requests", 429)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    mapped = friendly_error(exc)
    return error_response(mapped.message, mapped.status_code)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, slowapi_rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
