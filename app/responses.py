"""
ExecBoard - Response envelope.

Every API response goes through one of these constructors:

    success:  {"success": true, "data": ..., "message": ...}      200 / 201
    error:    {"error": "...", "details": ..., "timestamp": "..."}  4xx / 5xx
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: int = 200,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def created_response(data: Any = None, message: Optional[str] = None) -> JSONResponse:
    return success_response(data, message, status_code=201)


def error_response(
    error: str,
    status_code: int = 400,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "error": error,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)
