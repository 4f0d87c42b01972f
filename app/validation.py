"""
Schema validation for payloads that do not arrive as a FastAPI body parameter.

Request bodies declared on a route are validated by FastAPI and reported
through the RequestValidationError handler. Query strings, multipart fields
and webhook payloads go through validate_payload so they fail with the same
400 "Validation failed: ..." envelope.
"""
from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import ValidationFailed, format_validation_errors, validation_message

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_payload(schema: Type[ModelT], data: Any) -> ModelT:
    """Parse ``data`` with ``schema`` or raise ValidationFailed listing every bad field."""
    if isinstance(data, Mapping):
        data = dict(data)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        details = format_validation_errors(exc.errors())
        raise ValidationFailed(validation_message(details), details=details) from exc
