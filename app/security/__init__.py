"""Request-level security helpers: text sanitization and upload validation."""
from .sanitize import sanitize_plain_text, sanitize_optional
from .uploads import UploadValidationError, ValidatedUpload, validate_resume_upload

__all__ = [
    "sanitize_plain_text",
    "sanitize_optional",
    "UploadValidationError",
    "ValidatedUpload",
    "validate_resume_upload",
]
