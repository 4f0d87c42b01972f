"""
Resume upload validation.

Checks size, extension, magic bytes and the client-declared MIME type
before anything touches the disk. The client MIME type is never trusted on
its own: the file signature must agree with the extension.
"""
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("execboard.uploads")

MAX_RESUME_BYTES = 5 * 1024 * 1024

ALLOWED_EXTENSIONS = {"pdf", "doc", "docx"}

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

DEFAULT_MIME_BY_EXTENSION = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

# extension -> (signature, error label)
MAGIC_BYTES = {
    "pdf": (b"%PDF-", "PDF"),
    "doc": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "DOC"),
    "docx": (b"PK\x03\x04", "DOCX"),
}

INVALID_TYPE_MESSAGE = "Invalid file type. Please upload PDF or Word document."

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._ \-]")
_WHITESPACE = re.compile(r"\s+")


class UploadValidationError(Exception):
    """Raised when an uploaded file fails validation; the message is client-safe."""
    pass


@dataclass
class ValidatedUpload:
    data: bytes
    stored_file_name: str
    original_file_name: str
    mime_type: str
    size: int

    @property
    def extension(self) -> str:
        return extension_of(self.stored_file_name)


def sanitize_filename(name: str) -> str:
    """Drop path separators and unusual characters, collapse whitespace to underscores."""
    base = name.replace("\\", "/").split("/")[-1]
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", base).strip().lstrip(".")
    cleaned = _WHITESPACE.sub("_", cleaned)[:200]
    return cleaned or "resume"


def extension_of(name: str) -> str:
    parts = name.split(".")
    if len(parts) < 2:
        return ""
    return parts[-1].lower()


def validate_resume_upload(
    candidate_profile_id: int,
    filename: Optional[str],
    content_type: Optional[str],
    data: bytes,
) -> ValidatedUpload:
    """
    Validate an uploaded resume and compute its storage name.

    Raises:
        UploadValidationError: with the message to return to the client
    """
    size = len(data)
    if size <= 0:
        raise UploadValidationError("Empty file")
    if size > MAX_RESUME_BYTES:
        raise UploadValidationError("File size must be less than 5MB")

    original_file_name = filename or "resume"
    sanitized = sanitize_filename(original_file_name)
    ext = extension_of(sanitized)
    if ext not in ALLOWED_EXTENSIONS:
        raise UploadValidationError(INVALID_TYPE_MESSAGE)

    signature, label = MAGIC_BYTES[ext]
    if not data.startswith(signature):
        logger.info("Rejected %s upload for candidate %s: signature mismatch", label, candidate_profile_id)
        raise UploadValidationError(f"Invalid file content for {label}")

    client_mime = (content_type or "").split(";")[0].strip().lower()
    if client_mime == "application/octet-stream":
        client_mime = ""
    if client_mime and client_mime not in ALLOWED_MIME_TYPES:
        raise UploadValidationError(INVALID_TYPE_MESSAGE)

    timestamp = int(time.time() * 1000)
    return ValidatedUpload(
        data=data,
        stored_file_name=f"{candidate_profile_id}_{timestamp}_{sanitized}",
        original_file_name=original_file_name,
        mime_type=client_mime or DEFAULT_MIME_BY_EXTENSION[ext],
        size=size,
    )
