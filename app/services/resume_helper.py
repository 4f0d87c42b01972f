"""
ExecBoard - Resume file helpers

Storage and text extraction for uploaded resumes. Uploads arrive here only
after app.security.uploads.validate_resume_upload has accepted them.

Text extraction is best-effort and feeds Resume.parsed_text, which the AI
resume analysis can use instead of pasted text:
- PDF: pdfplumber
- DOCX: python-docx
- DOC (legacy binary Word): stored, not parsed
"""
import io
import logging
import os
from typing import Optional

import pdfplumber
from docx import Document

from ..config import settings
from ..security import ValidatedUpload

logger = logging.getLogger("execboard.uploads")

MAX_PARSED_TEXT = 50_000


def extract_resume_text(data: bytes, extension: str) -> Optional[str]:
    """Return the plain text of a PDF/DOCX resume, or None when it cannot be read."""
    text = ""
    try:
        if extension == "pdf":
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages_text = []
                for page in pdf.pages:
                    page_text = page.extract_text()
                    if page_text:
                        pages_text.append(page_text)
                text = "\n".join(pages_text)
        elif extension == "docx":
            doc = Document(io.BytesIO(data))
            text = "\n".join(p.text for p in doc.paragraphs)
        else:
            return None
    except Exception as e:  # parsers raise a wide range of format errors
        logger.warning("Could not extract text from %s resume: %s", extension, e)
        return None

    text = text.strip()
    return text[:MAX_PARSED_TEXT] or None


def resume_path(stored_file_name: str) -> str:
    return os.path.join(settings.upload_dir, stored_file_name)


def store_resume_file(upload: ValidatedUpload) -> str:
    """Write a validated upload under the upload dir and return its path."""
    os.makedirs(settings.upload_dir, exist_ok=True)
    path = resume_path(upload.stored_file_name)
    with open(path, "wb") as f:
        f.write(upload.data)
    logger.info("Stored resume %s (%d bytes)", upload.stored_file_name, upload.size)
    return path


def delete_resume_file(path: str) -> bool:
    """Remove a stored resume; failures are logged and reported as False."""
    try:
        os.remove(path)
        return True
    except OSError as e:
        logger.warning("Failed to delete resume file %s: %s", path, e)
        return False
