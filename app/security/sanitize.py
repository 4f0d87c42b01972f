"""
Plain-text sanitation for untrusted free text.

Deliberately does not parse HTML. It bounds length, normalizes line endings
and drops control characters other than tab and newline.
"""
import re
from typing import Optional

DEFAULT_MAX_LEN = 20_000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_plain_text(value: str, max_len: int = DEFAULT_MAX_LEN) -> str:
    """Normalize CRLF, strip control characters, trim, then truncate to max_len."""
    text = value.replace("\r\n", "\n")
    text = _CONTROL_CHARS.sub("", text)
    return text.strip()[:max_len]


def sanitize_optional(value: Optional[str], max_len: int = DEFAULT_MAX_LEN) -> Optional[str]:
    """Like sanitize_plain_text, but None and blank input come back as None."""
    if value is None:
        return None
    cleaned = sanitize_plain_text(value, max_len)
    return cleaned or None
