"""Upload validation — size limits, filename sanitizing, MIME sniffing.

Uses `filetype` for magic-byte detection (don't trust the client's
Content-Type). Plain-text formats have no magic bytes, so those fall back to
the extension.
"""

import logging
import mimetypes
import re

import filetype as ft

from ..errors import ValidationError

log = logging.getLogger("caseflow.file_validation")

# Characters OneDrive refuses in item names
_UNSAFE_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def sanitize_filename(name: str) -> str:
    """Replace characters OneDrive rejects with underscores."""
    cleaned = _UNSAFE_NAME_CHARS.sub("_", (name or "").strip())
    return cleaned or "upload"


def detect_mime(content: bytes, filename: str) -> str:
    kind = ft.guess(content)
    if kind:
        return kind.mime
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "application/octet-stream"


def validate_upload(content: bytes, filename: str, max_size_mb: int) -> dict:
    """Validate an uploaded file.

    Returns:
        {"filename": sanitized name, "mime_type": str, "size": int}

    Raises ValidationError when the file is empty or over the size limit.
    """
    size = len(content)
    if size == 0:
        raise ValidationError("Empty file")
    max_bytes = max_size_mb * 1024 * 1024
    if size > max_bytes:
        raise ValidationError(f"File too large ({size} bytes, max {max_bytes})")

    safe_name = sanitize_filename(filename)
    mime = detect_mime(content, safe_name)
    log.debug("Validated upload %s (%s, %d bytes)", safe_name, mime, size)
    return {"filename": safe_name, "mime_type": mime, "size": size}
