"""MIME detection helpers.

Uses `magic` if available (provided by python-magic), falls back to the
content type the client sent or application/octet-stream.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"
_MIME_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


def clean_content_type(content_type: Optional[str]) -> Optional[str]:
    """Strip parameters (`; charset=...`) and reject garbage."""
    if not content_type:
        return None
    base = content_type.split(";", 1)[0].strip().lower()
    return base if _MIME_RE.match(base) else None


def sniff_mime(data: bytes, fallback_content_type: Optional[str] = None) -> str:
    fallback = clean_content_type(fallback_content_type) or DEFAULT_MIME
    try:
        import magic  # type: ignore
    except ImportError:
        return fallback
    try:
        detected = magic.from_buffer(data[:8192], mime=True)
    except Exception as e:  # libmagic raises its own MagicException
        logger.debug(f"libmagic failed to identify upload: {e}")
        return fallback
    if isinstance(detected, str) and detected and detected != DEFAULT_MIME:
        return detected
    return fallback
