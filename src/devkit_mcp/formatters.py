"""Shared formatting functions for tool responses.

Used by the dispatcher and by both the stdio and HTTP transports so that every
endpoint renders payloads and errors identically.
"""
import base64
import binascii
import json
from typing import Any, Optional

from .schemas import ErrorDetail


def format_payload(payload: Any) -> str:
    """Serialize a handler result as the text of a single content block."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def format_error(error: ErrorDetail) -> str:
    """Format an error envelope for display: message, then any details as JSON."""
    if error.details is None:
        return f"Error: {error.message}"
    return f"Error: {error.message}\n\n{format_payload(error.details)}"


def decode_base64_content(content: str) -> str:
    """Decode base64 file content delivered by a source-hosting API to text."""
    try:
        raw = base64.b64decode(content, validate=False)
    except (binascii.Error, ValueError):
        return content
    return raw.decode("utf-8", errors="replace")


def web_url(base: Optional[str], path: Optional[str]) -> Optional[str]:
    """Join a web base URL and path taken from a remote response."""
    if not base or not path:
        return None
    return f"{base.rstrip('/')}/{path.lstrip('/')}"
