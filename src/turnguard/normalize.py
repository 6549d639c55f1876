"""Error key normalization and error text extraction from tool results."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

ERROR_KEY_MAX_CHARS = 500


def normalize_error_key(error: str | None) -> str:
    """Canonical comparison key for an error message.

    Strips whitespace, truncates to ERROR_KEY_MAX_CHARS, lowercases.
    Missing or blank input yields "".
    """
    if error is None:
        return ""
    if not isinstance(error, str):
        error = str(error)
    trimmed = error.strip()
    if not trimmed:
        return ""
    return trimmed[:ERROR_KEY_MAX_CHARS].lower()


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _text_parts(content: Any) -> str | None:
    if not isinstance(content, (list, tuple)):
        return None
    texts = []
    for part in content:
        if _get(part, "type") == "text":
            text = _get(part, "text")
            if isinstance(text, str):
                texts.append(text)
    return "\n".join(texts) if texts else None


def extract_tool_error_message(result: Any) -> str | None:
    """Pull the error text out of a failing tool's result.

    Handles plain strings, ``{"error": ...}`` (string or ``{"message": ...}``),
    ``{"message": ...}``, text content parts, exceptions, and objects that
    expose the same fields as attributes. Returns None when nothing usable
    is found.
    """
    if result is None:
        return None
    if isinstance(result, str):
        return result
    if isinstance(result, BaseException):
        return str(result)

    error = _get(result, "error")
    if isinstance(error, str):
        return error
    if isinstance(error, BaseException):
        return str(error)
    if error is not None:
        nested = _get(error, "message")
        if isinstance(nested, str):
            return nested

    message = _get(result, "message")
    if isinstance(message, str):
        return message

    return _text_parts(_get(result, "content"))
