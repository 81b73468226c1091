"""
Markup stripping for upstream payloads relayed to browsers.
"""

import re
from typing import Any


_TAG_RE = re.compile(r"<[^<>]*>")
_ANGLE_RE = re.compile(r"[<>]")


def sanitize_string(value: str) -> str:
    """Remove HTML tags, then any stray angle brackets."""
    return _ANGLE_RE.sub("", _TAG_RE.sub("", value))


def strip_markup(value: Any) -> Any:
    """Recursively strip markup from every string (keys included) in ``value``."""
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, dict):
        return {
            (sanitize_string(k) if isinstance(k, str) else k): strip_markup(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [strip_markup(v) for v in value]
    return value
