"""Helpers for safe debug logging.

Nearby queries carry the device location, and POI metadata can hold
customer data. This module redacts those fields before DEBUG logs are
emitted.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "latitude",
        "longitude",
        "lastknownlatitude",
        "lastknownlongitude",
        "regionmetadata",
        "x",
    }
)

_REDACTED = "<redacted>"

_URL_COORDINATE_RE = re.compile(r"((?:latitude|longitude)=)[^&]*")


def redact_url(url: str) -> str:
    """Mask the ``latitude``/``longitude`` query parameters of *url*."""
    return _URL_COORDINATE_RE.sub(rf"\g<1>{_REDACTED}", url)


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of a decoded JSON document with sensitive values masked.

    Keys are matched case-insensitively; long strings are truncated.
    """
    if isinstance(value, Mapping):
        redacted: dict[Any, Any] = {}
        for key, item in value.items():
            sensitive = str(key).lower() in _SENSITIVE_VALUE_KEYS
            redacted[key] = _REDACTED if sensitive else redact_for_log(item, max_string=max_string)
        return redacted
    if isinstance(value, list):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value
