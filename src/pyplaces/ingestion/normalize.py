"""Normalization helpers.

Centralizes defensive parsing of the positional nearby-query payload and
of persisted POI maps.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

_logger = logging.getLogger(__name__)

MIN_LAT = -90.0
MAX_LAT = 90.0
MIN_LON = -180.0
MAX_LON = 180.0


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None or math.isinf(parsed):
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = scalar_to_str(value)
    return text if text else None


def scalar_to_str(value: Any) -> str:
    """Render a JSON scalar the way it appears on the wire."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_valid_lat(latitude: float | None) -> bool:
    return latitude is not None and MIN_LAT <= latitude <= MAX_LAT


def is_valid_lon(longitude: float | None) -> bool:
    return longitude is not None and MIN_LON <= longitude <= MAX_LON


def metadata_to_string_map(metadata: Mapping[str, Any]) -> dict[str, str]:
    """Flatten POI metadata to ``str -> str``.

    Only scalar values survive; nested objects and arrays are dropped.
    """
    result: dict[str, str] = {}
    for key, value in metadata.items():
        if isinstance(value, (Mapping, list, tuple)):
            _logger.warning("Ignoring POI metadata with key: %s which contains invalid datatype", key)
            continue
        result[str(key)] = scalar_to_str(value)
    return result
