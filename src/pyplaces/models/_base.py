"""Base enum for pyplaces string-valued states.

String enums inherit from :class:`PlacesEnum`, whose ``_missing_`` hook
resolves any unmapped value to ``UNKNOWN`` (or the first declared member
when the enum has no ``UNKNOWN``) instead of raising ``ValueError``.
"""

from __future__ import annotations

from enum import StrEnum


class PlacesEnum(StrEnum):
    """Base for string enums exchanged with the host application."""

    @classmethod
    def _missing_(cls, value: object) -> PlacesEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: PlacesEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))

    @classmethod
    def is_valid(cls, value: object) -> bool:
        """Whether *value* is the exact string of one of the members."""
        return isinstance(value, str) and value in cls._value2member_map_
