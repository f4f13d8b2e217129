"""Deterministic membership policy.

This module intentionally contains no persistence or parsing; it only
decides which POI is current and when membership data goes stale.
"""

from __future__ import annotations

from collections.abc import Iterable

from pyplaces.models.poi import PointOfInterest


def select_current_poi(pois: Iterable[PointOfInterest]) -> PointOfInterest | None:
    """Pick the highest-priority POI that contains the device.

    Candidates are visited in iteration order and each one that is not
    outranked replaces the running best. Because equal weight and radius
    compare as higher priority, the last of several equal candidates wins.
    """
    best: PointOfInterest | None = None
    for poi in pois:
        if poi.contains_device and poi.higher_priority_than(best):
            best = poi
    return best


def is_expired(now: float, valid_until: float) -> bool:
    return now >= valid_until
