"""Point of Interest model."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyplaces._constants import (
    DEFAULT_POI_RADIUS,
    DEFAULT_POI_WEIGHT,
    POI_IDENTIFIER,
    POI_LATITUDE,
    POI_LIBRARY,
    POI_LONGITUDE,
    POI_METADATA,
    POI_NAME,
    POI_RADIUS,
    POI_USER_IS_WITHIN,
    POI_WEIGHT,
)
from pyplaces.ingestion.normalize import metadata_to_string_map


class PointOfInterest(BaseModel):
    """A named geographic circle the device can be inside or outside of.

    Everything except ``contains_device`` is fixed once the POI has been
    parsed. Field aliases are the keys of the persisted and shared map
    form, so ``model_validate(poi.to_map())`` round-trips.

    Parameters
    ----------
    identifier : str
        Stable key, unique within a cache.
    name : str
        Display name.
    latitude : float
        Centre latitude in degrees, within ``[-90, 90]``.
    longitude : float
        Centre longitude in degrees, within ``[-180, 180]``.
    radius : int
        Radius in meters.
    library : str
        Library the POI belongs to; may be empty.
    weight : int
        Priority rank. A lower value means a higher priority.
    metadata : dict or None
        Free-form ``str -> str`` attributes.
    contains_device : bool
        Whether the device is currently inside this POI.
    """

    model_config = ConfigDict(populate_by_name=True)

    identifier: str = Field(alias=POI_IDENTIFIER, min_length=1)
    name: str = Field(alias=POI_NAME)
    latitude: float = Field(alias=POI_LATITUDE, ge=-90.0, le=90.0)
    longitude: float = Field(alias=POI_LONGITUDE, ge=-180.0, le=180.0)
    radius: int = Field(default=DEFAULT_POI_RADIUS, alias=POI_RADIUS, ge=0)
    library: str = Field(default="", alias=POI_LIBRARY)
    weight: int = Field(default=DEFAULT_POI_WEIGHT, alias=POI_WEIGHT)
    metadata: dict[str, str] | None = Field(default=None, alias=POI_METADATA)
    contains_device: bool = Field(default=False, alias=POI_USER_IS_WITHIN)

    @field_validator("library", mode="before")
    @classmethod
    def _none_library_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("metadata", mode="before")
    @classmethod
    def _flatten_metadata(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return metadata_to_string_map(value)
        return value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PointOfInterest):
            return NotImplemented
        return self.equals_without_metadata(other) and self.metadata == other.metadata

    def equals_without_metadata(self, other: object) -> bool:
        """Compare every attribute except ``metadata``."""
        if not isinstance(other, PointOfInterest):
            return False
        return (
            self.identifier == other.identifier
            and self.name == other.name
            and self.latitude == other.latitude
            and self.longitude == other.longitude
            and self.radius == other.radius
            and self.weight == other.weight
            and self.library == other.library
            and self.contains_device == other.contains_device
        )

    def higher_priority_than(self, other: PointOfInterest | None) -> bool:
        """Whether this POI outranks *other*.

        Lower weight wins; on equal weight the smaller (or equal) radius
        wins. Equal weight and radius compare ``True`` in both
        directions, so the caller's argument order breaks the tie.
        """
        if other is None:
            return True
        if other.weight < self.weight:
            return False
        if other.weight == self.weight:
            return other.radius >= self.radius
        return True

    def clone(self) -> PointOfInterest:
        """Independent copy; later mutation of either side is not shared."""
        return self.model_copy(deep=True)

    def to_map(self) -> dict[str, Any]:
        """Persisted/shared map form keyed by the wire aliases."""
        return self.model_dump(by_alias=True)
