"""Nearby-query result models."""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field

from pyplaces.models.poi import PointOfInterest


class RequestStatus(IntEnum):
    """Outcome classification of a nearby query.

    Unmapped integers resolve to ``UNKNOWN_ERROR``.
    """

    OK = 0
    CONNECTIVITY_ERROR = 1
    SERVER_RESPONSE_ERROR = 2
    INVALID_LATLONG_ERROR = 3
    CONFIGURATION_ERROR = 4
    QUERY_SERVICE_UNAVAILABLE = 5
    PRIVACY_OPTED_OUT = 6
    UNKNOWN_ERROR = 7

    @classmethod
    def _missing_(cls, value: object) -> RequestStatus:
        return cls.UNKNOWN_ERROR


class NearbyQueryResponse(BaseModel):
    """Result of a nearby query.

    On success ``status`` is ``OK`` and the two lists hold the parsed
    POIs (either may be empty). On failure both lists are empty and
    ``message`` carries a diagnostic.
    """

    model_config = ConfigDict(frozen=True)

    status: RequestStatus = RequestStatus.OK
    message: str = ""
    inside_pois: list[PointOfInterest] = Field(default_factory=list)
    nearby_pois: list[PointOfInterest] = Field(default_factory=list)

    @classmethod
    def failed(cls, status: RequestStatus, message: str) -> NearbyQueryResponse:
        return cls(status=status, message=message)

    @property
    def is_success(self) -> bool:
        return self.status == RequestStatus.OK

    @property
    def all_pois(self) -> list[PointOfInterest]:
        """Inside POIs followed by nearby POIs."""
        return [*self.inside_pois, *self.nearby_pois]
