"""Data models for places query results and membership state."""

from pyplaces.models._base import PlacesEnum
from pyplaces.models.authorization import DEFAULT_AUTHORIZATION_STATUS, AuthorizationStatus
from pyplaces.models.poi import PointOfInterest
from pyplaces.models.query import NearbyQueryResponse, RequestStatus
from pyplaces.models.region import RegionEventType, RegionTransition

__all__ = [
    "AuthorizationStatus",
    "DEFAULT_AUTHORIZATION_STATUS",
    "NearbyQueryResponse",
    "PlacesEnum",
    "PointOfInterest",
    "RegionEventType",
    "RegionTransition",
    "RequestStatus",
]
