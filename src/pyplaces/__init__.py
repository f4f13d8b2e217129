"""pyplaces - Async Python client tracking device membership in Points of Interest."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyplaces")
except PackageNotFoundError:
    __version__ = "0+local"
from pyplaces._api.nearby import fetch_nearby_places, parse_query_response
from pyplaces.client import PlacesClient
from pyplaces.config import PlacesConfig
from pyplaces.exceptions import (
    PlacesConfigError,
    PlacesConnectivityError,
    PlacesError,
    PlacesInvalidLocationError,
    PlacesPersistenceError,
    PlacesServerResponseError,
    PlacesTransportError,
)
from pyplaces.models import (
    AuthorizationStatus,
    NearbyQueryResponse,
    PointOfInterest,
    RegionEventType,
    RegionTransition,
    RequestStatus,
)
from pyplaces.state.membership import MembershipState
from pyplaces.state.store import DataStore, JsonFileDataStore, MemoryDataStore

__all__ = [
    "__version__",
    "AuthorizationStatus",
    "DataStore",
    "JsonFileDataStore",
    "MembershipState",
    "MemoryDataStore",
    "NearbyQueryResponse",
    "PlacesClient",
    "PlacesConfig",
    "PlacesConfigError",
    "PlacesConnectivityError",
    "PlacesError",
    "PlacesInvalidLocationError",
    "PlacesPersistenceError",
    "PlacesServerResponseError",
    "PlacesTransportError",
    "PointOfInterest",
    "RegionEventType",
    "RegionTransition",
    "RequestStatus",
    "fetch_nearby_places",
    "parse_query_response",
]
