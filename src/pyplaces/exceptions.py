"""Custom exception hierarchy for pyplaces."""

from __future__ import annotations


class PlacesError(Exception):
    """Base exception for all pyplaces errors."""


class PlacesConfigError(PlacesError):
    """Invalid or missing configuration (no endpoint or no valid library)."""


class PlacesInvalidLocationError(PlacesError):
    """Latitude/longitude passed to a nearby query is missing or out of range."""


class PlacesTransportError(PlacesError):
    """HTTP-level failure while querying nearby places."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class PlacesConnectivityError(PlacesTransportError):
    """No network client available, or the connection could not be opened."""


class PlacesServerResponseError(PlacesTransportError):
    """Server answered, but not with a usable nearby-places document.

    Covers non-2xx status codes, empty bodies, bodies that are not JSON
    and documents that lack the top-level ``places`` object.
    """


class PlacesPersistenceError(PlacesError):
    """A datastore backing file could not be read or written."""
