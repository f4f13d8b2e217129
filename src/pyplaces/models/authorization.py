"""Location authorization status model."""

from __future__ import annotations

from pyplaces.models._base import PlacesEnum


class AuthorizationStatus(PlacesEnum):
    """Device authorization for location use.

    ``UNKNOWN`` is the default and the fallback for unrecognised values.
    """

    DENIED = "denied"
    ALWAYS = "always"
    UNKNOWN = "unknown"
    RESTRICTED = "restricted"
    WHEN_IN_USE = "wheninuse"


DEFAULT_AUTHORIZATION_STATUS = AuthorizationStatus.UNKNOWN
