"""Client configuration for pyplaces."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from typing import Any

from pyplaces._constants import (
    CONFIG_ENDPOINT,
    CONFIG_EXPERIENCE_EVENT_DATASET,
    CONFIG_GLOBAL_PRIVACY,
    CONFIG_LIBRARIES,
    CONFIG_LIBRARY_ID,
    CONFIG_MEMBERSHIP_TTL,
    DEFAULT_MEMBERSHIP_TTL,
    DEFAULT_NEARBYPOI_COUNT,
    DEFAULT_NETWORK_TIMEOUT,
    PRIVACY_OPT_OUT,
)
from pyplaces.exceptions import PlacesConfigError
from pyplaces.ingestion.normalize import safe_int

_logger = logging.getLogger(__name__)

_OPTED_OUT_VALUES = frozenset({"1", "true", "yes", PRIVACY_OPT_OUT})


def _opt_out_flag(value: str | None) -> bool:
    """Read ``PLACES_PRIVACY_OPTED_OUT``; unset or unrecognised means opted in."""
    if value is None:
        return False
    return value.strip().lower() in _OPTED_OUT_VALUES


def _split_libraries(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class PlacesConfig:
    """Client configuration.

    Parameters
    ----------
    endpoint : str
        Host of the places query service, without scheme
        (e.g. ``"places-edge.example.com"``).
    libraries : tuple of str
        POI library identifiers to query. At least one is required.
    membership_ttl : int
        Seconds for which membership data (current, last entered and
        last exited POI) stays valid after a query response or region
        event. Defaults to one hour.
    network_timeout : float
        Connect and read timeout for nearby queries, in seconds.
    default_count : int
        ``limit`` sent with a nearby query when the caller gives none.
    experience_event_dataset : str
        Dataset id region events are forwarded to by the host. Carried
        through unchanged.
    privacy_opted_out : bool
        When ``True`` queries are refused and region events ignored.
    """

    endpoint: str
    libraries: tuple[str, ...]
    membership_ttl: int = DEFAULT_MEMBERSHIP_TTL
    network_timeout: float = DEFAULT_NETWORK_TIMEOUT
    default_count: int = DEFAULT_NEARBYPOI_COUNT
    experience_event_dataset: str = ""
    privacy_opted_out: bool = False

    def __post_init__(self) -> None:
        libraries = tuple(lib for lib in self.libraries if lib)
        if not libraries:
            raise PlacesConfigError("No valid places libraries configured")
        if not self.endpoint:
            raise PlacesConfigError("No valid places endpoint configured")
        object.__setattr__(self, "libraries", libraries)

    def libraries_query(self) -> str:
        """Return the ``&library=<id>`` query suffix in declared order."""
        return "".join(f"&library={library}" for library in self.libraries)

    @classmethod
    def from_env(cls, **overrides: Any) -> PlacesConfig:
        """Create configuration from environment variables.

        Reads ``PLACES_ENDPOINT``, ``PLACES_LIBRARIES`` (comma separated)
        and the optional ``PLACES_MEMBERSHIP_TTL``,
        ``PLACES_NETWORK_TIMEOUT``, ``PLACES_DEFAULT_COUNT``,
        ``PLACES_EVENT_DATASET`` and ``PLACES_PRIVACY_OPTED_OUT``.
        Explicit keyword arguments override environment values.

        Raises
        ------
        PlacesConfigError
            If the resulting endpoint or library list is empty.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {
            "endpoint": env.get("PLACES_ENDPOINT", ""),
            "libraries": _split_libraries(env.get("PLACES_LIBRARIES", "")),
        }

        ttl_env = env.get("PLACES_MEMBERSHIP_TTL")
        if ttl_env is not None and "membership_ttl" not in overrides:
            config_kwargs["membership_ttl"] = int(ttl_env)

        timeout_env = env.get("PLACES_NETWORK_TIMEOUT")
        if timeout_env is not None and "network_timeout" not in overrides:
            config_kwargs["network_timeout"] = float(timeout_env)

        count_env = env.get("PLACES_DEFAULT_COUNT")
        if count_env is not None and "default_count" not in overrides:
            config_kwargs["default_count"] = int(count_env)

        dataset_env = env.get("PLACES_EVENT_DATASET")
        if dataset_env is not None:
            config_kwargs["experience_event_dataset"] = dataset_env

        if "privacy_opted_out" not in overrides:
            config_kwargs["privacy_opted_out"] = _opt_out_flag(env.get("PLACES_PRIVACY_OPTED_OUT"))

        config_kwargs.update(overrides)
        return cls(**config_kwargs)

    @classmethod
    def from_configuration(cls, data: Mapping[str, Any] | None) -> PlacesConfig:
        """Create configuration from a host remote-configuration mapping.

        Understands ``places.endpoint``, ``places.libraries`` (a list of
        ``{"id": ...}`` objects), ``places.membershipttl``,
        ``messaging.eventDataset`` and ``global.privacy``.

        Raises
        ------
        PlacesConfigError
            If the mapping is missing, holds no valid library, or has no
            endpoint.
        """
        if data is None:
            raise PlacesConfigError("Configuration data is missing")

        library_list = data.get(CONFIG_LIBRARIES)
        if not isinstance(library_list, list):
            raise PlacesConfigError("No places libraries found in configuration")

        libraries: list[str] = []
        for entry in library_list:
            if not isinstance(entry, Mapping) or not entry:
                continue
            library_id = entry.get(CONFIG_LIBRARY_ID)
            if isinstance(library_id, str) and library_id:
                libraries.append(library_id)
            else:
                _logger.warning("Ignoring places library with invalid id: %r", library_id)

        if not libraries:
            raise PlacesConfigError("No valid places libraries found in configuration")

        endpoint = data.get(CONFIG_ENDPOINT)
        if not isinstance(endpoint, str) or not endpoint:
            raise PlacesConfigError("No valid places endpoint found in configuration")

        ttl = safe_int(data.get(CONFIG_MEMBERSHIP_TTL))
        dataset = data.get(CONFIG_EXPERIENCE_EVENT_DATASET)
        privacy = data.get(CONFIG_GLOBAL_PRIVACY)

        return cls(
            endpoint=endpoint,
            libraries=tuple(libraries),
            membership_ttl=DEFAULT_MEMBERSHIP_TTL if ttl is None else ttl,
            experience_event_dataset=dataset if isinstance(dataset, str) else "",
            privacy_opted_out=isinstance(privacy, str) and privacy.strip().lower() == PRIVACY_OPT_OUT,
        )
