"""High-level async client for the places query service."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import aiohttp

from pyplaces._api.nearby import fetch_nearby_places
from pyplaces._constants import CONFIG_GLOBAL_PRIVACY, PRIVACY_OPT_OUT
from pyplaces._transport import HttpTransport, Transport
from pyplaces.config import PlacesConfig
from pyplaces.exceptions import PlacesError
from pyplaces.models.authorization import AuthorizationStatus
from pyplaces.models.poi import PointOfInterest
from pyplaces.models.query import NearbyQueryResponse, RequestStatus
from pyplaces.models.region import RegionEventType, RegionTransition
from pyplaces.state.membership import MembershipState
from pyplaces.state.store import DataStore

_logger = logging.getLogger(__name__)


class PlacesClient:
    """Async client tracking the device's POI membership.

    Usage::

        async with PlacesClient(config, datastore=JsonFileDataStore(path)) as client:
            response = await client.get_nearby_places(37.3387, -121.9045)
            transition = client.process_region_event(poi_id, "entry")

    Calls are expected to come from a single task; the client does not
    serialize concurrent mutations itself.
    """

    def __init__(
        self,
        config: PlacesConfig,
        *,
        datastore: DataStore | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.time,
        on_region_event: Callable[[RegionTransition], None] | None = None,
        on_experience_event: Callable[[dict[str, Any]], None] | None = None,
        on_shared_state: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._external_transport = transport is not None
        self._state = MembershipState(datastore, membership_ttl=config.membership_ttl, clock=clock)
        self._on_region_event = on_region_event
        self._on_experience_event = on_experience_event
        self._on_shared_state = on_shared_state
        self._config_error: str | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PlacesClient:
        if not self._external_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> PlacesConfig:
        return self._config

    @property
    def state(self) -> MembershipState:
        return self._state

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def get_nearby_places(
        self,
        latitude: float,
        longitude: float,
        count: int | None = None,
    ) -> NearbyQueryResponse:
        """Query POIs around a location and merge them into the membership state.

        Failures are returned as a response with a non-``OK`` status and
        empty POI lists.
        """
        if self._config_error is not None:
            _logger.debug("Ignoring the get nearby places request, invalid configuration")
            return NearbyQueryResponse.failed(RequestStatus.CONFIGURATION_ERROR, self._config_error)

        if self._config.privacy_opted_out:
            _logger.debug("Ignoring the get nearby places request, privacy opted out")
            return NearbyQueryResponse.failed(RequestStatus.PRIVACY_OPTED_OUT, "Privacy opted out")

        self._state.save_last_known_location(latitude, longitude)

        response = await fetch_nearby_places(
            self._config,
            self._transport,
            latitude,
            longitude,
            count=count,
        )
        if not response.is_success:
            _logger.debug("Nearby places request failed: %s", response.message)
            return response

        self._state.set_membership_ttl(self._config.membership_ttl)
        self._state.process_query_response(response.inside_pois, response.nearby_pois)
        self._publish_shared_state()
        return response

    def process_region_event(
        self,
        region_id: str | None,
        kind: str | RegionEventType | None,
        *,
        timestamp: float | None = None,
    ) -> RegionTransition | None:
        """Apply a platform geofence transition for a cached POI."""
        if self._config.privacy_opted_out:
            _logger.debug("Ignoring the geofence event, privacy opted out")
            return None

        self._state.set_membership_ttl(self._config.membership_ttl)
        transition = self._state.process_region_event(region_id, kind, timestamp=timestamp)
        self._publish_shared_state()

        if transition is not None:
            self._notify(self._on_region_event, transition, "on_region_event")
            self._dispatch_experience_event(transition)
        return transition

    def get_user_within_pois(self) -> list[PointOfInterest]:
        return self._state.get_pois_containing_device()

    def get_last_known_location(self) -> tuple[float, float] | None:
        return self._state.load_last_known_location()

    def get_shared_state(self) -> dict[str, Any]:
        return self._state.get_shared_snapshot()

    def set_authorization_status(self, status: str | AuthorizationStatus | None) -> AuthorizationStatus:
        """Record the location authorization; invalid values are ignored."""
        if not AuthorizationStatus.is_valid(status):
            _logger.debug("Ignoring invalid authorization status: %r", status)
            return self._state.authorization_status
        result = self._state.set_authorization_status(status)
        self._publish_shared_state()
        return result

    def reset(self) -> None:
        """Clear all membership, cache, location and authorization data."""
        _logger.debug("Places shared state and persisted data has been reset")
        self._state.reset()
        self._publish({})

    def update_configuration(self, config: PlacesConfig | dict[str, Any]) -> None:
        """Swap in new configuration; a privacy opt-out resets all data.

        A raw host configuration mapping is parsed with
        :meth:`PlacesConfig.from_configuration`; if it is invalid the
        current configuration is kept for region events but nearby queries
        report ``CONFIGURATION_ERROR`` until a valid one arrives.
        """
        if isinstance(config, dict):
            opted_out = str(config.get(CONFIG_GLOBAL_PRIVACY, "")).strip().lower() == PRIVACY_OPT_OUT
            try:
                config = PlacesConfig.from_configuration(config)
            except PlacesError as exc:
                _logger.warning("Invalid places configuration: %s", exc)
                self._config_error = str(exc)
                if opted_out:
                    self.reset()
                return

        self._config = config
        self._config_error = None
        self._state.set_membership_ttl(config.membership_ttl)
        if config.privacy_opted_out:
            _logger.debug("Stopping places processing due to privacy opt-out")
            self.reset()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _publish_shared_state(self) -> None:
        if self._on_shared_state is not None:
            self._publish(self._state.get_shared_snapshot())

    def _publish(self, data: dict[str, Any]) -> None:
        self._notify(self._on_shared_state, data, "on_shared_state")

    def _dispatch_experience_event(self, transition: RegionTransition) -> None:
        if self._on_experience_event is None:
            return
        dataset_id = self._config.experience_event_dataset
        if self._config_error is not None or not dataset_id:
            _logger.warning("Unable to record location event, experience event dataset not configured")
            return
        self._notify(self._on_experience_event, transition.to_experience_event(dataset_id), "on_experience_event")

    @staticmethod
    def _notify(callback: Callable[[Any], None] | None, value: Any, name: str) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            _logger.debug("%s callback failed", name, exc_info=True)
