"""Membership state of the device relative to cached POIs.

This is the only component allowed to mutate the POI cache and the
current / last-entered / last-exited pointers. Every mutation is
followed by a full write of the persisted slots.

Calls are expected to be serialized by the caller; the state holds no
locks.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterable
from functools import partial
from typing import Any

from pydantic import ValidationError

from pyplaces._constants import (
    DEFAULT_MEMBERSHIP_TTL,
    INVALID_LAT_LON,
    STATE_AUTH_STATUS,
    STATE_CURRENT_POI,
    STATE_LAST_ENTERED_POI,
    STATE_LAST_EXITED_POI,
    STATE_NEARBY_POIS,
    STATE_VALID_UNTIL,
    STORE_AUTH_STATUS,
    STORE_CURRENT_POI,
    STORE_LAST_ENTERED_POI,
    STORE_LAST_EXITED_POI,
    STORE_LAST_KNOWN_LATITUDE,
    STORE_LAST_KNOWN_LONGITUDE,
    STORE_MEMBERSHIP_VALID_UNTIL,
    STORE_NEARBY_POIS,
)
from pyplaces.exceptions import PlacesPersistenceError
from pyplaces.ingestion.normalize import is_valid_lat, is_valid_lon
from pyplaces.models.authorization import DEFAULT_AUTHORIZATION_STATUS, AuthorizationStatus
from pyplaces.models.poi import PointOfInterest
from pyplaces.models.region import RegionEventType, RegionTransition
from pyplaces.state.policy import is_expired, select_current_poi
from pyplaces.state.store import DataStore

_logger = logging.getLogger(__name__)

_POINTER_SLOTS = (STORE_CURRENT_POI, STORE_LAST_ENTERED_POI, STORE_LAST_EXITED_POI)


def _store_string(store: DataStore, *, slot: str, value: str) -> None:
    store.set_string(slot, value)


def _remove_slot(store: DataStore, *, slot: str) -> None:
    store.remove(slot)


class MembershipState:
    """Cache of nearby POIs plus the device's membership pointers.

    Parameters
    ----------
    datastore : DataStore or None
        Where state is persisted. ``None`` runs in memory only; reads
        yield defaults and writes are skipped with a warning.
    membership_ttl : int
        Seconds membership data stays valid after each refresh.
    clock : callable
        Returns the current epoch time in seconds.
    """

    def __init__(
        self,
        datastore: DataStore | None,
        *,
        membership_ttl: int = DEFAULT_MEMBERSHIP_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._datastore = datastore
        self._clock = clock
        self._membership_ttl = membership_ttl
        self._cached_pois: dict[str, PointOfInterest] = {}
        self._current_poi: PointOfInterest | None = None
        self._last_entered_poi: PointOfInterest | None = None
        self._last_exited_poi: PointOfInterest | None = None
        self._authorization_status = DEFAULT_AUTHORIZATION_STATUS
        self._membership_valid_until = 0
        self._load_persisted()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def cached_pois(self) -> dict[str, PointOfInterest]:
        """Shallow copy of the cache, in insertion order."""
        return dict(self._cached_pois)

    @property
    def current_poi(self) -> PointOfInterest | None:
        return self._current_poi

    @property
    def last_entered_poi(self) -> PointOfInterest | None:
        return self._last_entered_poi

    @property
    def last_exited_poi(self) -> PointOfInterest | None:
        return self._last_exited_poi

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self._authorization_status

    @property
    def membership_valid_until(self) -> int:
        return self._membership_valid_until

    @property
    def membership_ttl(self) -> int:
        return self._membership_ttl

    def set_membership_ttl(self, membership_ttl: int) -> None:
        self._membership_ttl = membership_ttl

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def process_query_response(
        self,
        inside_pois: Iterable[PointOfInterest],
        nearby_pois: Iterable[PointOfInterest],
    ) -> None:
        """Replace the cache with a successful nearby-query result.

        The first inside POI, in delivery order, becomes both the current
        and the last entered POI. Nearby entries overwrite inside entries
        sharing an identifier.
        """
        inside = list(inside_pois)
        nearby = list(nearby_pois)

        self._current_poi = None
        if inside:
            self._current_poi = inside[0].clone()
            self._last_entered_poi = inside[0].clone()

        self._cached_pois.clear()
        for poi in (*inside, *nearby):
            self._cached_pois[poi.identifier] = poi.clone()

        self._refresh_validity()
        self._persist()

    def process_region_event(
        self,
        region_id: str | None,
        transition_kind: str | RegionEventType | None,
        *,
        timestamp: float | None = None,
    ) -> RegionTransition | None:
        """Apply an entry or exit of a cached POI's region.

        Returns ``None`` without touching state when *region_id* is empty,
        *transition_kind* is neither ``entry`` nor ``exit``, or the POI is
        not cached. The network is never queried here.
        """
        if not region_id:
            _logger.warning("Invalid regionId, ignoring geofence event")
            return None

        kind = RegionEventType(transition_kind)
        if kind == RegionEventType.NONE:
            _logger.warning("Unknown region type: %s, ignoring geofence event", transition_kind)
            return None

        matched = self._cached_pois.get(region_id)
        if matched is None:
            _logger.warning("Unable to find POI details for regionId: %s, ignoring geofence event", region_id)
            return None

        if kind == RegionEventType.ENTRY:
            matched.contains_device = True
            self._last_entered_poi = matched.clone()
            if matched.higher_priority_than(self._current_poi):
                self._current_poi = matched
        else:
            if matched == self._current_poi:
                self._current_poi = None
            matched.contains_device = False
            self._current_poi = select_current_poi(self._cached_pois.values())
            self._last_exited_poi = matched.clone()

        self._refresh_validity()
        self._persist()

        return RegionTransition(
            poi=matched.clone(),
            kind=kind,
            timestamp=self._clock() if timestamp is None else timestamp,
        )

    def set_authorization_status(self, status: str | AuthorizationStatus | None) -> AuthorizationStatus:
        """Store *status*, falling back to ``unknown`` when it is not recognised."""
        if AuthorizationStatus.is_valid(status):
            self._authorization_status = AuthorizationStatus(status)
        else:
            self._authorization_status = DEFAULT_AUTHORIZATION_STATUS

        if self._datastore is None:
            _logger.warning("Datastore not available, unable to persist authorization status")
            return self._authorization_status

        self._write(lambda store: store.set_string(STORE_AUTH_STATUS, self._authorization_status.value))
        _logger.debug("Authorization status persisted, %s", self._authorization_status.value)
        return self._authorization_status

    def clear_membership_data(self) -> None:
        """Drop current, last entered and last exited POIs and their validity."""
        self._current_poi = None
        self._last_entered_poi = None
        self._last_exited_poi = None
        self._membership_valid_until = 0

        if self._datastore is None:
            _logger.warning("Datastore not available, unable to clear membership data")
            return

        self._write(*(partial(_remove_slot, slot=slot) for slot in (*_POINTER_SLOTS, STORE_MEMBERSHIP_VALID_UNTIL)))

    def reset(self) -> None:
        """Clear every cached and persisted fact, including location and authorization."""
        self._cached_pois.clear()
        self._current_poi = None
        self._last_entered_poi = None
        self._last_exited_poi = None
        self._membership_valid_until = 0
        self._persist()

        self.save_last_known_location(INVALID_LAT_LON, INVALID_LAT_LON)
        self.set_authorization_status(DEFAULT_AUTHORIZATION_STATUS)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def get_shared_snapshot(self) -> dict[str, Any]:
        """Build the shared-state map, expiring stale membership data first.

        Only non-empty fields are included; ``validuntil`` is always
        present.
        """
        if is_expired(self._clock(), self._membership_valid_until):
            self.clear_membership_data()

        data: dict[str, Any] = {}
        if self._cached_pois:
            data[STATE_NEARBY_POIS] = [poi.to_map() for poi in self._cached_pois.values()]
        data[STATE_AUTH_STATUS] = self._authorization_status.value
        if self._current_poi is not None:
            data[STATE_CURRENT_POI] = self._current_poi.to_map()
        if self._last_entered_poi is not None:
            data[STATE_LAST_ENTERED_POI] = self._last_entered_poi.to_map()
        if self._last_exited_poi is not None:
            data[STATE_LAST_EXITED_POI] = self._last_exited_poi.to_map()
        data[STATE_VALID_UNTIL] = self._membership_valid_until
        return data

    def get_pois_containing_device(self) -> list[PointOfInterest]:
        """Copies of the cached POIs containing the device, in cache order."""
        return [poi.clone() for poi in self._cached_pois.values() if poi.contains_device]

    # ------------------------------------------------------------------
    # Last known location
    # ------------------------------------------------------------------

    def save_last_known_location(self, latitude: float, longitude: float) -> None:
        """Persist a location; an invalid one removes the stored location."""
        if self._datastore is None:
            _logger.warning("Datastore not available, unable to persist last known location")
            return

        if not (is_valid_lat(latitude) and is_valid_lon(longitude)):
            self._write(
                partial(_remove_slot, slot=STORE_LAST_KNOWN_LATITUDE),
                partial(_remove_slot, slot=STORE_LAST_KNOWN_LONGITUDE),
            )
            return

        self._write(
            lambda store: store.set_float(STORE_LAST_KNOWN_LATITUDE, latitude),
            lambda store: store.set_float(STORE_LAST_KNOWN_LONGITUDE, longitude),
        )

    def load_last_known_location(self) -> tuple[float, float] | None:
        if self._datastore is None:
            _logger.warning("Datastore not available, unable to load last known location")
            return None

        latitude = self._datastore.get_float(STORE_LAST_KNOWN_LATITUDE, INVALID_LAT_LON)
        longitude = self._datastore.get_float(STORE_LAST_KNOWN_LONGITUDE, INVALID_LAT_LON)
        if not (is_valid_lat(latitude) and is_valid_lon(longitude)):
            return None
        return latitude, longitude

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _refresh_validity(self) -> None:
        self._membership_valid_until = int(self._clock()) + self._membership_ttl

    def _write(self, *actions: Callable[[DataStore], None]) -> None:
        """Run each action against the datastore; every action is attempted."""
        if self._datastore is None:
            return
        failed = 0
        for action in actions:
            try:
                action(self._datastore)
            except PlacesPersistenceError:
                failed += 1
                _logger.debug("Places datastore write failed", exc_info=True)
        if failed:
            _logger.warning("Unable to write places datastore (%d failed writes)", failed)

    def _persist(self) -> None:
        if self._datastore is None:
            _logger.warning("Datastore not available, unable to persist POIs")
            return

        actions: list[Callable[[DataStore], None]] = []
        if self._cached_pois:
            nearby = json.dumps({identifier: poi.to_map() for identifier, poi in self._cached_pois.items()})
            actions.append(partial(_store_string, slot=STORE_NEARBY_POIS, value=nearby))
        else:
            actions.append(partial(_remove_slot, slot=STORE_NEARBY_POIS))

        for slot, poi in (
            (STORE_CURRENT_POI, self._current_poi),
            (STORE_LAST_ENTERED_POI, self._last_entered_poi),
            (STORE_LAST_EXITED_POI, self._last_exited_poi),
        ):
            if poi is not None:
                actions.append(partial(_store_string, slot=slot, value=json.dumps(poi.to_map())))
            else:
                actions.append(partial(_remove_slot, slot=slot))

        valid_until = self._membership_valid_until
        actions.append(lambda store: store.set_int(STORE_MEMBERSHIP_VALID_UNTIL, valid_until))

        self._write(*actions)
        _logger.debug("Persisted %d cached POIs", len(self._cached_pois))

    def _load_persisted(self) -> None:
        store = self._datastore
        if store is None:
            _logger.warning("Datastore not available, unable to load POIs from persistence")
            return

        self._cached_pois = self._load_cache(store.get_string(STORE_NEARBY_POIS))
        self._current_poi = self._load_poi(store, STORE_CURRENT_POI)
        self._last_entered_poi = self._load_poi(store, STORE_LAST_ENTERED_POI)
        self._last_exited_poi = self._load_poi(store, STORE_LAST_EXITED_POI)
        self._authorization_status = AuthorizationStatus(
            store.get_string(STORE_AUTH_STATUS, DEFAULT_AUTHORIZATION_STATUS.value)
        )
        self._membership_valid_until = store.get_int(STORE_MEMBERSHIP_VALID_UNTIL, 0)

    @staticmethod
    def _load_cache(raw: str | None) -> dict[str, PointOfInterest]:
        if not raw:
            return {}
        try:
            decoded = json.loads(raw)
            if not isinstance(decoded, dict):
                raise TypeError("cached POIs are not a JSON object")
            return {key: PointOfInterest.model_validate(value) for key, value in decoded.items()}
        except (json.JSONDecodeError, TypeError, ValidationError):
            _logger.warning("Unable to load cached POIs from persistence", exc_info=True)
            return {}

    @staticmethod
    def _load_poi(store: DataStore, slot: str) -> PointOfInterest | None:
        raw = store.get_string(slot)
        if not raw:
            return None
        try:
            poi = PointOfInterest.model_validate_json(raw)
        except ValidationError:
            _logger.warning("Unable to load %s from persistence", slot, exc_info=True)
            return None
        _logger.debug("%s loaded from persistence: %s", slot, poi.identifier)
        return poi
