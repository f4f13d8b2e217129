"""Tests for the membership state engine."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from pyplaces.models.authorization import AuthorizationStatus
from pyplaces.models.poi import PointOfInterest
from pyplaces.models.region import RegionEventType
from pyplaces.state.membership import MembershipState
from pyplaces.state.store import JsonFileDataStore, MemoryDataStore


class _Clock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _poi(identifier: str, *, weight: int = 10, radius: int = 100, within: bool = False) -> PointOfInterest:
    return PointOfInterest(
        identifier=identifier,
        name=f"POI {identifier}",
        latitude=37.0,
        longitude=-121.0,
        radius=radius,
        library="lib",
        weight=weight,
        contains_device=within,
    )


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def store() -> MemoryDataStore:
    return MemoryDataStore()


@pytest.fixture
def state(store: MemoryDataStore, clock: _Clock) -> MembershipState:
    return MembershipState(store, membership_ttl=3600, clock=clock)


# ------------------------------------------------------------------
# Query responses
# ------------------------------------------------------------------


class TestProcessQueryResponse:
    def test_first_inside_poi_becomes_current(self, state: MembershipState, clock: _Clock) -> None:
        state.process_query_response([_poi("X", within=True)], [_poi("N1"), _poi("N2")])

        assert state.current_poi is not None
        assert state.current_poi.identifier == "X"
        assert state.last_entered_poi is not None
        assert state.last_entered_poi.identifier == "X"
        assert len(state.cached_pois) == 3
        assert list(state.cached_pois) == ["X", "N1", "N2"]
        assert state.membership_valid_until == int(clock.now) + 3600

    def test_first_inside_poi_wins_over_priority(self, state: MembershipState) -> None:
        state.process_query_response([_poi("low", weight=50, within=True), _poi("high", weight=1, within=True)], [])

        assert state.current_poi is not None
        assert state.current_poi.identifier == "low"

    def test_no_inside_pois_clears_current_keeps_last_entered(self, state: MembershipState) -> None:
        state.process_query_response([_poi("X", within=True)], [])
        state.process_query_response([], [_poi("N1")])

        assert state.current_poi is None
        assert state.last_entered_poi is not None
        assert state.last_entered_poi.identifier == "X"
        assert list(state.cached_pois) == ["N1"]

    def test_nearby_entry_overwrites_inside_duplicate(self, state: MembershipState) -> None:
        state.process_query_response([_poi("dup", within=True)], [_poi("dup", within=False)])

        assert list(state.cached_pois) == ["dup"]
        assert state.cached_pois["dup"].contains_device is False

    def test_pointers_do_not_alias_cache(self, state: MembershipState) -> None:
        state.process_query_response([_poi("X", within=True)], [])
        state.process_region_event("X", "exit")

        assert state.last_entered_poi is not None
        assert state.last_entered_poi.contains_device is True

    def test_persists_all_slots(self, state: MembershipState, store: MemoryDataStore) -> None:
        state.process_query_response([_poi("X", within=True)], [_poi("N1")])

        saved = store.snapshot()
        assert set(json.loads(saved["nearbypois"])) == {"X", "N1"}
        assert json.loads(saved["currentpoi"])["regionid"] == "X"
        assert json.loads(saved["lastenteredpoi"])["regionid"] == "X"
        assert "lastexitedpoi" not in saved
        assert saved["places_membership_valid_until"] == state.membership_valid_until


# ------------------------------------------------------------------
# Region events
# ------------------------------------------------------------------


class TestProcessRegionEvent:
    def test_entry_of_higher_priority_poi_becomes_current(self, state: MembershipState) -> None:
        state.process_query_response([_poi("B", weight=2, within=True)], [_poi("A", weight=1)])

        transition = state.process_region_event("A", "entry", timestamp=123.0)

        assert transition is not None
        assert transition.kind == RegionEventType.ENTRY
        assert transition.timestamp == 123.0
        assert transition.poi.identifier == "A"
        assert state.current_poi is not None
        assert state.current_poi.identifier == "A"
        assert state.cached_pois["A"].contains_device is True
        assert state.last_entered_poi is not None
        assert state.last_entered_poi.identifier == "A"

    def test_entry_of_lower_priority_poi_keeps_current(self, state: MembershipState) -> None:
        state.process_query_response([_poi("A", weight=1, within=True)], [_poi("B", weight=2)])

        state.process_region_event("B", "entry")

        assert state.current_poi is not None
        assert state.current_poi.identifier == "A"
        assert state.last_entered_poi is not None
        assert state.last_entered_poi.identifier == "B"

    def test_exit_of_only_current_clears_current(self, state: MembershipState) -> None:
        state.process_query_response([_poi("A", within=True)], [_poi("B")])

        transition = state.process_region_event("A", "exit")

        assert transition is not None
        assert transition.kind == RegionEventType.EXIT
        assert transition.poi.contains_device is False
        assert state.current_poi is None
        assert state.last_exited_poi is not None
        assert state.last_exited_poi.identifier == "A"
        assert state.last_exited_poi.contains_device is False

    def test_exit_recomputes_current_from_cache(self, state: MembershipState) -> None:
        state.process_query_response(
            [_poi("A", weight=1, within=True), _poi("B", weight=3, within=True), _poi("C", weight=2, within=True)],
            [],
        )

        state.process_region_event("A", "exit")

        assert state.current_poi is not None
        assert state.current_poi.identifier == "C"

    def test_exit_tie_break_keeps_last_equal_candidate(self, state: MembershipState) -> None:
        state.process_query_response(
            [
                _poi("A", weight=1, within=True),
                _poi("first", weight=5, radius=30, within=True),
                _poi("second", weight=5, radius=30, within=True),
            ],
            [],
        )

        state.process_region_event("A", "exit")

        assert state.current_poi is not None
        assert state.current_poi.identifier == "second"

    @pytest.mark.parametrize("region_id", ["", None])
    def test_empty_region_id_ignored(self, state: MembershipState, region_id: str | None) -> None:
        state.process_query_response([_poi("A", within=True)], [])

        assert state.process_region_event(region_id, "entry") is None

    @pytest.mark.parametrize("kind", ["none", "dwell", None, ""])
    def test_unknown_kind_ignored(self, state: MembershipState, kind: str | None) -> None:
        state.process_query_response([], [_poi("A")])

        assert state.process_region_event("A", kind) is None
        assert state.cached_pois["A"].contains_device is False

    def test_unknown_region_ignored(self, state: MembershipState, clock: _Clock) -> None:
        state.process_query_response([], [_poi("A")])
        valid_until = state.membership_valid_until
        clock.now += 100

        assert state.process_region_event("missing", "entry") is None
        assert state.membership_valid_until == valid_until

    def test_region_event_refreshes_validity(self, state: MembershipState, clock: _Clock) -> None:
        state.process_query_response([], [_poi("A")])
        clock.now += 500

        state.process_region_event("A", RegionEventType.ENTRY)

        assert state.membership_valid_until == int(clock.now) + 3600

    def test_transition_event_data(self, state: MembershipState) -> None:
        state.process_query_response([], [_poi("A")])

        transition = state.process_region_event("A", "entry", timestamp=10.0)

        assert transition is not None
        data = transition.to_event_data()
        assert data["regioneventtype"] == "entry"
        assert data["timestamp"] == 10.0
        assert data["triggeringregion"]["regionid"] == "A"


# ------------------------------------------------------------------
# Snapshots
# ------------------------------------------------------------------


class TestSharedSnapshot:
    def test_snapshot_is_idempotent_while_valid(self, state: MembershipState) -> None:
        state.process_query_response([_poi("X", within=True)], [_poi("N")])

        assert state.get_shared_snapshot() == state.get_shared_snapshot()

    def test_snapshot_contents(self, state: MembershipState) -> None:
        state.process_query_response([_poi("X", within=True)], [_poi("N")])

        snapshot = state.get_shared_snapshot()

        assert [p["regionid"] for p in snapshot["nearbypois"]] == ["X", "N"]
        assert snapshot["currentpoi"]["regionid"] == "X"
        assert snapshot["lastenteredpoi"]["regionid"] == "X"
        assert "lastexitedpoi" not in snapshot
        assert snapshot["authstatus"] == "unknown"
        assert snapshot["validuntil"] == state.membership_valid_until

    def test_expired_membership_is_cleared(self, state: MembershipState, store: MemoryDataStore, clock: _Clock) -> None:
        state.process_query_response([_poi("X", within=True)], [_poi("N")])
        state.process_region_event("X", "exit")
        clock.now = state.membership_valid_until

        snapshot = state.get_shared_snapshot()

        assert "currentpoi" not in snapshot
        assert "lastenteredpoi" not in snapshot
        assert "lastexitedpoi" not in snapshot
        assert snapshot["validuntil"] == 0
        assert [p["regionid"] for p in snapshot["nearbypois"]] == ["X", "N"]
        assert state.last_exited_poi is None
        saved = store.snapshot()
        assert "lastenteredpoi" not in saved
        assert "places_membership_valid_until" not in saved
        assert "nearbypois" in saved

    def test_pois_containing_device(self, state: MembershipState) -> None:
        state.process_query_response([_poi("A", within=True)], [_poi("B"), _poi("C")])
        state.process_region_event("C", "entry")

        within = state.get_pois_containing_device()

        assert [p.identifier for p in within] == ["A", "C"]
        within[0].contains_device = False
        assert state.cached_pois["A"].contains_device is True

    def test_pois_containing_device_empty(self, state: MembershipState) -> None:
        assert state.get_pois_containing_device() == []


# ------------------------------------------------------------------
# Authorization, reset, location
# ------------------------------------------------------------------


class TestAuthorizationAndReset:
    def test_valid_status_persisted(self, state: MembershipState, store: MemoryDataStore) -> None:
        assert state.set_authorization_status("always") == AuthorizationStatus.ALWAYS
        assert store.get_string("authstatus") == "always"

    @pytest.mark.parametrize("status", ["sometimes", None, ""])
    def test_invalid_status_falls_back_to_unknown(self, state: MembershipState, status: str | None) -> None:
        state.set_authorization_status("denied")

        assert state.set_authorization_status(status) == AuthorizationStatus.UNKNOWN

    def test_reset_clears_everything(self, state: MembershipState, store: MemoryDataStore) -> None:
        state.process_query_response([_poi("X", within=True)], [_poi("N")])
        state.process_region_event("X", "exit")
        state.set_authorization_status("wheninuse")
        state.save_last_known_location(37.0, -121.0)

        state.reset()

        assert state.cached_pois == {}
        assert state.current_poi is None
        assert state.last_entered_poi is None
        assert state.last_exited_poi is None
        assert state.membership_valid_until == 0
        assert state.authorization_status == AuthorizationStatus.UNKNOWN
        assert state.load_last_known_location() is None
        assert store.snapshot() == {"places_membership_valid_until": 0, "authstatus": "unknown"}

    def test_last_known_location_round_trip(self, state: MembershipState) -> None:
        state.save_last_known_location(37.5, -122.25)
        assert state.load_last_known_location() == (37.5, -122.25)

        state.save_last_known_location(200.0, 0.0)
        assert state.load_last_known_location() is None


# ------------------------------------------------------------------
# Persistence
# ------------------------------------------------------------------


class TestPersistence:
    def test_state_survives_restart(self, store: MemoryDataStore, clock: _Clock) -> None:
        first = MembershipState(store, membership_ttl=60, clock=clock)
        poi = _poi("X", within=True)
        poi.metadata = {"floor": "2"}
        first.process_query_response([poi], [_poi("N")])
        first.process_region_event("N", "entry")
        first.process_region_event("N", "exit")
        first.set_authorization_status("always")

        second = MembershipState(store, membership_ttl=60, clock=clock)

        assert second.cached_pois == first.cached_pois
        assert second.current_poi == first.current_poi
        assert second.last_entered_poi == first.last_entered_poi
        assert second.last_exited_poi == first.last_exited_poi
        assert second.cached_pois["X"].metadata == {"floor": "2"}
        assert second.authorization_status == AuthorizationStatus.ALWAYS
        assert second.membership_valid_until == first.membership_valid_until

    def test_absent_slots_leave_defaults(self, clock: _Clock) -> None:
        state = MembershipState(MemoryDataStore(), clock=clock)

        assert state.cached_pois == {}
        assert state.current_poi is None
        assert state.authorization_status == AuthorizationStatus.UNKNOWN
        assert state.membership_valid_until == 0

    def test_malformed_slots_treated_as_absent(self, clock: _Clock) -> None:
        store = MemoryDataStore(
            {
                "nearbypois": "{not json",
                "currentpoi": json.dumps({"regionid": "X"}),
                "lastenteredpoi": "[]",
                "lastexitedpoi": json.dumps(_poi("E").to_map()),
                "authstatus": "bogus",
            }
        )

        state = MembershipState(store, clock=clock)

        assert state.cached_pois == {}
        assert state.current_poi is None
        assert state.last_entered_poi is None
        assert state.last_exited_poi is not None
        assert state.last_exited_poi.identifier == "E"
        assert state.authorization_status == AuthorizationStatus.UNKNOWN

    def test_without_datastore_runs_in_memory(self, clock: _Clock) -> None:
        state = MembershipState(None, clock=clock)

        state.process_query_response([_poi("X", within=True)], [])
        state.save_last_known_location(1.0, 2.0)

        assert state.current_poi is not None
        assert state.set_authorization_status("always") == AuthorizationStatus.ALWAYS
        assert state.load_last_known_location() is None
        assert state.get_shared_snapshot()["currentpoi"]["regionid"] == "X"

    def test_failed_write_does_not_strand_stale_slots(
        self, tmp_path: Path, clock: _Clock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "places.json"
        state = MembershipState(JsonFileDataStore(path), clock=clock)
        state.process_query_response([_poi("X", within=True)], [])

        real_replace = os.replace
        calls = {"n": 0}

        def replace_failing_once(src: str, dst: str) -> None:
            calls["n"] += 1
            if calls["n"] == 1:
                raise OSError("disk full")
            real_replace(src, dst)

        monkeypatch.setattr("pyplaces.state.store.os.replace", replace_failing_once)

        state.process_query_response([_poi("Y", within=True)], [])
        state.set_authorization_status("always")

        reloaded = MembershipState(JsonFileDataStore(path), clock=clock)
        assert list(reloaded.cached_pois) == ["Y"]
        assert reloaded.current_poi is not None
        assert reloaded.current_poi.identifier == "Y"
        assert reloaded.last_entered_poi is not None
        assert reloaded.last_entered_poi.identifier == "Y"
        assert [p.name for p in tmp_path.iterdir()] == ["places.json"]
