"""Tests for RouteStatusAggregator."""

from __future__ import annotations

from pathlib import Path

import pytest

from transit_pulse.models import (
    STATUS_DELAYED,
    STATUS_NO_ACTIVE_TRIPS,
    STATUS_ON_TIME,
    SampleDelay,
    TripUpdate,
)
from transit_pulse.services.aggregation.engine import RouteStatusAggregator
from transit_pulse.services.gtfs_static.loader import StaticReference, StaticReferenceLoader
from transit_pulse.services.matching.engine import TripIdMatcher

from .fixtures.gtfs_fixture import write_gtfs_dir


@pytest.fixture
def reference(static_dir: Path) -> StaticReference:
    return StaticReferenceLoader(
        static_dir / "routes.txt",
        static_dir / "trips.txt",
        static_dir / "stops.txt",
    ).load()


def _aggregator(reference: StaticReference) -> RouteStatusAggregator:
    return RouteStatusAggregator(reference, TripIdMatcher(reference.trips_to_routes))


def _by_route(results):
    return {r.route_id: r for r in results}


class TestRouteStatusAggregator:
    def test_every_canonical_route_reported(self, reference: StaticReference) -> None:
        results = _aggregator(reference).aggregate([TripUpdate("1001", 0)])

        assert [r.route_id for r in results] == ["R1", "R2", "R10", "RX"]
        statuses = {r.route_id: r.status for r in results}
        assert statuses == {
            "R1": STATUS_ON_TIME,
            "R2": STATUS_NO_ACTIVE_TRIPS,
            "R10": STATUS_NO_ACTIVE_TRIPS,
            "RX": STATUS_NO_ACTIVE_TRIPS,
        }

    def test_idle_route_has_zero_counts(self, reference: StaticReference) -> None:
        idle = _by_route(_aggregator(reference).aggregate([]))["R10"]

        assert idle.total_active_trips == 0
        assert idle.delayed_trips == 0
        assert idle.percent_delayed == 0
        assert idle.sample_delays == []
        assert idle.route_long_name == "Lambton Mall"
        assert idle.color == "#00A651"

    def test_delayed_route(self, reference: StaticReference) -> None:
        updates = [
            TripUpdate("1001", 20),
            TripUpdate("1002", 0),
            TripUpdate("1001_b", 0),
            TripUpdate("1002_b", 0),
        ]
        r1 = _by_route(_aggregator(reference).aggregate(updates))["R1"]

        assert r1.status == STATUS_DELAYED
        assert r1.total_active_trips == 4
        assert r1.delayed_trips == 1
        assert r1.percent_delayed == 25

    def test_sample_delays_first_three_in_feed_order(self, reference: StaticReference) -> None:
        updates = [
            TripUpdate("1002", 3),
            TripUpdate("1001", None),
            TripUpdate("1001_x", 7),
            TripUpdate("1002_x", 9),
        ]
        r1 = _by_route(_aggregator(reference).aggregate(updates))["R1"]

        assert r1.sample_delays == [
            SampleDelay(trip_id="1002", delay_minutes=3),
            SampleDelay(trip_id="1001", delay_minutes=None),
            SampleDelay(trip_id="1001_x", delay_minutes=7),
        ]
        # the missing delay still counts as 0 for statistics
        assert r1.delayed_trips == 2

    def test_unmatched_trips_excluded_and_counted(self, reference: StaticReference) -> None:
        aggregator = _aggregator(reference)
        results = aggregator.aggregate([TripUpdate("ZZZ", 30), TripUpdate(None, 30)])

        assert all(r.status == STATUS_NO_ACTIVE_TRIPS for r in results)
        assert aggregator.stats.trip_updates == 2
        assert aggregator.stats.matched == 0
        assert aggregator.stats.unmatched == 2

    def test_variant_ids_share_a_bucket(self, reference: StaticReference) -> None:
        results = _aggregator(reference).aggregate(
            [TripUpdate("RT84_1200", 0), TripUpdate("RT84_1300", 10)]
        )
        r2 = _by_route(results)["R2"]
        assert r2.total_active_trips == 2
        assert r2.delayed_trips == 1

    def test_route_missing_from_reference_gets_fallback_meta(self) -> None:
        reference = StaticReference(trips_to_routes={"T9": "R9"})
        results = RouteStatusAggregator(
            reference, TripIdMatcher(reference.trips_to_routes)
        ).aggregate([TripUpdate("T9", 1)])

        assert len(results) == 1
        assert results[0].route_id == "R9"
        assert results[0].route_short_name == "R9"
        assert results[0].route_long_name is None
        assert results[0].color == "#FFFFFF"
        assert results[0].text_color == "#000000"

    def test_ordered_by_short_name(self, tmp_path: Path) -> None:
        directory = write_gtfs_dir(
            tmp_path,
            routes="route_id,route_short_name\nA,20\nB,3\nC,Night\nD,10\n",
            trips="trip_id,route_id\nTA,A\nTC,C\n",
        )
        reference = StaticReferenceLoader(
            directory / "routes.txt", directory / "trips.txt", directory / "stops.txt"
        ).load()
        results = _aggregator(reference).aggregate([TripUpdate("TC", 0), TripUpdate("TA", 0)])

        assert [r.route_short_name for r in results] == ["3", "10", "20", "Night"]

    def test_stats_count_active_and_idle(self, reference: StaticReference) -> None:
        aggregator = _aggregator(reference)
        aggregator.aggregate([TripUpdate("1001", 0), TripUpdate("3001", 0)])

        assert aggregator.stats.active_routes == 2
        assert aggregator.stats.idle_routes == 2
