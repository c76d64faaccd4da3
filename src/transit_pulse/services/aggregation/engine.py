"""Route status aggregation.

Buckets realtime trip updates by the static route their trip id resolves to,
computes per-route delay statistics and classifies each route.

Design notes
------------
- Trip updates whose id does not resolve are dropped (the matcher samples them).
- Buckets keep the order in which their first trip appeared in the feed;
  ``sampleDelays`` is the first three trips of a bucket in feed order.
- Every canonical route without a matched trip is reported as
  "No Active Trips" with zero counts.
- Final order is by route short name (see `scorer.compare_short_names`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from transit_pulse.logging import get_logger
from transit_pulse.models import RouteStatusResult, SampleDelay, TripUpdate
from transit_pulse.services.aggregation.scorer import (
    Thresholds,
    classify_status,
    compute_bucket_stats,
    short_name_sort_key,
)

if TYPE_CHECKING:
    from transit_pulse.services.gtfs_static.loader import StaticReference
    from transit_pulse.services.matching.engine import TripIdMatcher

logger = get_logger(__name__)

SAMPLE_DELAY_COUNT = 3


@dataclass
class AggregationStats:
    trip_updates: int = 0
    matched: int = 0
    unmatched: int = 0
    active_routes: int = 0
    idle_routes: int = 0


class RouteStatusAggregator:
    """Turns one run's trip updates into ordered per-route status results."""

    def __init__(
        self,
        reference: StaticReference,
        matcher: TripIdMatcher,
        thresholds: Optional[Thresholds] = None,
    ) -> None:
        self._reference = reference
        self._matcher = matcher
        self.thresholds = thresholds or Thresholds()
        self.stats = AggregationStats()

    def bucket_trip_updates(
        self, trip_updates: Iterable[TripUpdate]
    ) -> Dict[str, List[TripUpdate]]:
        """Group trip updates by resolved route id, in first-seen order."""
        buckets: Dict[str, List[TripUpdate]] = {}
        for update in trip_updates:
            self.stats.trip_updates += 1
            route_id = self._matcher.lookup_route(update.trip_id)
            if route_id is None:
                self.stats.unmatched += 1
                continue
            self.stats.matched += 1
            buckets.setdefault(route_id, []).append(update)
        return buckets

    def aggregate(self, trip_updates: Iterable[TripUpdate]) -> List[RouteStatusResult]:
        """Per-route results for every matched route plus idle canonical routes."""
        buckets = self.bucket_trip_updates(trip_updates)

        results = [self._route_result(route_id, trips) for route_id, trips in buckets.items()]
        self.stats.active_routes = len(results)

        seen = {result.route_id for result in results}
        for meta in self._reference.canonical_routes():
            if meta.route_id in seen:
                continue
            results.append(RouteStatusResult.no_active_trips(meta))
            self.stats.idle_routes += 1

        results.sort(key=lambda r: short_name_sort_key(r.route_short_name))

        logger.info(
            "Route statuses aggregated",
            trip_updates=self.stats.trip_updates,
            matched=self.stats.matched,
            unmatched=self.stats.unmatched,
            active_routes=self.stats.active_routes,
            idle_routes=self.stats.idle_routes,
        )
        return results

    def _route_result(self, route_id: str, trips: List[TripUpdate]) -> RouteStatusResult:
        meta = self._reference.route_meta(route_id)
        bucket = compute_bucket_stats([t.delay_minutes for t in trips], self.thresholds)
        return RouteStatusResult(
            route_id=meta.route_id,
            route_short_name=meta.short_name,
            route_long_name=meta.long_name or None,
            color=meta.color,
            text_color=meta.text_color,
            status=classify_status(bucket, self.thresholds),
            total_active_trips=bucket.total,
            delayed_trips=bucket.delayed,
            percent_delayed=bucket.percent_delayed,
            sample_delays=[
                SampleDelay(trip_id=t.trip_id, delay_minutes=t.delay_minutes)
                for t in trips[:SAMPLE_DELAY_COUNT]
            ],
        )
