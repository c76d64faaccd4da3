"""Route status pulse pipeline: one full run from reference tables to snapshot."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from transit_pulse.config import Settings, get_settings
from transit_pulse.logging import bind_run_context, clear_run_context, get_logger
from transit_pulse.models import STATUS_SERVICE_ALERT, PulseSnapshot, RouteStatusResult
from transit_pulse.services.aggregation.alerts import apply_service_alerts
from transit_pulse.services.aggregation.engine import RouteStatusAggregator
from transit_pulse.services.aggregation.scorer import Thresholds
from transit_pulse.services.gtfs_rt.fetcher import GtfsRtFetcher
from transit_pulse.services.gtfs_rt.normalizer import GtfsRtNormalizer
from transit_pulse.services.gtfs_rt.source import (
    FEED_SERVICE_ALERTS,
    FEED_TRIP_UPDATES,
    FeedLoader,
    FeedSource,
)
from transit_pulse.services.gtfs_static.loader import (
    TABLE_ROUTES,
    TABLE_TRIPS,
    StaticReferenceLoader,
)
from transit_pulse.services.matching.engine import TripIdMatcher
from transit_pulse.services.pulse.writer import PulseWriter

logger = get_logger(__name__)

# Tables without which no route can be reported
REQUIRED_TABLES = (TABLE_ROUTES, TABLE_TRIPS)


class StaticReferenceError(Exception):
    """Raised when a required reference table could not be loaded."""


@dataclass
class PulseReport:
    """Summary of a pulse run."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    started_at: str = ""
    ended_at: str = ""
    duration_ms: int = 0
    route_count: int = 0
    trip_updates: int = 0
    matched_trips: int = 0
    unmatched_trips: int = 0
    alerted_routes: int = 0
    trip_updates_source: str = ""
    alerts_source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_ms": self.duration_ms,
            "route_count": self.route_count,
            "trip_updates": self.trip_updates,
            "matched_trips": self.matched_trips,
            "unmatched_trips": self.unmatched_trips,
            "alerted_routes": self.alerted_routes,
            "trip_updates_source": self.trip_updates_source,
            "alerts_source": self.alerts_source,
        }


@dataclass
class PulseResult:
    """Outcome of a run; ``ok`` is False when a degraded snapshot was written."""

    snapshot: PulseSnapshot
    report: PulseReport
    ok: bool = True
    error: Optional[str] = None
    unmatched_trip_ids: List[str] = field(default_factory=list)


class PulseBuilder:
    """Builds and persists the route status pulse.

    Every call to `run` rebuilds all lookups from scratch; nothing is shared
    between runs. Runs are not serialized here: two concurrent runs write
    independently and the later write wins.

    Usage:
        result = await PulseBuilder().run()
        if not result.ok:
            ...
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        feed_loader: Optional[FeedLoader] = None,
        writer: Optional[PulseWriter] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.thresholds = Thresholds(
            delay_minutes=self.settings.delay_minutes_threshold,
            percent_delayed=self.settings.percent_delayed_threshold,
            major_delay_minutes=self.settings.major_delay_minutes,
        )
        self._feed_loader = feed_loader or FeedLoader(
            fetcher=GtfsRtFetcher(timeout_sec=self.settings.realtime_timeout_sec)
        )
        self._writer = writer or PulseWriter(self.settings.output_file)
        self._normalizer = GtfsRtNormalizer()

    async def run(self) -> PulseResult:
        """Execute one pipeline run. Never raises for pipeline failures."""
        report = PulseReport()
        started = datetime.now(timezone.utc)
        report.started_at = started.isoformat()
        t0 = time.monotonic()

        bind_run_context(run_id=report.run_id)
        logger.info("Pulse run started", output_file=str(self.settings.output_file))

        try:
            result = await self._run(report, started)
        except Exception as exc:
            logger.error("Pulse run failed, writing empty snapshot", exc_info=exc)
            result = self._degraded(report, started, exc)

        report.duration_ms = int((time.monotonic() - t0) * 1000)
        report.ended_at = datetime.now(timezone.utc).isoformat()
        logger.info("Pulse run complete", ok=result.ok, report=report.to_dict())
        clear_run_context()
        return result

    async def _run(self, report: PulseReport, started: datetime) -> PulseResult:
        settings = self.settings

        reference = StaticReferenceLoader(
            settings.routes_file, settings.trips_file, settings.stops_file
        ).load()
        missing = [table for table in REQUIRED_TABLES if table in reference.errors]
        if missing:
            msg = f"Required reference tables unavailable: {', '.join(missing)}"
            raise StaticReferenceError(msg)

        matcher = TripIdMatcher(reference.trips_to_routes)

        trip_source = FeedSource.resolve(
            FEED_TRIP_UPDATES, settings.trip_updates_local, settings.trip_updates_url
        )
        alert_source = FeedSource.resolve(
            FEED_SERVICE_ALERTS, settings.alerts_local, settings.alerts_url
        )
        report.trip_updates_source = trip_source.kind.value
        report.alerts_source = alert_source.kind.value

        trip_feed = await self._feed_loader.load(trip_source)
        alert_feed = await self._feed_loader.load(alert_source)

        statuses: List[RouteStatusResult] = []
        if trip_feed.present:
            aggregator = RouteStatusAggregator(reference, matcher, self.thresholds)
            trip_updates = self._normalizer.normalize_trip_updates(trip_feed.feed)
            statuses = aggregator.aggregate(trip_updates)
            report.trip_updates = aggregator.stats.trip_updates
            report.matched_trips = aggregator.stats.matched
            report.unmatched_trips = aggregator.stats.unmatched
        else:
            logger.warning("No trip updates this run, reporting no routes")

        routes = apply_service_alerts(statuses, alert_feed.feed)
        report.alerted_routes = sum(1 for r in routes if r.status == STATUS_SERVICE_ALERT)
        report.route_count = len(routes)

        snapshot = PulseSnapshot(updated_at=started.isoformat(), routes=routes)
        self._writer.write(snapshot)

        unmatched = matcher.unmatched.sample(settings.debug_sample_limit)
        if unmatched:
            logger.warning("Unmatched trip id samples", trip_ids=unmatched)

        return PulseResult(snapshot=snapshot, report=report, unmatched_trip_ids=unmatched)

    def _degraded(self, report: PulseReport, started: datetime, exc: Exception) -> PulseResult:
        snapshot = PulseSnapshot(updated_at=started.isoformat(), routes=[])
        report.route_count = 0
        try:
            self._writer.write(snapshot)
        except OSError as write_exc:
            logger.error(
                "Failed to write empty snapshot",
                path=str(self._writer.output_file),
                error=str(write_exc),
            )
        return PulseResult(snapshot=snapshot, report=report, ok=False, error=str(exc))
