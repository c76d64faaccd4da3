"""Static GTFS reference loader: routes, trips and stops lookups for one run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List

from transit_pulse.logging import get_logger
from transit_pulse.models import RouteMeta
from transit_pulse.services.gtfs_static.normalizer import GtfsNormalizer, NormalizationError
from transit_pulse.services.gtfs_static.parser import GtfsTableReader, StaticFileError

logger = get_logger(__name__)

TABLE_ROUTES = "routes"
TABLE_TRIPS = "trips"
TABLE_STOPS = "stops"


@dataclass
class StaticReference:
    """Lookups built from the reference tables.

    ``routes`` is keyed by both route id and short name; both keys share one
    RouteMeta instance. ``errors`` maps a table name to its load failure.
    """

    routes: Dict[str, RouteMeta] = field(default_factory=dict)
    trips_to_routes: Dict[str, str] = field(default_factory=dict)
    stops: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def canonical_routes(self) -> List[RouteMeta]:
        """Distinct route metas, in first-insertion order."""
        seen: set[int] = set()
        result: List[RouteMeta] = []
        for meta in self.routes.values():
            if id(meta) in seen:
                continue
            seen.add(id(meta))
            result.append(meta)
        return result

    def route_meta(self, route_id: str) -> RouteMeta:
        return self.routes.get(route_id) or RouteMeta.fallback(route_id)


class StaticReferenceLoader:
    """Loads routes.txt, trips.txt and stops.txt into a `StaticReference`.

    Each table loads independently: a failure is logged, recorded in
    ``StaticReference.errors`` and leaves only that lookup empty.
    """

    def __init__(
        self,
        routes_file: Path,
        trips_file: Path,
        stops_file: Path,
        reader: GtfsTableReader | None = None,
    ) -> None:
        self.routes_file = Path(routes_file)
        self.trips_file = Path(trips_file)
        self.stops_file = Path(stops_file)
        self._reader = reader or GtfsTableReader()
        self._normalizer = GtfsNormalizer()

    def load(self) -> StaticReference:
        reference = StaticReference()

        self._load_table(TABLE_ROUTES, self.routes_file, reference, self._add_routes)
        self._load_table(TABLE_TRIPS, self.trips_file, reference, self._add_trips)
        self._load_table(TABLE_STOPS, self.stops_file, reference, self._add_stops)

        logger.info(
            "Static reference loaded",
            routes=len(reference.canonical_routes()),
            trips=len(reference.trips_to_routes),
            stops=len(reference.stops),
            failed_tables=sorted(reference.errors) or None,
        )
        return reference

    def _load_table(
        self,
        table: str,
        path: Path,
        reference: StaticReference,
        add_rows: Callable[[List[Dict[str, str]], StaticReference], int],
    ) -> None:
        try:
            rows = self._reader.read(path)
        except StaticFileError as exc:
            reference.errors[table] = str(exc)
            logger.error(
                "Reference table load failed",
                table=table,
                path=str(path),
                error=str(exc),
                cause=str(exc.__cause__) if exc.__cause__ else None,
            )
            return

        skipped = add_rows(rows, reference)
        if skipped:
            logger.warning(
                "Skipped reference rows without identifiers",
                table=table,
                skipped=skipped,
            )

    def _add_routes(self, rows: List[Dict[str, str]], reference: StaticReference) -> int:
        skipped = 0
        for row in rows:
            try:
                meta = self._normalizer.normalize_route(row)
            except NormalizationError:
                skipped += 1
                continue
            reference.routes[meta.route_id] = meta
            reference.routes[meta.short_name] = meta
        return skipped

    def _add_trips(self, rows: List[Dict[str, str]], reference: StaticReference) -> int:
        skipped = 0
        for row in rows:
            try:
                trip_id, route_id = self._normalizer.normalize_trip(row)
            except NormalizationError:
                skipped += 1
                continue
            reference.trips_to_routes[trip_id] = route_id
        return skipped

    def _add_stops(self, rows: List[Dict[str, str]], reference: StaticReference) -> int:
        skipped = 0
        for row in rows:
            try:
                stop_id, stop_name = self._normalizer.normalize_stop(row)
            except NormalizationError:
                skipped += 1
                continue
            reference.stops[stop_id] = stop_name
        return skipped
