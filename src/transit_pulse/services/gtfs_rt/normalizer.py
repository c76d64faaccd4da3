"""GTFS-RT normalizer: feed entities to trip delays and alerted routes.

Accepts decoded ``FeedMessage`` objects and also their dict form (as
produced by ``google.protobuf.json_format.MessageToDict``), where fields use
camelCase names.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional

from transit_pulse.logging import get_logger
from transit_pulse.models import TripUpdate

logger = get_logger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _field(obj: Any, name: str) -> Any:
    """Value of a set field (snake_case or camelCase), or None when unset."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        value = obj.get(name)
        return value if value is not None else obj.get(_camel(name))
    try:
        if not obj.HasField(name):
            return None
    except ValueError:
        # repeated fields cannot be probed with HasField
        pass
    return getattr(obj, name, None)


def _entities(feed: Any) -> Iterable[Any]:
    return _field(feed, "entity") or []


def delay_seconds_to_minutes(delay_sec: Optional[float]) -> Optional[int]:
    """Round a delay in seconds to whole minutes, halves rounding up."""
    if delay_sec is None:
        return None
    return math.floor(delay_sec / 60 + 0.5)


class GtfsRtNormalizer:
    """Normalizes decoded GTFS-RT entities for route aggregation."""

    @staticmethod
    def first_stop_delay_seconds(trip_update: Any) -> Optional[int]:
        """Delay of the first stop-time update: arrival delay, else departure delay."""
        updates = list(_field(trip_update, "stop_time_update") or [])
        if not updates:
            return None
        first = updates[0]
        for event_name in ("arrival", "departure"):
            delay = _field(_field(first, event_name), "delay")
            if delay is not None:
                return int(delay)
        return None

    @staticmethod
    def normalize_trip_updates(feed: Any) -> list[TripUpdate]:
        """One `TripUpdate` per entity that carries a trip update, in feed order."""
        updates: list[TripUpdate] = []
        for entity in _entities(feed):
            tu = _field(entity, "trip_update")
            if tu is None:
                continue
            trip_id = _field(_field(tu, "trip"), "trip_id") or None
            delay_sec = GtfsRtNormalizer.first_stop_delay_seconds(tu)
            updates.append(
                TripUpdate(
                    trip_id=str(trip_id) if trip_id else None,
                    delay_minutes=delay_seconds_to_minutes(delay_sec),
                )
            )
        return updates

    @staticmethod
    def alerted_route_ids(feed: Any) -> set[str]:
        """Route ids referenced by any alert's informed entities."""
        route_ids: set[str] = set()
        for entity in _entities(feed):
            alert = _field(entity, "alert")
            if alert is None:
                continue
            for informed in _field(alert, "informed_entity") or []:
                route_id = _field(informed, "route_id")
                if route_id and str(route_id).strip():
                    route_ids.add(str(route_id).strip())
        return route_ids
