"""Domain models for the route status pulse."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

RouteStatus = Literal["On Time", "Delayed", "No Active Trips", "Service Alert"]

STATUS_ON_TIME: RouteStatus = "On Time"
STATUS_DELAYED: RouteStatus = "Delayed"
STATUS_NO_ACTIVE_TRIPS: RouteStatus = "No Active Trips"
STATUS_SERVICE_ALERT: RouteStatus = "Service Alert"

DEFAULT_ROUTE_COLOR = "#FFFFFF"
DEFAULT_TEXT_COLOR = "#000000"


@dataclass(frozen=True)
class RouteMeta:
    """Display metadata for one route from routes.txt."""

    route_id: str
    short_name: str
    long_name: Optional[str] = None
    color: str = DEFAULT_ROUTE_COLOR
    text_color: str = DEFAULT_TEXT_COLOR

    @classmethod
    def fallback(cls, route_id: str) -> RouteMeta:
        """Meta for a route id that is missing from the reference table."""
        return cls(route_id=route_id, short_name=route_id)


@dataclass(frozen=True)
class TripUpdate:
    """Live delay for one trip, taken from its first stop-time update."""

    trip_id: Optional[str]
    delay_minutes: Optional[int]


class _PulseModel(BaseModel):
    """Base for wire models: camelCase on output, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SampleDelay(_PulseModel):
    trip_id: Optional[str]
    delay_minutes: Optional[int]


class RouteStatusResult(_PulseModel):
    """Live status of one route, as consumed by the dashboard."""

    route_id: str
    route_short_name: str
    route_long_name: Optional[str] = None
    color: str = DEFAULT_ROUTE_COLOR
    text_color: str = DEFAULT_TEXT_COLOR
    status: RouteStatus
    total_active_trips: int = 0
    delayed_trips: int = 0
    percent_delayed: int = 0
    sample_delays: list[SampleDelay] = []

    @classmethod
    def no_active_trips(cls, meta: RouteMeta) -> RouteStatusResult:
        return cls(
            route_id=meta.route_id,
            route_short_name=meta.short_name,
            route_long_name=meta.long_name or None,
            color=meta.color,
            text_color=meta.text_color,
            status=STATUS_NO_ACTIVE_TRIPS,
        )

    def with_status(self, status: RouteStatus) -> RouteStatusResult:
        """Copy of this result with only the status replaced."""
        return self.model_copy(update={"status": status})


class PulseSnapshot(_PulseModel):
    """The persisted pulse artifact: a timestamp and the ordered route list."""

    updated_at: str
    routes: list[RouteStatusResult] = []

    def to_json_dict(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
