"""GTFS reference normalizer - cleans raw CSV rows into lookup entries."""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from transit_pulse.models import DEFAULT_ROUTE_COLOR, RouteMeta
from transit_pulse.services.gtfs_static.parser import pick_field

# Historical column spellings seen in exported feeds, in preference order
ROUTE_ID_COLUMNS = ("route_id", "RouteID", "RouteId")
ROUTE_SHORT_NAME_COLUMNS = ("route_short_name", "routeShortName", "route_short")
ROUTE_LONG_NAME_COLUMNS = ("route_long_name", "routeLongName")
ROUTE_COLOR_COLUMNS = ("route_color", "routeColor")
ROUTE_TEXT_COLOR_COLUMNS = ("route_text_color", "routeTextColor")
TRIP_ID_COLUMNS = ("trip_id", "TripID")
TRIP_ROUTE_ID_COLUMNS = ("route_id", "RouteID")
STOP_ID_COLUMNS = ("stop_id", "StopID")
STOP_NAME_COLUMNS = ("stop_name", "stopName")

LUMINANCE_CUTOFF = 186

_HEX_RE = re.compile(r"^[0-9A-F]{6}$")


class NormalizationError(Exception):
    """Raised when a row lacks its required identifier."""


def normalize_hex(value: Any) -> Optional[str]:
    """Return ``#RRGGBB`` (uppercase) or None when the value is not a 6-digit hex colour."""
    if value is None:
        return None
    clean = str(value).strip().upper()
    if clean.startswith("#"):
        clean = clean[1:]
    if not _HEX_RE.match(clean):
        return None
    return f"#{clean}"


def contrasting_text_color(background: Any) -> str:
    """Black or white text, whichever reads better on ``background``.

    luminance = 0.299*R + 0.587*G + 0.114*B; black above 186, white otherwise.
    Unparseable backgrounds get black text.
    """
    hex_color = normalize_hex(background)
    if hex_color is None:
        return "#000000"
    r = int(hex_color[1:3], 16)
    g = int(hex_color[3:5], 16)
    b = int(hex_color[5:7], 16)
    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    return "#000000" if luminance > LUMINANCE_CUTOFF else "#FFFFFF"


class GtfsNormalizer:
    """Normalizes raw reference rows into lookup entries."""

    @staticmethod
    def normalize_route(row: Mapping[str, Any]) -> RouteMeta:
        """Normalize a routes.txt row.

        Raises:
            NormalizationError: If the route id is missing.
        """
        route_id = pick_field(row, ROUTE_ID_COLUMNS)
        if not route_id:
            raise NormalizationError("Missing route_id")

        color = normalize_hex(pick_field(row, ROUTE_COLOR_COLUMNS)) or DEFAULT_ROUTE_COLOR
        text_color = normalize_hex(
            pick_field(row, ROUTE_TEXT_COLOR_COLUMNS)
        ) or contrasting_text_color(color)

        return RouteMeta(
            route_id=route_id,
            short_name=pick_field(row, ROUTE_SHORT_NAME_COLUMNS) or route_id,
            long_name=pick_field(row, ROUTE_LONG_NAME_COLUMNS) or None,
            color=color,
            text_color=text_color,
        )

    @staticmethod
    def normalize_trip(row: Mapping[str, Any]) -> tuple[str, str]:
        """Normalize a trips.txt row into ``(trip_id, route_id)``.

        Raises:
            NormalizationError: If either id is missing.
        """
        trip_id = pick_field(row, TRIP_ID_COLUMNS)
        route_id = pick_field(row, TRIP_ROUTE_ID_COLUMNS)
        if not trip_id:
            raise NormalizationError("Missing trip_id")
        if not route_id:
            raise NormalizationError(f"Missing route_id for trip_id={trip_id}")
        return trip_id, route_id

    @staticmethod
    def normalize_stop(row: Mapping[str, Any]) -> tuple[str, str]:
        """Normalize a stops.txt row into ``(stop_id, stop_name)``.

        Raises:
            NormalizationError: If the stop id is missing.
        """
        stop_id = pick_field(row, STOP_ID_COLUMNS)
        if not stop_id:
            raise NormalizationError("Missing stop_id")
        return stop_id, pick_field(row, STOP_NAME_COLUMNS)
