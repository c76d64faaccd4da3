"""Static GTFS reference loading (routes, trips, stops)."""

from transit_pulse.services.gtfs_static.loader import StaticReference, StaticReferenceLoader
from transit_pulse.services.gtfs_static.normalizer import GtfsNormalizer
from transit_pulse.services.gtfs_static.parser import GtfsTableReader

__all__ = [
    "GtfsNormalizer",
    "GtfsTableReader",
    "StaticReference",
    "StaticReferenceLoader",
]
