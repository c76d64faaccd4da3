"""GTFS-Realtime feed loading for trip updates and service alerts."""

from transit_pulse.services.gtfs_rt.decoder import GtfsRtDecoder
from transit_pulse.services.gtfs_rt.fetcher import GtfsRtFetcher
from transit_pulse.services.gtfs_rt.normalizer import GtfsRtNormalizer
from transit_pulse.services.gtfs_rt.source import FeedLoader, FeedSource

__all__ = [
    "FeedLoader",
    "FeedSource",
    "GtfsRtDecoder",
    "GtfsRtFetcher",
    "GtfsRtNormalizer",
]
