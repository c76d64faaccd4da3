"""Resolution of where a GTFS-RT feed comes from: local file, remote URL, or nowhere."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from google.transit import gtfs_realtime_pb2

from transit_pulse.logging import get_logger
from transit_pulse.services.gtfs_rt.decoder import FeedDecodeError, GtfsRtDecoder
from transit_pulse.services.gtfs_rt.fetcher import FeedFetchError, GtfsRtFetcher

logger = get_logger(__name__)

FEED_TRIP_UPDATES = "trip_updates"
FEED_SERVICE_ALERTS = "service_alerts"


class SourceKind(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"
    ABSENT = "absent"


@dataclass(frozen=True)
class FeedSource:
    """Where one feed is read from for this run."""

    feed_type: str
    kind: SourceKind
    location: Optional[str] = None

    @classmethod
    def resolve(
        cls,
        feed_type: str,
        local_path: Optional[Path] = None,
        url: Optional[str] = None,
    ) -> FeedSource:
        """Prefer an existing local file, then a configured URL, else absent."""
        if local_path is not None and Path(local_path).is_file():
            return cls(feed_type, SourceKind.LOCAL, str(local_path))
        if url:
            return cls(feed_type, SourceKind.REMOTE, url)
        return cls(feed_type, SourceKind.ABSENT)


@dataclass
class FeedLoadResult:
    source: FeedSource
    feed: Optional[gtfs_realtime_pb2.FeedMessage] = None
    error: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.feed is not None


class FeedLoader:
    """Loads a feed from its resolved source; failures yield an absent feed."""

    def __init__(
        self,
        fetcher: Optional[GtfsRtFetcher] = None,
        decoder: Optional[GtfsRtDecoder] = None,
    ) -> None:
        self._fetcher = fetcher or GtfsRtFetcher()
        self._decoder = decoder or GtfsRtDecoder()

    async def load(self, source: FeedSource) -> FeedLoadResult:
        result = FeedLoadResult(source=source)

        if source.kind is SourceKind.ABSENT:
            logger.info("No GTFS-RT source configured", feed_type=source.feed_type)
            return result

        try:
            if source.kind is SourceKind.LOCAL:
                data, _ = self._fetcher.read_local(Path(str(source.location)), source.feed_type)
            else:
                data, _ = await self._fetcher.fetch(str(source.location), source.feed_type)
            result.feed = self._decoder.decode(data, source.feed_type)
        except (FeedFetchError, FeedDecodeError) as exc:
            result.error = str(exc)
            logger.error(
                "GTFS-RT feed unavailable",
                feed_type=source.feed_type,
                source=source.kind.value,
                location=source.location,
                error=str(exc),
                cause=str(exc.__cause__) if exc.__cause__ else None,
            )

        return result
