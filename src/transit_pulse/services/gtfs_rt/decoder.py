"""GTFS-RT protobuf decoding."""

from __future__ import annotations

from collections import Counter

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from transit_pulse.logging import get_logger

logger = get_logger(__name__)

# FeedEntity payload fields, one per entity
ENTITY_KINDS = ("trip_update", "vehicle", "alert")


class FeedDecodeError(Exception):
    """Raised when a payload is not a GTFS-RT FeedMessage."""


class GtfsRtDecoder:
    """Turns raw protobuf payloads into ``FeedMessage`` objects."""

    @staticmethod
    def decode(data: bytes, feed_type: str) -> gtfs_realtime_pb2.FeedMessage:
        """Parse ``data``; the entity mix is logged for the run.

        Raises:
            FeedDecodeError: If protobuf parsing fails.
        """
        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(data)
        except DecodeError as exc:
            raise FeedDecodeError(f"{feed_type} payload is not a GTFS-RT FeedMessage") from exc

        logger.info(
            "GTFS-RT feed decoded",
            feed_type=feed_type,
            entities=dict(GtfsRtDecoder.entity_kinds(feed)),
            feed_timestamp=GtfsRtDecoder.get_feed_timestamp(feed),
            gtfs_rt_version=feed.header.gtfs_realtime_version or None,
        )
        return feed

    @staticmethod
    def entity_kinds(feed: gtfs_realtime_pb2.FeedMessage) -> Counter[str]:
        """Count entities by payload kind, plus "deleted" and "other" (no payload)."""
        kinds: Counter[str] = Counter()
        for entity in feed.entity:
            kind = next((k for k in ENTITY_KINDS if entity.HasField(k)), "other")
            kinds["deleted" if entity.is_deleted else kind] += 1
        return kinds

    @staticmethod
    def get_feed_timestamp(feed: gtfs_realtime_pb2.FeedMessage) -> int:
        """Header timestamp (unix seconds), or 0 if not set."""
        return feed.header.timestamp or 0
