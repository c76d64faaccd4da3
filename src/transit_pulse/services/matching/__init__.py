"""Realtime-to-static trip id matching."""

from transit_pulse.services.matching.engine import TripIdMatcher, UnmatchedSample

__all__ = [
    "TripIdMatcher",
    "UnmatchedSample",
]
