"""Pulse snapshot building and persistence."""

from transit_pulse.services.pulse.builder import PulseBuilder, PulseResult
from transit_pulse.services.pulse.writer import PulseWriter

__all__ = [
    "PulseBuilder",
    "PulseResult",
    "PulseWriter",
]
