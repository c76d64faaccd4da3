"""Pure-Python status classification and ordering helpers.

All functions here are stateless and free of I/O so they can be unit-tested
without feeds, files or a settings object.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Optional, Sequence

from transit_pulse.models import STATUS_DELAYED, STATUS_ON_TIME, RouteStatus

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

# Defaults match the config defaults.  Pass explicit values in tests to avoid
# depending on the settings singleton.
_DEFAULT_DELAY_MINUTES = 5
_DEFAULT_PERCENT_DELAYED = 0.20
_DEFAULT_MAJOR_DELAY_MINUTES = 15


@dataclass(frozen=True)
class Thresholds:
    delay_minutes: int = _DEFAULT_DELAY_MINUTES
    percent_delayed: float = _DEFAULT_PERCENT_DELAYED
    major_delay_minutes: int = _DEFAULT_MAJOR_DELAY_MINUTES


@dataclass(frozen=True)
class BucketStats:
    total: int
    delayed: int
    major_delay: bool
    fraction_delayed: float

    @property
    def percent_delayed(self) -> int:
        return round_half_up(self.fraction_delayed * 100)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity."""
    return math.floor(value + 0.5)


def compute_bucket_stats(
    delays: Sequence[Optional[int]],
    thresholds: Thresholds = Thresholds(),
) -> BucketStats:
    """Delay statistics for one route bucket.

    Missing delays count as 0 minutes. A trip is delayed when its delay is
    strictly greater than ``thresholds.delay_minutes``; a major delay is any
    delay strictly greater than ``thresholds.major_delay_minutes``.
    """
    normalized = [d if d is not None else 0 for d in delays]
    total = len(normalized)
    delayed = sum(1 for d in normalized if d > thresholds.delay_minutes)
    major = any(d > thresholds.major_delay_minutes for d in normalized)
    fraction = delayed / total if total else 0.0
    return BucketStats(total=total, delayed=delayed, major_delay=major, fraction_delayed=fraction)


def classify_status(stats: BucketStats, thresholds: Thresholds = Thresholds()) -> RouteStatus:
    """Delayed on any major delay or when the delayed share reaches the threshold."""
    if stats.major_delay or stats.fraction_delayed >= thresholds.percent_delayed:
        return STATUS_DELAYED
    return STATUS_ON_TIME


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def leading_int(value: str) -> Optional[int]:
    """Integer at the start of ``value`` ("10A" -> 10), or None."""
    match = _LEADING_INT.match(value or "")
    return int(match.group(1)) if match else None


def compare_short_names(a: str, b: str) -> int:
    """Numeric when both names start with an integer, else case-insensitive text.

    Text is compared on casefolded names so the order matches a
    locale-aware collation ("b" before "C") rather than raw code points,
    where every uppercase letter sorts ahead of every lowercase one. Names
    differing only in case are then ordered case-sensitively so the
    comparison stays total.
    """
    na, nb = leading_int(a), leading_int(b)
    if na is not None and nb is not None:
        return (na > nb) - (na < nb)
    fa, fb = (a or "").casefold(), (b or "").casefold()
    if fa != fb:
        return (fa > fb) - (fa < fb)
    return ((a or "") > (b or "")) - ((a or "") < (b or ""))


short_name_sort_key = cmp_to_key(compare_short_names)
