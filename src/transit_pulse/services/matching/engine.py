"""Trip-id matcher: resolves realtime trip ids to static route ids.

Realtime vendors rarely publish trip ids in exactly the form used by
trips.txt (agency prefixes like ``1:RT84``, service suffixes like
``RT84_1200``). Lookup is a best-effort fuzzy join:

1. exact match against trips.txt,
2. each variant of the queried id against the variant index,
3. bidirectional substring containment against every index key.

Steps 2 and 3 return the first hit in index insertion order, and the index
keeps the first route written for each variant. Results therefore depend on
the row order of trips.txt; the index must stay an insertion-ordered dict.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from transit_pulse.logging import get_logger

logger = get_logger(__name__)

UNMATCHED_SAMPLE_CAP = 1000

PREFIX_LENGTHS = (2, 3, 4)

_NON_DIGITS = re.compile(r"\D+")


def build_trip_id_variants(trip_id: Optional[str]) -> List[str]:
    """Expand a trip id into its lookup variants, in probe order.

    Order: full id, suffix after the last ``:``, prefix before the first
    ``_``, digits only, then 2/3/4-character prefixes. Empty and repeated
    variants are dropped; the first occurrence keeps its position.

    Examples:
        "1:RT84_1200" -> ["1:RT84_1200", "RT84_1200", "1:RT84", "1841200", "1:", "1:R", "1:RT"]
    """
    s = str(trip_id or "").strip()
    if not s:
        return []

    candidates = [
        s,
        s.rsplit(":", 1)[-1],
        s.split("_", 1)[0],
        _NON_DIGITS.sub("", s),
    ]
    candidates.extend(s[:n] for n in PREFIX_LENGTHS if len(s) >= n)

    # dict keeps first-seen order
    return [v for v in dict.fromkeys(candidates) if v]


def build_trip_id_index(trips_to_routes: Mapping[str, str]) -> Dict[str, str]:
    """Map every variant of every known trip id to a route id, first writer wins."""
    index: Dict[str, str] = {}
    for trip_id, route_id in trips_to_routes.items():
        for variant in build_trip_id_variants(trip_id):
            index.setdefault(variant, route_id)
    return index


@dataclass
class UnmatchedSample:
    """Insertion-ordered sample of trip ids that could not be matched.

    Cleared wholesale when it would grow past ``cap`` entries.
    """

    cap: int = UNMATCHED_SAMPLE_CAP
    _ids: Dict[str, None] = field(default_factory=dict)

    def add(self, trip_id: str) -> None:
        if not trip_id:
            return
        self._ids[trip_id] = None
        if len(self._ids) > self.cap:
            self._ids.clear()

    def sample(self, limit: Optional[int] = None) -> List[str]:
        ids = list(self._ids)
        return ids if limit is None else ids[:limit]

    def clear(self) -> None:
        self._ids.clear()

    def __len__(self) -> int:
        return len(self._ids)


class TripIdMatcher:
    """Resolves realtime trip ids against one run's trips.txt mapping."""

    def __init__(
        self,
        trips_to_routes: Mapping[str, str],
        unmatched: Optional[UnmatchedSample] = None,
    ) -> None:
        self._trips_to_routes = dict(trips_to_routes)
        self._index = build_trip_id_index(self._trips_to_routes)
        self.unmatched = unmatched if unmatched is not None else UnmatchedSample()
        logger.info(
            "Trip id index built",
            trips=len(self._trips_to_routes),
            index_entries=len(self._index),
        )

    @property
    def index_size(self) -> int:
        return len(self._index)

    def lookup_route(self, trip_id: Optional[str]) -> Optional[str]:
        """Return the route id for a realtime trip id, or None when unmatched."""
        query = str(trip_id or "").strip()
        if not query:
            return None

        route_id = self._trips_to_routes.get(query)
        if route_id is not None:
            return route_id

        for variant in build_trip_id_variants(query):
            route_id = self._index.get(variant)
            if route_id is not None:
                return route_id

        # permissive: 2-char prefix keys match many ids
        for key, route_id in self._index.items():
            if key in query or query in key:
                return route_id

        self.unmatched.add(query)
        return None
