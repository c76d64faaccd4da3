"""Service-alert overlay for aggregated route statuses."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from transit_pulse.logging import get_logger
from transit_pulse.models import STATUS_SERVICE_ALERT, RouteStatusResult
from transit_pulse.services.gtfs_rt.normalizer import GtfsRtNormalizer

logger = get_logger(__name__)


def apply_service_alerts(
    results: Iterable[RouteStatusResult],
    alert_feed: Optional[Any],
) -> List[RouteStatusResult]:
    """Mark every route named by an alert as "Service Alert".

    A route is named when its id or its short name appears in an alert's
    informed entities. Counts and samples are left as aggregated. Without an
    alert feed the results are returned unchanged.
    """
    results = list(results)
    if alert_feed is None:
        return results

    alerted = GtfsRtNormalizer.alerted_route_ids(alert_feed)
    if not alerted:
        return results

    overlaid: List[RouteStatusResult] = []
    flagged = 0
    for result in results:
        if result.route_id in alerted or result.route_short_name in alerted:
            result = result.with_status(STATUS_SERVICE_ALERT)
            flagged += 1
        overlaid.append(result)

    logger.info(
        "Service alerts applied",
        alerted_route_refs=len(alerted),
        routes_flagged=flagged,
    )
    return overlaid
