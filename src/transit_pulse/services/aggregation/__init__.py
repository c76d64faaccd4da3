"""Route status aggregation and service-alert overlay."""

from transit_pulse.services.aggregation.alerts import apply_service_alerts
from transit_pulse.services.aggregation.engine import RouteStatusAggregator

__all__ = [
    "RouteStatusAggregator",
    "apply_service_alerts",
]
