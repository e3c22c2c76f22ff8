"""Metric sources maintained in-process."""

from opsalert.metrics.infrastructure import HostMetricsCollector
from opsalert.metrics.performance import EndpointStats, PerformanceTracker, RequestSample

__all__ = [
    "EndpointStats",
    "HostMetricsCollector",
    "PerformanceTracker",
    "RequestSample",
]
