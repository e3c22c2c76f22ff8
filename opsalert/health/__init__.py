"""Health checks — weighted aggregation and concurrent check execution."""

from opsalert.health.aggregator import (
    CheckClass,
    aggregate,
    check_deduction,
    classify_check,
    classify_result,
    status_for_score,
)
from opsalert.health.checker import (
    CallableHealthCheck,
    HealthCheckProvider,
    HealthCheckRunner,
    SystemResourcesHealthCheck,
)

__all__ = [
    "CallableHealthCheck",
    "CheckClass",
    "HealthCheckProvider",
    "HealthCheckRunner",
    "SystemResourcesHealthCheck",
    "aggregate",
    "check_deduction",
    "classify_check",
    "classify_result",
    "status_for_score",
]
