"""Alerting — rule evaluation, alert lifecycle and statistics."""

from opsalert.alerting.manager import AlertManager
from opsalert.alerting.rules import RuleEvaluator, Snapshots, extract_metric, severity_for
from opsalert.alerting.statistics import compute_statistics
from opsalert.alerting.types import (
    OPEN_STATUSES,
    Alert,
    AlertCreateRequest,
    AlertFilter,
    AlertPage,
    AlertStatistics,
    AlertThreshold,
    CategoryResolutionTime,
    TopAlert,
)

__all__ = [
    "OPEN_STATUSES",
    "Alert",
    "AlertCreateRequest",
    "AlertFilter",
    "AlertManager",
    "AlertPage",
    "AlertStatistics",
    "AlertThreshold",
    "CategoryResolutionTime",
    "RuleEvaluator",
    "Snapshots",
    "TopAlert",
    "compute_statistics",
    "extract_metric",
    "severity_for",
]
