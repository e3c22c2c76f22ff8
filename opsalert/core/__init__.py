"""Core module — config, types, logging, exceptions."""

from opsalert.core.config import Settings, get_settings, load_settings, reset_settings
from opsalert.core.exceptions import (
    AlertingError,
    AlertManagerClosedError,
    InvalidAlertInputError,
    InvalidRuleError,
)
from opsalert.core.logging import bind_correlation_id, setup_logging
from opsalert.core.types import (
    AlertCategory,
    AlertStatus,
    CheckResult,
    CheckStatus,
    ComparisonOperator,
    HealthReport,
    HealthStatus,
    InfrastructureSnapshot,
    MetricKey,
    PerformanceSnapshot,
    Severity,
)

__all__ = [
    "AlertCategory",
    "AlertManagerClosedError",
    "AlertStatus",
    "AlertingError",
    "CheckResult",
    "CheckStatus",
    "ComparisonOperator",
    "HealthReport",
    "HealthStatus",
    "InfrastructureSnapshot",
    "InvalidAlertInputError",
    "InvalidRuleError",
    "MetricKey",
    "PerformanceSnapshot",
    "Settings",
    "Severity",
    "bind_correlation_id",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
