"""Shared domain types — enums and metric snapshots consumed by the engine."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Severity(StrEnum):
    """Alert severity."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class AlertCategory(StrEnum):
    """What kind of condition an alert describes."""

    SYSTEM = "SYSTEM"
    PERFORMANCE = "PERFORMANCE"
    SECURITY = "SECURITY"
    BUSINESS = "BUSINESS"
    AVAILABILITY = "AVAILABILITY"


class AlertStatus(StrEnum):
    """Lifecycle state of an alert."""

    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
    SUPPRESSED = "SUPPRESSED"


class ComparisonOperator(StrEnum):
    """Threshold comparison operator."""

    GT = "gt"
    LT = "lt"
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"

    def compare(self, value: float, target: float) -> bool:
        """Return True when ``value <op> target`` holds."""
        if self is ComparisonOperator.GT:
            return value > target
        if self is ComparisonOperator.LT:
            return value < target
        if self is ComparisonOperator.GTE:
            return value >= target
        if self is ComparisonOperator.LTE:
            return value <= target
        return abs(value - target) <= 1e-9


class CheckStatus(StrEnum):
    """Status of a single health check."""

    UP = "UP"
    DOWN = "DOWN"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"


class HealthStatus(StrEnum):
    """Overall system health."""

    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"


class MetricKey(StrEnum):
    """Every metric an alert rule can watch, namespaced by snapshot."""

    AVERAGE_RESPONSE_TIME = "performance.average_response_time"
    ERROR_RATE = "performance.error_rate"
    PERFORMANCE_CACHE_HIT_RATE = "performance.cache_hit_rate"
    TOTAL_REQUESTS = "performance.total_requests"
    HEALTH_SCORE = "health.score"
    HEALTH_UNHEALTHY = "health.unhealthy"
    HEALTH_DEGRADED = "health.degraded"
    CPU_USAGE = "infrastructure.cpu_usage"
    MEMORY_USAGE = "infrastructure.memory_usage"
    DISK_USAGE = "infrastructure.disk_usage"
    DB_CONNECTION_USAGE = "infrastructure.db_connection_usage"
    CACHE_HIT_RATE = "infrastructure.cache_hit_rate"


class RuleAggregate(StrEnum):
    """How a trend rule folds the samples in its window."""

    LAST = "last"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class ChannelKind(StrEnum):
    """Notification transport."""

    EMAIL = "email"
    WEBHOOK = "webhook"
    LOG = "log"


# ── Snapshots ───────────────────────────────────────────────────


class CheckResult(BaseModel):
    """Outcome of one independent health check."""

    name: str
    status: CheckStatus
    response_time: float | None = None
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    last_checked: float = Field(default_factory=time.time)
    # Overrides the name-based weight class when set.
    critical: bool | None = None


class HealthSummary(BaseModel):
    """Aggregated status and 0-100 score."""

    status: HealthStatus
    score: float


class HealthReport(BaseModel):
    """Result of a full health check pass."""

    status: HealthStatus
    score: float
    checks: list[CheckResult] = Field(default_factory=list)
    duration_ms: float = 0.0
    timestamp: float = Field(default_factory=time.time)


class PerformanceSnapshot(BaseModel):
    """Request performance over a time window.

    Rates are percentages (0-100). ``None`` means the source has no data.
    """

    average_response_time: float | None = None
    error_rate: float | None = None
    cache_hit_rate: float | None = None
    total_requests: int = 0
    window_secs: float = 0.0
    timestamp: float = Field(default_factory=time.time)


class DbConnections(BaseModel):
    """Database connection pool usage."""

    active: int
    max: int


class InfrastructureSnapshot(BaseModel):
    """Point-in-time resource usage; percentages are 0-100."""

    cpu_usage: float | None = None
    memory_usage: float | None = None
    disk_usage: float | None = None
    db_connections: DbConnections | None = None
    cache_hit_rate: float | None = None
    timestamp: float = Field(default_factory=time.time)
