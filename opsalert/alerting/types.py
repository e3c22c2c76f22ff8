"""Domain types for alert records, queries and statistics."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field, field_validator

from opsalert.core.types import (
    AlertCategory,
    AlertStatus,
    ComparisonOperator,
    Severity,
)

# Statuses that count as "active" for queries and statistics.
OPEN_STATUSES: frozenset[AlertStatus] = frozenset(
    {AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED},
)

MAX_PAGE_SIZE = 1000


def _dedupe(tags: list[str]) -> list[str]:
    return list(dict.fromkeys(tags))


class AlertThreshold(BaseModel):
    """The threshold an alert's metric breached."""

    metric: str
    operator: ComparisonOperator
    value: float
    severity: Severity


class AlertCreateRequest(BaseModel):
    """Input for creating an alert, manually or from a rule."""

    name: str
    description: str = ""
    severity: Severity = Severity.MEDIUM
    category: AlertCategory = AlertCategory.SYSTEM
    source: str = "system"
    current_value: float | None = None
    threshold: AlertThreshold | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str | None = None
    cooldown_minutes: float | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("alert name must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, v: list[str]) -> list[str]:
        return _dedupe(v)


class Alert(BaseModel):
    """A detected breach or anomaly with its own lifecycle."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    description: str = ""
    severity: Severity
    category: AlertCategory
    source: str
    status: AlertStatus = AlertStatus.ACTIVE
    timestamp: float
    current_value: float | None = None
    threshold: AlertThreshold | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str | None = None
    acknowledged_by: str | None = None
    acknowledged_at: float | None = None
    resolved_by: str | None = None
    resolved_at: float | None = None
    suppressed_until: float | None = None
    suppression_reason: str | None = None
    notes: str | None = None

    @property
    def is_open(self) -> bool:
        """ACTIVE or ACKNOWLEDGED."""
        return self.status in OPEN_STATUSES

    @property
    def resolution_time_secs(self) -> float | None:
        if self.resolved_at is None:
            return None
        return self.resolved_at - self.timestamp


class AlertFilter(BaseModel):
    """AND-combined query filter with pagination."""

    severity: Severity | None = None
    category: AlertCategory | None = None
    status: AlertStatus | None = None
    source: str | None = None
    limit: int = Field(default=100, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)

    def matches(self, alert: Alert) -> bool:
        if self.severity is not None and alert.severity != self.severity:
            return False
        if self.category is not None and alert.category != self.category:
            return False
        if self.status is not None and alert.status != self.status:
            return False
        if self.source is not None and alert.source != self.source:
            return False
        return True


class AlertPage(BaseModel):
    """One page of query results."""

    alerts: list[Alert] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False


class TopAlert(BaseModel):
    """Occurrence count for one alert name."""

    name: str
    count: int
    last_occurred: float


class CategoryResolutionTime(BaseModel):
    """Mean resolution time (minutes) for one category."""

    category: AlertCategory
    avg_time: float
    count: int


class AlertStatistics(BaseModel):
    """Aggregate view over the alerts of a time window."""

    window_hours: float
    total: int = 0
    active: int = 0
    resolved: int = 0
    suppressed: int = 0
    by_severity: dict[str, int] = Field(default_factory=dict)
    by_category: dict[str, int] = Field(default_factory=dict)
    by_source: dict[str, int] = Field(default_factory=dict)
    recent_alerts: list[Alert] = Field(default_factory=list)
    top_alerts: list[TopAlert] = Field(default_factory=list)
    average_resolution_time: float = 0.0
    resolution_times: list[CategoryResolutionTime] = Field(default_factory=list)
