"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from opsalert.core.types import (
    AlertCategory,
    ComparisonOperator,
    MetricKey,
    RuleAggregate,
    Severity,
)

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

# Longest suppression an operator may request (7 days).
MAX_SUPPRESSION_MINUTES = 10_080


# ── Alert rules ──────────────────────────────────────────────────


class RuleEscalation(BaseModel):
    """A tighter threshold that raises the severity of a firing rule."""

    threshold: float
    severity: Severity
    operator: ComparisonOperator | None = None


class AlertRule(BaseModel):
    """Threshold (or trend, when ``window_secs`` is set) rule over one metric."""

    name: str
    metric: MetricKey
    operator: ComparisonOperator
    threshold: float
    severity: Severity
    category: AlertCategory = AlertCategory.SYSTEM
    description: str = ""
    cooldown_minutes: float | None = None
    window_secs: float | None = None
    aggregate: RuleAggregate | None = None
    escalations: list[RuleEscalation] = Field(default_factory=list)
    value_metric: MetricKey | None = None
    tags: list[str] = Field(default_factory=list)
    enabled: bool = True

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("rule name must not be blank")
        return v

    @model_validator(mode="after")
    def _check_window(self) -> AlertRule:
        if self.window_secs is not None and self.window_secs <= 0:
            raise ValueError(f"rule {self.name!r}: window_secs must be positive")
        if self.cooldown_minutes is not None and self.cooldown_minutes < 0:
            raise ValueError(f"rule {self.name!r}: cooldown_minutes must be >= 0")
        if self.aggregate is None:
            self.aggregate = (
                RuleAggregate.AVG if self.window_secs else RuleAggregate.LAST
            )
        return self


def default_rules() -> list[AlertRule]:
    """Built-in rule set."""
    return [
        AlertRule(
            name="High Response Time",
            metric=MetricKey.AVERAGE_RESPONSE_TIME,
            operator=ComparisonOperator.GT,
            threshold=1000,
            severity=Severity.HIGH,
            category=AlertCategory.PERFORMANCE,
            description="Average response time is above threshold",
            escalations=[RuleEscalation(threshold=2000, severity=Severity.CRITICAL)],
            tags=["performance", "latency"],
        ),
        AlertRule(
            name="High Error Rate",
            metric=MetricKey.ERROR_RATE,
            operator=ComparisonOperator.GT,
            threshold=5,
            severity=Severity.HIGH,
            category=AlertCategory.PERFORMANCE,
            description="Request error rate is above threshold",
            escalations=[
                RuleEscalation(
                    threshold=10,
                    severity=Severity.CRITICAL,
                    operator=ComparisonOperator.GTE,
                ),
            ],
            tags=["performance", "errors"],
        ),
        AlertRule(
            name="System Unhealthy",
            metric=MetricKey.HEALTH_UNHEALTHY,
            operator=ComparisonOperator.EQ,
            threshold=1,
            severity=Severity.CRITICAL,
            category=AlertCategory.AVAILABILITY,
            description="Overall health check reports UNHEALTHY",
            value_metric=MetricKey.HEALTH_SCORE,
            tags=["health"],
        ),
        AlertRule(
            name="High CPU Usage",
            metric=MetricKey.CPU_USAGE,
            operator=ComparisonOperator.GT,
            threshold=90,
            severity=Severity.HIGH,
            category=AlertCategory.SYSTEM,
            description="CPU usage is above threshold",
            escalations=[RuleEscalation(threshold=95, severity=Severity.CRITICAL)],
            tags=["infrastructure", "cpu"],
        ),
        AlertRule(
            name="High Memory Usage",
            metric=MetricKey.MEMORY_USAGE,
            operator=ComparisonOperator.GT,
            threshold=90,
            severity=Severity.HIGH,
            category=AlertCategory.SYSTEM,
            description="Memory usage is above threshold",
            escalations=[RuleEscalation(threshold=95, severity=Severity.CRITICAL)],
            tags=["infrastructure", "memory"],
        ),
        AlertRule(
            name="High Disk Usage",
            metric=MetricKey.DISK_USAGE,
            operator=ComparisonOperator.GT,
            threshold=85,
            severity=Severity.HIGH,
            category=AlertCategory.SYSTEM,
            description="Disk usage is above threshold",
            escalations=[RuleEscalation(threshold=95, severity=Severity.CRITICAL)],
            tags=["infrastructure", "disk"],
        ),
        AlertRule(
            name="High Database Connections",
            metric=MetricKey.DB_CONNECTION_USAGE,
            operator=ComparisonOperator.GT,
            threshold=80,
            severity=Severity.HIGH,
            category=AlertCategory.SYSTEM,
            description="Active database connections exceed 80% of the pool",
            tags=["infrastructure", "database"],
        ),
        AlertRule(
            name="Low Cache Hit Rate",
            metric=MetricKey.CACHE_HIT_RATE,
            operator=ComparisonOperator.LT,
            threshold=50,
            severity=Severity.MEDIUM,
            category=AlertCategory.PERFORMANCE,
            description="Cache hit rate is below threshold",
            escalations=[RuleEscalation(threshold=30, severity=Severity.HIGH)],
            tags=["infrastructure", "cache"],
        ),
    ]


class AlertingConfig(BaseModel):
    """Alert lifecycle and scheduler configuration."""

    scheduler_interval_secs: float = 60.0
    default_cooldown_minutes: float = 5.0
    max_alerts: int = 10_000
    resolved_retention_hours: float = 168.0
    dispatch_timeout_secs: float = 10.0
    performance_window_secs: float = 300.0
    rules: list[AlertRule] = Field(default_factory=default_rules)

    @model_validator(mode="after")
    def _check_limits(self) -> AlertingConfig:
        if self.scheduler_interval_secs <= 0:
            raise ValueError("scheduler_interval_secs must be positive")
        if self.max_alerts < 1:
            raise ValueError("max_alerts must be at least 1")
        names = [r.name for r in self.rules]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"duplicate rule names: {dupes}")
        return self


# ── Health ───────────────────────────────────────────────────────


class HealthWeights(BaseModel):
    """Score deductions for a class of checks."""

    down: float
    degraded: float


class HealthConfig(BaseModel):
    """Health aggregation configuration."""

    critical_checks: list[str] = [
        "database",
        "db",
        "postgres",
        "postgresql",
        "system_resources",
    ]
    standard_checks: list[str] = [
        "cache",
        "redis",
        "redis_cache",
        "queue",
        "application",
        "system",
        "external_services",
    ]
    critical_weights: HealthWeights = HealthWeights(down=50.0, degraded=25.0)
    standard_weights: HealthWeights = HealthWeights(down=20.0, degraded=10.0)
    default_weights: HealthWeights = HealthWeights(down=15.0, degraded=5.0)
    slow_response_ms: float = 500.0
    very_slow_response_ms: float = 1000.0
    healthy_min_score: float = 80.0
    degraded_min_score: float = 50.0
    check_timeout_secs: float = 5.0


# ── Notifications ────────────────────────────────────────────────


class ChannelConfig(BaseModel):
    """Fields shared by every notification channel."""

    enabled: bool = False
    name: str = ""
    severities: list[Severity] = Field(default_factory=list)
    categories: list[AlertCategory] = Field(default_factory=list)


class EmailConfig(ChannelConfig):
    """SMTP email delivery."""

    smtp_host: str = "localhost"
    smtp_port: int = 587
    use_tls: bool = True
    username: str = ""
    password: SecretStr = SecretStr("")
    from_address: str = "alerts@localhost"
    recipients: list[str] = Field(default_factory=list)


class WebhookConfig(ChannelConfig):
    """JSON webhook delivery."""

    url: SecretStr = SecretStr("")
    token: SecretStr = SecretStr("")


class LogChannelConfig(ChannelConfig):
    """Structured-log delivery."""

    enabled: bool = True


class NotificationsConfig(BaseModel):
    """Container for all notification channel configurations."""

    email: EmailConfig = EmailConfig()
    webhook: WebhookConfig = WebhookConfig()
    log: LogChannelConfig = LogChannelConfig()


# ── Misc ─────────────────────────────────────────────────────────


class PerformanceConfig(BaseModel):
    """Request performance tracking."""

    max_samples: int = 50_000
    top_endpoints: int = 10


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    service: str = "opsalert"


class Settings(BaseModel):
    """Root settings container."""

    alerting: AlertingConfig = AlertingConfig()
    health: HealthConfig = HealthConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    performance: PerformanceConfig = PerformanceConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.

    Raises:
        pydantic.ValidationError: If the file holds an invalid rule or limit.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
