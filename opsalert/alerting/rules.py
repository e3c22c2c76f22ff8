"""RuleEvaluator — turns metric snapshots into alert creation requests."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from opsalert.alerting.types import AlertCreateRequest, AlertThreshold
from opsalert.core.config import AlertRule, default_rules
from opsalert.core.exceptions import InvalidRuleError
from opsalert.core.types import (
    HealthReport,
    HealthStatus,
    InfrastructureSnapshot,
    MetricKey,
    PerformanceSnapshot,
    RuleAggregate,
    Severity,
)

logger = structlog.stdlib.get_logger()


@dataclass
class Snapshots:
    """The three snapshots a tick evaluates; any of them may be missing."""

    performance: PerformanceSnapshot | None = None
    health: HealthReport | None = None
    infrastructure: InfrastructureSnapshot | None = None


# ── Metric extraction ───────────────────────────────────────────


def _average_response_time(s: Snapshots) -> float | None:
    return s.performance.average_response_time if s.performance else None


def _error_rate(s: Snapshots) -> float | None:
    return s.performance.error_rate if s.performance else None


def _performance_cache_hit_rate(s: Snapshots) -> float | None:
    return s.performance.cache_hit_rate if s.performance else None


def _total_requests(s: Snapshots) -> float | None:
    return float(s.performance.total_requests) if s.performance else None


def _health_score(s: Snapshots) -> float | None:
    return s.health.score if s.health else None


def _health_unhealthy(s: Snapshots) -> float | None:
    if s.health is None:
        return None
    return 1.0 if s.health.status == HealthStatus.UNHEALTHY else 0.0


def _health_degraded(s: Snapshots) -> float | None:
    if s.health is None:
        return None
    return 1.0 if s.health.status == HealthStatus.DEGRADED else 0.0


def _cpu_usage(s: Snapshots) -> float | None:
    return s.infrastructure.cpu_usage if s.infrastructure else None


def _memory_usage(s: Snapshots) -> float | None:
    return s.infrastructure.memory_usage if s.infrastructure else None


def _disk_usage(s: Snapshots) -> float | None:
    return s.infrastructure.disk_usage if s.infrastructure else None


def _db_connection_usage(s: Snapshots) -> float | None:
    if s.infrastructure is None or s.infrastructure.db_connections is None:
        return None
    conns = s.infrastructure.db_connections
    if conns.max <= 0:
        return None
    return conns.active / conns.max * 100.0


def _cache_hit_rate(s: Snapshots) -> float | None:
    if s.infrastructure is not None and s.infrastructure.cache_hit_rate is not None:
        return s.infrastructure.cache_hit_rate
    return _performance_cache_hit_rate(s)


_EXTRACTORS: dict[MetricKey, Callable[[Snapshots], float | None]] = {
    MetricKey.AVERAGE_RESPONSE_TIME: _average_response_time,
    MetricKey.ERROR_RATE: _error_rate,
    MetricKey.PERFORMANCE_CACHE_HIT_RATE: _performance_cache_hit_rate,
    MetricKey.TOTAL_REQUESTS: _total_requests,
    MetricKey.HEALTH_SCORE: _health_score,
    MetricKey.HEALTH_UNHEALTHY: _health_unhealthy,
    MetricKey.HEALTH_DEGRADED: _health_degraded,
    MetricKey.CPU_USAGE: _cpu_usage,
    MetricKey.MEMORY_USAGE: _memory_usage,
    MetricKey.DISK_USAGE: _disk_usage,
    MetricKey.DB_CONNECTION_USAGE: _db_connection_usage,
    MetricKey.CACHE_HIT_RATE: _cache_hit_rate,
}

_missing = set(MetricKey) - set(_EXTRACTORS)
if _missing:
    raise InvalidRuleError(f"no extractor for metric keys: {sorted(_missing)}")


def extract_metric(metric: MetricKey, snapshots: Snapshots) -> float | None:
    """Read one metric from the snapshots, or None when it is unavailable."""
    return _EXTRACTORS[metric](snapshots)


# ── Severity ────────────────────────────────────────────────────


def severity_for(rule: AlertRule, value: float) -> Severity:
    """Base severity, raised by the highest-ranked matching escalation."""
    severity = rule.severity
    for esc in rule.escalations:
        op = esc.operator or rule.operator
        if op.compare(value, esc.threshold) and esc.severity.rank > severity.rank:
            severity = esc.severity
    return severity


def _fold(aggregate: RuleAggregate, values: list[float]) -> float:
    if aggregate is RuleAggregate.AVG:
        return sum(values) / len(values)
    if aggregate is RuleAggregate.MIN:
        return min(values)
    if aggregate is RuleAggregate.MAX:
        return max(values)
    return values[-1]


# ── Evaluator ───────────────────────────────────────────────────


class RuleEvaluator:
    """Evaluates configured rules, in list order, against fresh snapshots.

    Each rule fires independently. A rule whose metric is missing from the
    snapshots is skipped: missing data is a collection problem, not an alert
    condition. Rules with ``window_secs`` keep a rolling sample window and
    compare the aggregated value instead of the latest reading.

    Usage::

        evaluator = RuleEvaluator()  # built-in rule set
        requests = evaluator.evaluate(perf_snapshot, health_report, infra_snapshot)
    """

    def __init__(
        self,
        rules: list[AlertRule] | None = None,
        default_cooldown_minutes: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rules: list[AlertRule] = []
        self._default_cooldown_minutes = default_cooldown_minutes
        self._clock = clock
        self._windows: dict[str, deque[tuple[float, float]]] = {}
        for rule in rules if rules is not None else default_rules():
            self.add_rule(rule)

    @property
    def rules(self) -> list[AlertRule]:
        return list(self._rules)

    def add_rule(self, rule: AlertRule) -> None:
        """Register a rule at runtime.

        Raises:
            InvalidRuleError: If a rule with the same name already exists.
        """
        if any(r.name == rule.name for r in self._rules):
            raise InvalidRuleError(f"duplicate rule name: {rule.name!r}")
        self._rules.append(rule)
        if rule.window_secs is not None:
            self._windows[rule.name] = deque()

    def remove_rule(self, name: str) -> bool:
        before = len(self._rules)
        self._rules = [r for r in self._rules if r.name != name]
        self._windows.pop(name, None)
        return len(self._rules) != before

    def evaluate(
        self,
        performance: PerformanceSnapshot | None = None,
        health: HealthReport | None = None,
        infrastructure: InfrastructureSnapshot | None = None,
    ) -> list[AlertCreateRequest]:
        snapshots = Snapshots(performance, health, infrastructure)
        now = self._clock()
        requests: list[AlertCreateRequest] = []
        for rule in self._rules:
            if not rule.enabled:
                continue
            request = self._evaluate_rule(rule, snapshots, now)
            if request is not None:
                requests.append(request)
        return requests

    def _evaluate_rule(
        self, rule: AlertRule, snapshots: Snapshots, now: float,
    ) -> AlertCreateRequest | None:
        raw = extract_metric(rule.metric, snapshots)
        if raw is None:
            logger.debug("rule_skipped_missing_metric", rule=rule.name, metric=rule.metric)
            return None

        value = self._windowed_value(rule, raw, now)
        if not rule.operator.compare(value, rule.threshold):
            return None

        severity = severity_for(rule, value)
        reported = value
        if rule.value_metric is not None:
            alt = extract_metric(rule.value_metric, snapshots)
            if alt is not None:
                reported = alt

        cooldown = (
            rule.cooldown_minutes
            if rule.cooldown_minutes is not None
            else self._default_cooldown_minutes
        )
        return AlertCreateRequest(
            name=rule.name,
            description=rule.description or f"{rule.metric} breached {rule.threshold}",
            severity=severity,
            category=rule.category,
            source=f"rule:{rule.metric}",
            current_value=reported,
            threshold=AlertThreshold(
                metric=rule.metric.value,
                operator=rule.operator,
                value=rule.threshold,
                severity=severity,
            ),
            tags=list(rule.tags),
            metadata={
                "rule": rule.name,
                "metric": rule.metric.value,
                "aggregate": rule.aggregate.value if rule.aggregate else None,
                "observed": value,
            },
            cooldown_minutes=cooldown,
        )

    def _windowed_value(self, rule: AlertRule, raw: float, now: float) -> float:
        if rule.window_secs is None:
            return raw
        window = self._windows.setdefault(rule.name, deque())
        window.append((now, raw))
        cutoff = now - rule.window_secs
        while window and window[0][0] < cutoff:
            window.popleft()
        return _fold(rule.aggregate or RuleAggregate.AVG, [v for _, v in window])
