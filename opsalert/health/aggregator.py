"""Pure health aggregation — weighted score plus critical-check override."""

from __future__ import annotations

from enum import StrEnum

from opsalert.core.config import HealthConfig, HealthWeights
from opsalert.core.types import CheckResult, CheckStatus, HealthStatus, HealthSummary

_MAX_SCORE = 100.0

# Extra deduction when the mean response time across all checks is very slow.
_SLOW_EXECUTION_PENALTY = 10.0
_VERY_SLOW_CHECK_PENALTY = 10.0
_SLOW_CHECK_PENALTY = 5.0


class CheckClass(StrEnum):
    """Weight class a check name falls into."""

    CRITICAL = "CRITICAL"
    STANDARD = "STANDARD"
    DEFAULT = "DEFAULT"


def classify_check(name: str, config: HealthConfig | None = None) -> CheckClass:
    """Map a check name to its weight class (case-insensitive)."""
    cfg = config or HealthConfig()
    key = name.strip().lower()
    if key in {n.lower() for n in cfg.critical_checks}:
        return CheckClass.CRITICAL
    if key in {n.lower() for n in cfg.standard_checks}:
        return CheckClass.STANDARD
    return CheckClass.DEFAULT


def classify_result(check: CheckResult, config: HealthConfig | None = None) -> CheckClass:
    """Weight class for a check result; its ``critical`` flag beats the name table."""
    if check.critical:
        return CheckClass.CRITICAL
    by_name = classify_check(check.name, config)
    if check.critical is False and by_name is CheckClass.CRITICAL:
        return CheckClass.DEFAULT
    return by_name


def _weights_for(check_class: CheckClass, config: HealthConfig) -> HealthWeights:
    if check_class is CheckClass.CRITICAL:
        return config.critical_weights
    if check_class is CheckClass.STANDARD:
        return config.standard_weights
    return config.default_weights


def check_deduction(check: CheckResult, config: HealthConfig | None = None) -> float:
    """Score points a single check removes from the overall score."""
    cfg = config or HealthConfig()
    weights = _weights_for(classify_result(check, cfg), cfg)

    deduction = 0.0
    if check.status in (CheckStatus.DOWN, CheckStatus.UNHEALTHY):
        deduction += weights.down
    elif check.status == CheckStatus.DEGRADED:
        deduction += weights.degraded

    if check.response_time is not None:
        if check.response_time > cfg.very_slow_response_ms:
            deduction += _VERY_SLOW_CHECK_PENALTY
        elif check.response_time > cfg.slow_response_ms:
            deduction += _SLOW_CHECK_PENALTY
    return deduction


def status_for_score(score: float, config: HealthConfig | None = None) -> HealthStatus:
    """Band a 0-100 score into an overall status."""
    cfg = config or HealthConfig()
    if score >= cfg.healthy_min_score:
        return HealthStatus.HEALTHY
    if score >= cfg.degraded_min_score:
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


def aggregate(
    checks: list[CheckResult],
    execution_duration_ms: float = 0.0,
    config: HealthConfig | None = None,
) -> HealthSummary:
    """Combine independent check results into one status and score.

    Starts from 100 and applies a deduction per non-UP or slow check, using
    weights keyed by the check's class (its ``critical`` flag, else its
    name). The clamped score is banded into HEALTHY / DEGRADED / UNHEALTHY,
    then a critical check that is DOWN forces UNHEALTHY no matter what the
    score says.

    ``execution_duration_ms`` is the wall time of the check pass; it only
    matters when no check reports its own response time.
    """
    cfg = config or HealthConfig()
    if not checks:
        return HealthSummary(status=HealthStatus.HEALTHY, score=_MAX_SCORE)

    score = _MAX_SCORE
    critical_down = False
    for check in checks:
        score -= check_deduction(check, cfg)
        if (
            check.status == CheckStatus.DOWN
            and classify_result(check, cfg) is CheckClass.CRITICAL
        ):
            critical_down = True

    timed = [c.response_time for c in checks if c.response_time is not None]
    mean_response = sum(timed) / len(timed) if timed else execution_duration_ms
    if mean_response > cfg.very_slow_response_ms:
        score -= _SLOW_EXECUTION_PENALTY

    score = max(0.0, min(_MAX_SCORE, score))
    status = HealthStatus.UNHEALTHY if critical_down else status_for_score(score, cfg)
    return HealthSummary(status=status, score=round(score, 2))
