"""HealthCheckRunner — runs check providers concurrently and aggregates them."""

from __future__ import annotations

import abc
import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from opsalert.core.config import HealthConfig
from opsalert.core.types import CheckResult, CheckStatus, HealthReport
from opsalert.health.aggregator import aggregate
from opsalert.metrics.infrastructure import HostMetricsCollector

logger = structlog.get_logger(__name__)

CheckFn = Callable[[], Awaitable[bool | CheckResult] | bool | CheckResult]


class HealthCheckProvider(abc.ABC):
    """Base class for a named health check."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Check name, used for weighting."""

    @abc.abstractmethod
    async def check(self) -> CheckResult:
        """Run the check once."""

    @property
    def critical(self) -> bool | None:
        """True or False to override the name-based weight class."""
        return None


class CallableHealthCheck(HealthCheckProvider):
    """Adapts a plain (sync or async) function into a provider.

    The function may return a ``CheckResult`` or a bool (True = UP).
    """

    def __init__(self, name: str, fn: CheckFn, critical: bool | None = None) -> None:
        self._name = name
        self._fn = fn
        self._critical = critical

    @property
    def name(self) -> str:
        return self._name

    @property
    def critical(self) -> bool | None:
        return self._critical

    async def check(self) -> CheckResult:
        started = time.perf_counter()
        result = self._fn()
        if asyncio.iscoroutine(result):
            result = await result
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if isinstance(result, CheckResult):
            if result.response_time is None:
                return result.model_copy(update={"response_time": elapsed_ms})
            return result
        return CheckResult(
            name=self._name,
            status=CheckStatus.UP if result else CheckStatus.DOWN,
            response_time=elapsed_ms,
            critical=self._critical,
        )


class SystemResourcesHealthCheck(HealthCheckProvider):
    """Grades host CPU, memory and disk usage into a critical check.

    Any reading above ``unhealthy_percent`` makes the check UNHEALTHY; CPU or
    memory above ``degraded_percent``, or disk above ``disk_degraded_percent``,
    makes it DEGRADED. A sampling failure reports DOWN.
    """

    def __init__(
        self,
        collector: HostMetricsCollector | None = None,
        degraded_percent: float = 75.0,
        disk_degraded_percent: float = 80.0,
        unhealthy_percent: float = 90.0,
    ) -> None:
        self._collector = collector or HostMetricsCollector()
        self._degraded_percent = degraded_percent
        self._disk_degraded_percent = disk_degraded_percent
        self._unhealthy_percent = unhealthy_percent

    @property
    def name(self) -> str:
        return "system_resources"

    @property
    def critical(self) -> bool | None:
        return True

    async def check(self) -> CheckResult:
        started = time.perf_counter()
        try:
            snapshot = self._collector.get_infrastructure_metrics()
        except Exception as exc:
            logger.exception("system_resources_sample_failed")
            return CheckResult(
                name=self.name,
                status=CheckStatus.DOWN,
                response_time=(time.perf_counter() - started) * 1000.0,
                message=f"System resources check failed: {exc}",
                critical=True,
            )

        status = CheckStatus.UP
        issues: list[str] = []
        readings = [
            ("CPU", snapshot.cpu_usage, self._degraded_percent),
            ("memory", snapshot.memory_usage, self._degraded_percent),
            ("disk", snapshot.disk_usage, self._disk_degraded_percent),
        ]
        for label, value, degraded_at in readings:
            if value is None:
                continue
            if value > self._unhealthy_percent:
                status = CheckStatus.UNHEALTHY
                issues.append(f"High {label} usage: {value:.2f}%")
            elif value > degraded_at:
                if status == CheckStatus.UP:
                    status = CheckStatus.DEGRADED
                issues.append(f"Elevated {label} usage: {value:.2f}%")

        return CheckResult(
            name=self.name,
            status=status,
            response_time=(time.perf_counter() - started) * 1000.0,
            message=", ".join(issues) or "System resources are healthy",
            details=snapshot.model_dump(exclude={"timestamp"}),
            critical=True,
        )


class HealthCheckRunner:
    """Runs every provider in parallel and builds a :class:`HealthReport`.

    A provider that raises or exceeds ``timeout_secs`` is reported as a DOWN
    check rather than failing the pass.

    Usage::

        runner = HealthCheckRunner([CallableHealthCheck("database", db.ping)])
        report = await runner.perform_health_check()
    """

    def __init__(
        self,
        providers: list[HealthCheckProvider] | None = None,
        config: HealthConfig | None = None,
        timeout_secs: float | None = None,
    ) -> None:
        self._providers: list[HealthCheckProvider] = providers or []
        self._config = config or HealthConfig()
        self._timeout_secs = (
            timeout_secs if timeout_secs is not None else self._config.check_timeout_secs
        )
        self._last_report: HealthReport | None = None

    @property
    def last_report(self) -> HealthReport | None:
        return self._last_report

    def add_provider(self, provider: HealthCheckProvider) -> None:
        self._providers.append(provider)

    async def perform_health_check(self) -> HealthReport:
        started = time.perf_counter()
        checks = list(
            await asyncio.gather(*(self._run_one(p) for p in self._providers)),
        )
        duration_ms = (time.perf_counter() - started) * 1000.0

        summary = aggregate(checks, duration_ms, self._config)
        report = HealthReport(
            status=summary.status,
            score=summary.score,
            checks=checks,
            duration_ms=round(duration_ms, 3),
        )
        self._last_report = report
        logger.debug(
            "health_check_completed",
            status=report.status.value,
            score=report.score,
            duration_ms=report.duration_ms,
        )
        return report

    async def _run_one(self, provider: HealthCheckProvider) -> CheckResult:
        result = await self._check(provider)
        if result.critical is None and provider.critical is not None:
            return result.model_copy(update={"critical": provider.critical})
        return result

    async def _check(self, provider: HealthCheckProvider) -> CheckResult:
        try:
            return await asyncio.wait_for(provider.check(), self._timeout_secs)
        except TimeoutError:
            logger.warning(
                "health_check_timeout",
                check=provider.name,
                timeout_secs=self._timeout_secs,
            )
            return CheckResult(
                name=provider.name,
                status=CheckStatus.DOWN,
                response_time=self._timeout_secs * 1000.0,
                message=f"Health check timed out after {self._timeout_secs}s",
            )
        except Exception as exc:
            logger.exception("health_check_provider_failed", check=provider.name)
            return CheckResult(
                name=provider.name,
                status=CheckStatus.DOWN,
                message=f"Health check provider failed: {exc}",
            )
