"""Tests for HealthCheckRunner — concurrency, timeouts, failing providers."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from opsalert.core.types import CheckResult, CheckStatus, HealthStatus, InfrastructureSnapshot
from opsalert.health.checker import (
    CallableHealthCheck,
    HealthCheckProvider,
    HealthCheckRunner,
    SystemResourcesHealthCheck,
)


# ── Helpers ─────────────────────────────────────────────────────


class SlowCheck(HealthCheckProvider):
    def __init__(self, name: str, delay: float) -> None:
        self._name = name
        self._delay = delay

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> CheckResult:
        await asyncio.sleep(self._delay)
        return CheckResult(name=self._name, status=CheckStatus.UP, response_time=1.0)


def _boom() -> bool:
    raise ConnectionError("refused")


def _collector(
    cpu: float | None = 10.0, memory: float | None = 10.0, disk: float | None = 10.0,
) -> MagicMock:
    collector = MagicMock()
    collector.get_infrastructure_metrics.return_value = InfrastructureSnapshot(
        cpu_usage=cpu, memory_usage=memory, disk_usage=disk,
    )
    return collector


# ── CallableHealthCheck ─────────────────────────────────────────


class TestCallableHealthCheck:
    async def test_bool_true_is_up(self) -> None:
        result = await CallableHealthCheck("cache", lambda: True).check()
        assert result.name == "cache"
        assert result.status == CheckStatus.UP
        assert result.response_time is not None

    async def test_bool_false_is_down(self) -> None:
        result = await CallableHealthCheck("cache", lambda: False).check()
        assert result.status == CheckStatus.DOWN

    async def test_async_function(self) -> None:
        async def ping() -> bool:
            return True

        result = await CallableHealthCheck("database", ping).check()
        assert result.status == CheckStatus.UP

    async def test_check_result_passthrough(self) -> None:
        given = CheckResult(
            name="queue", status=CheckStatus.DEGRADED, response_time=12.0, message="lagging",
        )
        result = await CallableHealthCheck("queue", lambda: given).check()
        assert result.status == CheckStatus.DEGRADED
        assert result.response_time == 12.0
        assert result.message == "lagging"


# ── HealthCheckRunner ───────────────────────────────────────────


class TestHealthCheckRunner:
    async def test_all_up(self) -> None:
        runner = HealthCheckRunner([
            CallableHealthCheck("database", lambda: True),
            CallableHealthCheck("cache", lambda: True),
        ])
        report = await runner.perform_health_check()
        assert report.status == HealthStatus.HEALTHY
        assert report.score == 100.0
        assert [c.name for c in report.checks] == ["database", "cache"]
        assert runner.last_report is report

    async def test_failing_provider_becomes_down(self) -> None:
        runner = HealthCheckRunner([
            CallableHealthCheck("database", _boom),
            CallableHealthCheck("cache", lambda: True),
        ])
        report = await runner.perform_health_check()
        db = report.checks[0]
        assert db.status == CheckStatus.DOWN
        assert "refused" in db.message
        assert report.status == HealthStatus.UNHEALTHY

    async def test_timeout_becomes_down(self) -> None:
        runner = HealthCheckRunner(
            [SlowCheck("cache", delay=5.0), SlowCheck("queue", delay=0.0)],
            timeout_secs=0.05,
        )
        report = await runner.perform_health_check()
        cache, queue = report.checks
        assert cache.status == CheckStatus.DOWN
        assert "timed out" in cache.message
        assert queue.status == CheckStatus.UP

    async def test_checks_run_concurrently(self) -> None:
        runner = HealthCheckRunner([SlowCheck(f"svc_{i}", 0.1) for i in range(5)])
        report = await runner.perform_health_check()
        assert len(report.checks) == 5
        assert report.duration_ms < 400

    async def test_add_provider(self) -> None:
        runner = HealthCheckRunner()
        runner.add_provider(CallableHealthCheck("application", lambda: True))
        report = await runner.perform_health_check()
        assert len(report.checks) == 1

    async def test_no_providers_is_healthy(self) -> None:
        report = await HealthCheckRunner().perform_health_check()
        assert report.status == HealthStatus.HEALTHY
        assert report.checks == []

    async def test_provider_critical_flag_stamped(self) -> None:
        runner = HealthCheckRunner([
            CallableHealthCheck("database", lambda: True),
            CallableHealthCheck("ledger_sync", lambda: False, critical=True),
        ])
        report = await runner.perform_health_check()
        assert report.checks[1].critical is True
        assert report.status == HealthStatus.UNHEALTHY

    async def test_critical_flag_kept_on_timeout(self) -> None:
        class SlowCritical(SlowCheck):
            @property
            def critical(self) -> bool | None:
                return True

        runner = HealthCheckRunner([SlowCritical("ledger_sync", 5.0)], timeout_secs=0.05)
        report = await runner.perform_health_check()
        (check,) = report.checks
        assert check.status == CheckStatus.DOWN
        assert check.critical is True
        assert report.status == HealthStatus.UNHEALTHY


# ── SystemResourcesHealthCheck ──────────────────────────────────


class TestSystemResourcesHealthCheck:
    async def test_idle_host_is_up(self) -> None:
        check = SystemResourcesHealthCheck(_collector())
        result = await check.check()
        assert result.name == "system_resources"
        assert result.status == CheckStatus.UP
        assert result.critical is True
        assert result.message == "System resources are healthy"
        assert result.details["cpu_usage"] == 10.0

    @pytest.mark.parametrize(
        ("cpu", "memory", "disk"),
        [(80.0, 10.0, 10.0), (10.0, 76.0, 10.0), (10.0, 10.0, 85.0)],
    )
    async def test_elevated_usage_is_degraded(
        self, cpu: float, memory: float, disk: float,
    ) -> None:
        result = await SystemResourcesHealthCheck(_collector(cpu, memory, disk)).check()
        assert result.status == CheckStatus.DEGRADED
        assert "Elevated" in result.message

    async def test_disk_has_its_own_degraded_threshold(self) -> None:
        result = await SystemResourcesHealthCheck(_collector(disk=78.0)).check()
        assert result.status == CheckStatus.UP

    @pytest.mark.parametrize(
        ("cpu", "memory", "disk"),
        [(95.0, 10.0, 10.0), (10.0, 91.0, 10.0), (10.0, 10.0, 99.0)],
    )
    async def test_high_usage_is_unhealthy(
        self, cpu: float, memory: float, disk: float,
    ) -> None:
        result = await SystemResourcesHealthCheck(_collector(cpu, memory, disk)).check()
        assert result.status == CheckStatus.UNHEALTHY
        assert "High" in result.message

    async def test_unhealthy_not_downgraded_by_later_reading(self) -> None:
        result = await SystemResourcesHealthCheck(_collector(cpu=95.0, memory=80.0)).check()
        assert result.status == CheckStatus.UNHEALTHY
        assert result.message == "High CPU usage: 95.00%, Elevated memory usage: 80.00%"

    async def test_missing_disk_reading_ignored(self) -> None:
        result = await SystemResourcesHealthCheck(_collector(disk=None)).check()
        assert result.status == CheckStatus.UP

    async def test_sampling_failure_is_down(self) -> None:
        collector = MagicMock()
        collector.get_infrastructure_metrics.side_effect = OSError("no /proc")
        result = await SystemResourcesHealthCheck(collector).check()
        assert result.status == CheckStatus.DOWN
        assert "no /proc" in result.message
        assert result.critical is True

    async def test_down_forces_report_unhealthy(self) -> None:
        collector = MagicMock()
        collector.get_infrastructure_metrics.side_effect = OSError("no /proc")
        runner = HealthCheckRunner([
            SystemResourcesHealthCheck(collector),
            CallableHealthCheck("database", lambda: True),
            CallableHealthCheck("redis_cache", lambda: True),
        ])
        report = await runner.perform_health_check()
        assert report.status == HealthStatus.UNHEALTHY

    async def test_unhealthy_host_costs_critical_weight(self) -> None:
        runner = HealthCheckRunner([SystemResourcesHealthCheck(_collector(cpu=97.0))])
        report = await runner.perform_health_check()
        # UNHEALTHY takes the critical down weight; only DOWN forces the override.
        assert report.score == 50.0
        assert report.status == HealthStatus.DEGRADED
