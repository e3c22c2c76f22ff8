"""Tests for HostMetricsCollector — psutil readings and caller-supplied metrics."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import patch

from opsalert.core.types import DbConnections
from opsalert.metrics.infrastructure import HostMetricsCollector


def _patch_psutil(
    cpu: float = 42.0, mem: float = 63.5, disk: float = 71.0,
) -> tuple[Any, Any, Any]:
    return (
        patch("opsalert.metrics.infrastructure.psutil.cpu_percent", return_value=cpu),
        patch(
            "opsalert.metrics.infrastructure.psutil.virtual_memory",
            return_value=SimpleNamespace(percent=mem),
        ),
        patch(
            "opsalert.metrics.infrastructure.psutil.disk_usage",
            return_value=SimpleNamespace(percent=disk),
        ),
    )


class TestHostMetricsCollector:
    def test_host_readings(self) -> None:
        cpu, mem, disk = _patch_psutil()
        with cpu, mem, disk:
            snap = HostMetricsCollector().get_infrastructure_metrics()
        assert snap.cpu_usage == 42.0
        assert snap.memory_usage == 63.5
        assert snap.disk_usage == 71.0
        assert snap.db_connections is None
        assert snap.cache_hit_rate is None

    def test_caller_supplied_metrics(self) -> None:
        cpu, mem, disk = _patch_psutil()
        with cpu, mem, disk:
            collector = HostMetricsCollector(
                db_connections_fn=lambda: DbConnections(active=45, max=50),
                cache_hit_rate_fn=lambda: 35.0,
            )
            snap = collector.get_infrastructure_metrics()
        assert snap.db_connections == DbConnections(active=45, max=50)
        assert snap.cache_hit_rate == 35.0

    def test_unreadable_disk_is_none(self) -> None:
        cpu, mem, _ = _patch_psutil()
        with cpu, mem, patch(
            "opsalert.metrics.infrastructure.psutil.disk_usage",
            side_effect=FileNotFoundError("/missing"),
        ):
            snap = HostMetricsCollector(disk_path="/missing").get_infrastructure_metrics()
        assert snap.disk_usage is None
        assert snap.cpu_usage == 42.0
