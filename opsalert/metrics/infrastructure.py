"""Host resource sampling for infrastructure alert rules."""

from __future__ import annotations

from collections.abc import Callable

import psutil
import structlog

from opsalert.core.types import DbConnections, InfrastructureSnapshot

logger = structlog.get_logger(__name__)

DbConnectionsFn = Callable[[], DbConnections | None]
CacheHitRateFn = Callable[[], float | None]


class HostMetricsCollector:
    """Builds an :class:`InfrastructureSnapshot` from psutil readings.

    Database pool usage and cache hit rate are not host metrics; callers
    that own those resources pass small callables for them.
    """

    def __init__(
        self,
        disk_path: str = "/",
        db_connections_fn: DbConnectionsFn | None = None,
        cache_hit_rate_fn: CacheHitRateFn | None = None,
    ) -> None:
        self._disk_path = disk_path
        self._db_connections_fn = db_connections_fn
        self._cache_hit_rate_fn = cache_hit_rate_fn
        # Prime the counter; the first non-blocking call always returns 0.0.
        psutil.cpu_percent(interval=None)

    def get_infrastructure_metrics(self) -> InfrastructureSnapshot:
        snapshot = InfrastructureSnapshot(
            cpu_usage=psutil.cpu_percent(interval=None),
            memory_usage=psutil.virtual_memory().percent,
            disk_usage=self._disk_percent(),
        )
        if self._db_connections_fn is not None:
            snapshot.db_connections = self._db_connections_fn()
        if self._cache_hit_rate_fn is not None:
            snapshot.cache_hit_rate = self._cache_hit_rate_fn()
        return snapshot

    def _disk_percent(self) -> float | None:
        try:
            return psutil.disk_usage(self._disk_path).percent
        except OSError:
            logger.warning("disk_usage_unavailable", path=self._disk_path)
            return None
