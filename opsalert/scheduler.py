"""AlertScheduler — periodic snapshot collection and rule evaluation."""

from __future__ import annotations

import asyncio
import uuid

import structlog

from opsalert.alerting.manager import AlertManager
from opsalert.alerting.rules import RuleEvaluator
from opsalert.core.exceptions import AlertManagerClosedError
from opsalert.core.logging import bind_correlation_id
from opsalert.core.types import HealthReport, InfrastructureSnapshot, PerformanceSnapshot
from opsalert.sources import (
    HealthSourceFn,
    InfrastructureSourceFn,
    PerformanceSourceFn,
    pull,
)

logger = structlog.get_logger(__name__)


class AlertScheduler:
    """Background task that evaluates alert rules every ``interval_secs``.

    Each tick pulls fresh performance, health and infrastructure snapshots,
    turns rule breaches into alerts, reactivates expired suppressions and
    applies retention. A failing source only blanks its own snapshot; a
    failing tick is logged and the loop carries on.

    Usage::

        scheduler = AlertScheduler(manager, evaluator, performance_fn=tracker.get_performance_stats)
        await scheduler.start()
        # ...
        await scheduler.stop()
    """

    def __init__(
        self,
        manager: AlertManager,
        evaluator: RuleEvaluator,
        performance_fn: PerformanceSourceFn | None = None,
        health_fn: HealthSourceFn | None = None,
        infrastructure_fn: InfrastructureSourceFn | None = None,
        interval_secs: float = 60.0,
        performance_window_secs: float = 300.0,
    ) -> None:
        self._manager = manager
        self._evaluator = evaluator
        self._performance_fn = performance_fn
        self._health_fn = health_fn
        self._infrastructure_fn = infrastructure_fn
        self._interval_secs = interval_secs
        self._performance_window_secs = performance_window_secs
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._tick_count = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        return self._tick_count

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("scheduler_started", interval_secs=self._interval_secs)

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("scheduler_stopped", ticks=self._tick_count)

    async def tick(self) -> int:
        """Run one evaluation pass; returns the number of alerts created."""
        self._tick_count += 1
        bind_correlation_id(f"tick-{uuid.uuid4().hex[:12]}")
        try:
            performance, health, infrastructure = await asyncio.gather(
                self._collect_performance(),
                self._collect_health(),
                self._collect_infrastructure(),
            )
            requests = self._evaluator.evaluate(performance, health, infrastructure)

            created = 0
            for request in requests:
                try:
                    if await self._manager.create_alert(request) is not None:
                        created += 1
                except AlertManagerClosedError:
                    raise
                except Exception:
                    logger.exception("alert_create_failed", name=request.name)

            await self._manager.sweep_expired_suppressions()
            await self._manager.prune()
            logger.debug(
                "scheduler_tick",
                tick=self._tick_count,
                breaches=len(requests),
                created=created,
            )
            return created
        finally:
            bind_correlation_id(None)

    # ── Snapshot collection ─────────────────────────────────────

    async def _collect_performance(self) -> PerformanceSnapshot | None:
        if self._performance_fn is None:
            return None
        try:
            return await pull(self._performance_fn, self._performance_window_secs)
        except Exception:
            logger.exception("snapshot_collection_failed", source="performance")
            return None

    async def _collect_health(self) -> HealthReport | None:
        if self._health_fn is None:
            return None
        try:
            return await pull(self._health_fn)
        except Exception:
            logger.exception("snapshot_collection_failed", source="health")
            return None

    async def _collect_infrastructure(self) -> InfrastructureSnapshot | None:
        if self._infrastructure_fn is None:
            return None
        try:
            return await pull(self._infrastructure_fn)
        except Exception:
            logger.exception("snapshot_collection_failed", source="infrastructure")
            return None

    # ── Internal loop ───────────────────────────────────────────

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                return
            except AlertManagerClosedError:
                logger.info("scheduler_manager_closed")
                self._running = False
                return
            except Exception:
                logger.exception("scheduler_tick_error", tick=self._tick_count)
            await asyncio.sleep(self._interval_secs)
