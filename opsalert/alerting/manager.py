"""AlertManager — alert store and lifecycle state machine.

States::

    ACTIVE ──acknowledge──▶ ACTIVE (annotated)
    ACTIVE ──suppress─────▶ SUPPRESSED ──sweep (expired)──▶ ACTIVE
    ACTIVE / SUPPRESSED ──resolve──▶ RESOLVED (terminal)

Writes are serialized by one asyncio lock; reads return deep copies so
callers never observe or mutate a half-applied transition.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from opsalert.alerting.statistics import compute_statistics
from opsalert.alerting.types import (
    MAX_PAGE_SIZE,
    Alert,
    AlertCreateRequest,
    AlertFilter,
    AlertPage,
    AlertStatistics,
)
from opsalert.core.config import MAX_SUPPRESSION_MINUTES, AlertingConfig
from opsalert.core.exceptions import AlertManagerClosedError, InvalidAlertInputError
from opsalert.core.logging import current_correlation_id
from opsalert.core.types import AlertStatus

logger = structlog.stdlib.get_logger()

AlertCallback = Callable[[Alert], Awaitable[object] | object]

_DedupKey = tuple[str, str]


class AlertManager:
    """Owns every alert record and applies lifecycle transitions atomically.

    Usage::

        manager = AlertManager(config, on_alert=dispatcher.dispatch)
        alert = await manager.create_alert(AlertCreateRequest(name="Disk Full"))
        await manager.acknowledge_alert(alert.id, "ops")
        await manager.resolve_alert(alert.id, "ops", "cleaned /var/log")
        await manager.close()
    """

    def __init__(
        self,
        config: AlertingConfig | None = None,
        on_alert: AlertCallback | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or AlertingConfig()
        self._clock = clock
        self._callbacks: list[AlertCallback] = [on_alert] if on_alert else []
        self._alerts: dict[str, Alert] = {}
        # Insertion-ordered ids per (name, source) for cooldown lookups.
        self._by_key: dict[_DedupKey, list[str]] = {}
        self._lock = asyncio.Lock()
        self._closing = False
        self._pending: set[asyncio.Task[None]] = set()

    # ── Properties ──────────────────────────────────────────────

    @property
    def closing(self) -> bool:
        return self._closing

    @property
    def count(self) -> int:
        return len(self._alerts)

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    def on_alert(self, callback: AlertCallback) -> None:
        """Register a callback invoked (in the background) for each new alert."""
        self._callbacks.append(callback)

    # ── Writes ──────────────────────────────────────────────────

    async def create_alert(
        self, request: AlertCreateRequest | None = None, **fields: Any,
    ) -> Alert | None:
        """Store a new ACTIVE alert unless a recent equivalent one exists.

        Accepts an ``AlertCreateRequest`` or its fields as keyword arguments.
        Returns None when the request is dropped: the most recent alert with
        the same name and source is unresolved and either still suppressed
        or created within the cooldown window.
        """
        if request is None:
            request = AlertCreateRequest(**fields)

        async with self._lock:
            self._ensure_open()
            now = self._clock()
            key = (request.name, request.source)
            previous = self._latest(key)
            if previous is not None and self._is_duplicate(previous, request, now):
                logger.debug(
                    "alert_deduplicated",
                    name=request.name,
                    source=request.source,
                    existing_id=previous.id,
                    existing_status=previous.status.value,
                )
                return None

            alert = Alert(
                name=request.name,
                description=request.description,
                severity=request.severity,
                category=request.category,
                source=request.source,
                timestamp=now,
                current_value=request.current_value,
                threshold=request.threshold,
                tags=list(request.tags),
                metadata=dict(request.metadata),
                correlation_id=request.correlation_id or current_correlation_id(),
            )
            self._alerts[alert.id] = alert
            self._by_key.setdefault(key, []).append(alert.id)
            self._enforce_cap()
            snapshot = alert.model_copy(deep=True)

        logger.warning(
            "alert_triggered",
            alert_id=snapshot.id,
            name=snapshot.name,
            severity=snapshot.severity.value,
            category=snapshot.category.value,
            source=snapshot.source,
            current_value=snapshot.current_value,
            correlation_id=snapshot.correlation_id,
        )
        self._notify(snapshot)
        return snapshot

    async def acknowledge_alert(
        self, alert_id: str, by: str, notes: str | None = None,
    ) -> Alert | None:
        """Annotate an unresolved alert; returns None if unknown or RESOLVED."""
        async with self._lock:
            self._ensure_open()
            alert = self._alerts.get(alert_id)
            if alert is None or alert.status == AlertStatus.RESOLVED:
                return None
            alert.acknowledged_by = by
            alert.acknowledged_at = self._clock()
            if notes is not None:
                alert.notes = notes
            snapshot = alert.model_copy(deep=True)

        logger.info("alert_acknowledged", alert_id=alert_id, name=snapshot.name, by=by)
        return snapshot

    async def resolve_alert(
        self, alert_id: str, by: str | None = None, notes: str | None = None,
    ) -> Alert | None:
        """Move an alert to RESOLVED; None if unknown or already resolved."""
        async with self._lock:
            self._ensure_open()
            alert = self._alerts.get(alert_id)
            if alert is None or alert.status == AlertStatus.RESOLVED:
                return None
            now = self._clock()
            alert.status = AlertStatus.RESOLVED
            alert.resolved_at = max(now, alert.timestamp)
            alert.resolved_by = by or "system"
            if by and alert.acknowledged_by is None:
                alert.acknowledged_by = by
                alert.acknowledged_at = now
            alert.suppressed_until = None
            if notes is not None:
                alert.notes = notes
            snapshot = alert.model_copy(deep=True)

        logger.info(
            "alert_resolved",
            alert_id=alert_id,
            name=snapshot.name,
            resolved_by=snapshot.resolved_by,
        )
        return snapshot

    async def suppress_alert(
        self, alert_id: str, minutes: float, reason: str | None = None,
    ) -> Alert | None:
        """Silence an unresolved alert for ``minutes``.

        Raises:
            InvalidAlertInputError: If ``minutes`` is not in (0, 10080].
        """
        if not 0 < minutes <= MAX_SUPPRESSION_MINUTES:
            raise InvalidAlertInputError(
                f"suppression minutes must be in (0, {MAX_SUPPRESSION_MINUTES}],"
                f" got {minutes}",
            )

        async with self._lock:
            self._ensure_open()
            alert = self._alerts.get(alert_id)
            if alert is None or alert.status == AlertStatus.RESOLVED:
                return None
            alert.status = AlertStatus.SUPPRESSED
            alert.suppressed_until = self._clock() + minutes * 60.0
            alert.suppression_reason = reason
            snapshot = alert.model_copy(deep=True)

        logger.info(
            "alert_suppressed",
            alert_id=alert_id,
            name=snapshot.name,
            minutes=minutes,
            reason=reason,
        )
        return snapshot

    async def sweep_expired_suppressions(self, now: float | None = None) -> list[Alert]:
        """Reactivate every SUPPRESSED alert whose suppression has elapsed."""
        async with self._lock:
            self._ensure_open()
            at = self._clock() if now is None else now
            reactivated: list[Alert] = []
            for alert in self._alerts.values():
                if (
                    alert.status == AlertStatus.SUPPRESSED
                    and alert.suppressed_until is not None
                    and alert.suppressed_until <= at
                ):
                    alert.status = AlertStatus.ACTIVE
                    alert.suppressed_until = None
                    reactivated.append(alert.model_copy(deep=True))

        for alert in reactivated:
            logger.info("alert_reactivated", alert_id=alert.id, name=alert.name)
        return reactivated

    async def prune(self, now: float | None = None) -> int:
        """Apply retention: expire old RESOLVED alerts, then enforce the cap."""
        async with self._lock:
            self._ensure_open()
            at = self._clock() if now is None else now
            cutoff = at - self._config.resolved_retention_hours * 3600.0
            expired = [
                a.id
                for a in self._alerts.values()
                if a.status == AlertStatus.RESOLVED
                and a.resolved_at is not None
                and a.resolved_at < cutoff
            ]
            for alert_id in expired:
                self._drop(alert_id)
            removed = len(expired) + self._enforce_cap()

        if removed:
            logger.info("alerts_pruned", removed=removed, remaining=len(self._alerts))
        return removed

    async def close(self, timeout_secs: float = 5.0) -> None:
        """Reject further writes, drain in-flight ones and pending notifications."""
        self._closing = True
        async with self._lock:
            pass

        pending = list(self._pending)
        if pending:
            done, not_done = await asyncio.wait(pending, timeout=timeout_secs)
            for task in not_done:
                task.cancel()
            if not_done:
                await asyncio.gather(*not_done, return_exceptions=True)
                logger.warning("notifications_abandoned", count=len(not_done))
        logger.info("alert_manager_closed", alerts=len(self._alerts))

    # ── Reads ───────────────────────────────────────────────────

    def get_alert(self, alert_id: str) -> Alert | None:
        alert = self._alerts.get(alert_id)
        return alert.model_copy(deep=True) if alert is not None else None

    def get_active_alerts(self) -> list[Alert]:
        """ACTIVE and ACKNOWLEDGED alerts, newest first."""
        return [a.model_copy(deep=True) for a in self._newest_first() if a.is_open]

    def get_alerts(self, query: AlertFilter | None = None, **filters: Any) -> AlertPage:
        """Filtered, paginated alerts, newest first.

        Accepts an ``AlertFilter`` or its fields as keyword arguments, not
        both. Keyword ``limit`` and ``offset`` are clamped into range.

        Raises:
            InvalidAlertInputError: If both ``query`` and keyword filters are given.
        """
        if query is not None and filters:
            raise InvalidAlertInputError(
                f"pass either an AlertFilter or keyword filters, got both: {sorted(filters)}",
            )
        if query is None:
            if "limit" in filters:
                filters["limit"] = min(max(int(filters["limit"]), 1), MAX_PAGE_SIZE)
            if "offset" in filters:
                filters["offset"] = max(int(filters["offset"]), 0)
            query = AlertFilter(**filters)
        matching = [a for a in self._newest_first() if query.matches(a)]
        total = len(matching)
        page = matching[query.offset:query.offset + query.limit]
        return AlertPage(
            alerts=[a.model_copy(deep=True) for a in page],
            total=total,
            has_more=query.offset + query.limit < total,
        )

    def get_alert_statistics(self, window_hours: float = 24.0) -> AlertStatistics:
        """Statistics over alerts created within the last ``window_hours``."""
        try:
            return compute_statistics(list(self._alerts.values()), window_hours, self._clock())
        except Exception:
            logger.exception("alert_statistics_error", window_hours=window_hours)
            return AlertStatistics(window_hours=window_hours)

    # ── Internal ────────────────────────────────────────────────

    def _ensure_open(self) -> None:
        if self._closing:
            raise AlertManagerClosedError("alert manager is shutting down")

    def _latest(self, key: _DedupKey) -> Alert | None:
        ids = self._by_key.get(key)
        if not ids:
            return None
        return self._alerts.get(ids[-1])

    def _is_duplicate(
        self, previous: Alert, request: AlertCreateRequest, now: float,
    ) -> bool:
        if previous.status == AlertStatus.RESOLVED:
            return False
        if (
            previous.status == AlertStatus.SUPPRESSED
            and previous.suppressed_until is not None
            and previous.suppressed_until > now
        ):
            return True
        cooldown_minutes = (
            request.cooldown_minutes
            if request.cooldown_minutes is not None
            else self._config.default_cooldown_minutes
        )
        return now - previous.timestamp < cooldown_minutes * 60.0

    def _newest_first(self) -> list[Alert]:
        # dict order is insertion order; reversing keeps ties stable.
        return sorted(
            reversed(list(self._alerts.values())),
            key=lambda a: a.timestamp,
            reverse=True,
        )

    def _drop(self, alert_id: str) -> None:
        alert = self._alerts.pop(alert_id, None)
        if alert is None:
            return
        key = (alert.name, alert.source)
        ids = self._by_key.get(key)
        if ids is not None:
            ids.remove(alert_id)
            if not ids:
                del self._by_key[key]

    def _enforce_cap(self) -> int:
        excess = len(self._alerts) - self._config.max_alerts
        if excess <= 0:
            return 0

        resolved = sorted(
            (a for a in self._alerts.values() if a.status == AlertStatus.RESOLVED),
            key=lambda a: a.timestamp,
        )
        # Open alerts are never evicted; the store may exceed the cap instead.
        victims = [a.id for a in resolved[:excess]]
        if len(victims) < excess:
            logger.warning(
                "alert_cap_exceeded",
                max_alerts=self._config.max_alerts,
                stored=len(self._alerts) - len(victims),
                unresolved=len(self._alerts) - len(resolved),
            )
        for alert_id in victims:
            self._drop(alert_id)
        return len(victims)

    def _notify(self, alert: Alert) -> None:
        for cb in self._callbacks:
            task = asyncio.create_task(self._run_callback(cb, alert))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _run_callback(self, cb: AlertCallback, alert: Alert) -> None:
        try:
            result = cb(alert)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("alert_callback_error", alert_id=alert.id, name=alert.name)
