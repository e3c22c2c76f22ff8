"""Convenience factory for wiring the alerting stack."""

from __future__ import annotations

from dataclasses import dataclass

from opsalert.alerting.manager import AlertManager
from opsalert.alerting.rules import RuleEvaluator
from opsalert.core.config import NotificationsConfig, Settings
from opsalert.notify.channels import (
    EmailChannel,
    LogChannel,
    NotificationChannel,
    WebhookChannel,
)
from opsalert.notify.dispatcher import NotificationDispatcher
from opsalert.scheduler import AlertScheduler
from opsalert.sources import HealthSourceFn, InfrastructureSourceFn, PerformanceSourceFn


@dataclass
class AlertingStack:
    manager: AlertManager
    evaluator: RuleEvaluator
    dispatcher: NotificationDispatcher
    scheduler: AlertScheduler

    async def start(self) -> None:
        await self.scheduler.start()

    async def stop(self, timeout_secs: float = 5.0) -> None:
        await self.scheduler.stop()
        await self.manager.close(timeout_secs)
        await self.dispatcher.close()


def build_channels(config: NotificationsConfig) -> list[NotificationChannel]:
    """Instantiate every enabled channel."""
    channels: list[NotificationChannel] = []

    if config.log.enabled:
        channels.append(LogChannel(config.log))

    if config.email.enabled:
        channels.append(EmailChannel(config.email))

    if config.webhook.enabled:
        channels.append(WebhookChannel(config.webhook))

    return channels


def create_alerting_stack(
    settings: Settings,
    performance_fn: PerformanceSourceFn | None = None,
    health_fn: HealthSourceFn | None = None,
    infrastructure_fn: InfrastructureSourceFn | None = None,
) -> AlertingStack:
    """Build manager, evaluator, dispatcher and scheduler from settings."""
    alerting = settings.alerting

    dispatcher = NotificationDispatcher(
        channels=build_channels(settings.notifications),
        timeout_secs=alerting.dispatch_timeout_secs,
    )
    manager = AlertManager(alerting, on_alert=dispatcher.dispatch)
    evaluator = RuleEvaluator(
        rules=list(alerting.rules),
        default_cooldown_minutes=alerting.default_cooldown_minutes,
    )
    scheduler = AlertScheduler(
        manager,
        evaluator,
        performance_fn=performance_fn,
        health_fn=health_fn,
        infrastructure_fn=infrastructure_fn,
        interval_secs=alerting.scheduler_interval_secs,
        performance_window_secs=alerting.performance_window_secs,
    )

    return AlertingStack(
        manager=manager,
        evaluator=evaluator,
        dispatcher=dispatcher,
        scheduler=scheduler,
    )
