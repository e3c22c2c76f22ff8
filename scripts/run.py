#!/usr/bin/env python3
"""Alerting service entrypoint — wires all components and runs the scheduler.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from opsalert.core.config import load_settings
from opsalert.core.logging import setup_logging
from opsalert.factory import create_alerting_stack
from opsalert.health.checker import HealthCheckRunner, SystemResourcesHealthCheck
from opsalert.metrics.infrastructure import HostMetricsCollector
from opsalert.metrics.performance import PerformanceTracker

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start the alerting stack and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    enabled_rules = [r.name for r in settings.alerting.rules if r.enabled]
    logger.info(
        "service_starting",
        rules=len(enabled_rules),
        interval_secs=settings.alerting.scheduler_interval_secs,
        email=settings.notifications.email.enabled,
        webhook=settings.notifications.webhook.enabled,
    )

    if not enabled_rules:
        logger.error("no_rules_enabled")
        print(
            "No alert rules enabled. Enable at least one rule under "
            "alerting.rules in config/settings.yaml.",
            file=sys.stderr,
        )
        return 1

    # ── Metric sources ───────────────────────────────────────────
    tracker = PerformanceTracker(max_samples=settings.performance.max_samples)
    host = HostMetricsCollector()
    health = HealthCheckRunner(
        providers=[SystemResourcesHealthCheck(host)],
        config=settings.health,
    )

    # ── Alerting stack ───────────────────────────────────────────
    stack = create_alerting_stack(
        settings,
        performance_fn=tracker.get_performance_stats,
        health_fn=health.perform_health_check,
        infrastructure_fn=host.get_infrastructure_metrics,
    )
    await stack.start()

    logger.info(
        "service_running",
        channels=[ch.name for ch in stack.dispatcher.channels],
    )

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("service_shutting_down")
    await stack.stop()

    stats = stack.manager.get_alert_statistics()
    logger.info(
        "service_stopped",
        ticks=stack.scheduler.tick_count,
        alerts_24h=stats.total,
        active=stats.active,
    )

    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the operational alerting service.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
