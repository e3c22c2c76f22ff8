"""NotificationDispatcher — best-effort fan-out of alerts to channels."""

from __future__ import annotations

import asyncio

import structlog

from opsalert.alerting.types import Alert
from opsalert.notify.channels import NotificationChannel
from opsalert.notify.formatters import AlertMessage, format_alert

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Sends each alert through every enabled channel exactly once.

    - Channels are attempted concurrently and independently; one failing or
      hanging channel never blocks another.
    - Each attempt is bounded by ``timeout_secs``.
    - Errors are logged and reported as ``False``; ``dispatch`` never raises.
    """

    def __init__(
        self,
        channels: list[NotificationChannel] | None = None,
        timeout_secs: float = 10.0,
    ) -> None:
        self._channels: list[NotificationChannel] = channels or []
        self._timeout_secs = timeout_secs

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def add_channel(self, channel: NotificationChannel) -> None:
        self._channels.append(channel)

    async def dispatch(self, alert: Alert) -> dict[str, bool]:
        """Deliver ``alert``; returns per-channel success keyed by channel name."""
        msg = format_alert(alert)
        targets = [
            ch for ch in self._channels if ch.enabled and ch.accepts(msg)
        ]
        if not targets:
            return {}

        outcomes = await asyncio.gather(
            *(self._send_one(ch, msg) for ch in targets),
        )
        results = {ch.name: ok for ch, ok in zip(targets, outcomes, strict=True)}
        logger.info(
            "alert_dispatched",
            alert_id=alert.id,
            name=alert.name,
            results=results,
        )
        return results

    async def _send_one(self, ch: NotificationChannel, msg: AlertMessage) -> bool:
        try:
            return bool(await asyncio.wait_for(ch.send(msg), self._timeout_secs))
        except TimeoutError:
            logger.warning(
                "channel_dispatch_timeout",
                channel=ch.name,
                timeout_secs=self._timeout_secs,
                alert_id=msg.alert_id,
            )
            return False
        except Exception:
            logger.exception(
                "channel_dispatch_error",
                channel=ch.name,
                alert_id=msg.alert_id,
            )
            return False

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for ch in self._channels:
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=ch.name)
