"""Notification channels — webhook, email and log delivery."""

from __future__ import annotations

import abc
import asyncio
import smtplib
from email.mime.text import MIMEText

import aiohttp
import structlog

from opsalert.core.config import (
    ChannelConfig,
    EmailConfig,
    LogChannelConfig,
    WebhookConfig,
)
from opsalert.core.types import ChannelKind
from opsalert.notify.formatters import AlertMessage

logger = structlog.get_logger(__name__)

# Dedicated logger the log channel writes alerts to.
alert_logger = structlog.get_logger("alert_notifications")


class NotificationChannel(abc.ABC):
    """Base class for alert delivery channels."""

    kind: ChannelKind

    def __init__(self, config: ChannelConfig | None = None) -> None:
        self._config = config or ChannelConfig(enabled=True)

    @property
    def name(self) -> str:
        return self._config.name or self.kind.value

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    @abc.abstractmethod
    def target(self) -> str:
        """Address or URL the channel delivers to."""

    def accepts(self, msg: AlertMessage) -> bool:
        """Whether the channel's severity/category filters let ``msg`` through."""
        if self._config.severities and msg.severity not in self._config.severities:
            return False
        if self._config.categories and msg.category not in self._config.categories:
            return False
        return True

    @abc.abstractmethod
    async def send(self, msg: AlertMessage) -> bool:
        """Send an alert message. Returns True on success."""

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class WebhookChannel(NotificationChannel):
    """POSTs the alert as JSON to a webhook URL (optional bearer token)."""

    kind = ChannelKind.WEBHOOK

    def __init__(self, config: WebhookConfig) -> None:
        super().__init__(config)
        self._url = config.url.get_secret_value()
        self._token = config.token.get_secret_value()
        self._session: aiohttp.ClientSession | None = None

    @property
    def target(self) -> str:
        return self._url

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def send(self, msg: AlertMessage) -> bool:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        payload = {
            "title": msg.title,
            "severity": msg.severity.value,
            "category": msg.category.value,
            "body": msg.body,
            "fields": msg.fields,
            "alert": msg.raw,
        }

        try:
            session = self._get_session()
            async with session.post(self._url, json=payload, headers=headers) as resp:
                if 200 <= resp.status < 300:
                    return True
                body = await resp.text()
                logger.warning(
                    "webhook_send_failed",
                    status=resp.status,
                    body=body[:200],
                    alert_id=msg.alert_id,
                )
                return False
        except Exception:
            logger.exception("webhook_send_error", alert_id=msg.alert_id)
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class EmailChannel(NotificationChannel):
    """Sends a plain-text email over SMTP; the blocking call runs in a thread."""

    kind = ChannelKind.EMAIL

    def __init__(self, config: EmailConfig) -> None:
        super().__init__(config)
        self._email = config

    @property
    def target(self) -> str:
        return ", ".join(self._email.recipients)

    def build_email(self, msg: AlertMessage) -> MIMEText:
        lines = [msg.title, ""]
        if msg.body:
            lines.extend([msg.body, ""])
        lines.extend(f"{k}: {v}" for k, v in msg.fields.items())

        mime = MIMEText("\n".join(lines), "plain", "utf-8")
        mime["Subject"] = msg.title
        mime["From"] = self._email.from_address
        mime["To"] = ", ".join(self._email.recipients)
        return mime

    async def send(self, msg: AlertMessage) -> bool:
        if not self._email.recipients:
            logger.warning("email_no_recipients", alert_id=msg.alert_id)
            return False
        try:
            await asyncio.to_thread(self._send_sync, self.build_email(msg))
            return True
        except Exception:
            logger.exception("email_send_error", alert_id=msg.alert_id)
            return False

    def _send_sync(self, mime: MIMEText) -> None:
        cfg = self._email
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=30) as server:
            if cfg.use_tls:
                server.starttls()
            password = cfg.password.get_secret_value()
            if cfg.username and password:
                server.login(cfg.username, password)
            server.sendmail(cfg.from_address, cfg.recipients, mime.as_string())


class LogChannel(NotificationChannel):
    """Writes alerts to the structured log; never fails."""

    kind = ChannelKind.LOG

    def __init__(self, config: LogChannelConfig | None = None) -> None:
        super().__init__(config or LogChannelConfig())

    @property
    def target(self) -> str:
        return "alert_notifications"

    async def send(self, msg: AlertMessage) -> bool:
        alert_logger.warning(
            "alert_notification",
            title=msg.title,
            severity=msg.severity.value,
            category=msg.category.value,
            body=msg.body,
            fields=msg.fields,
        )
        return True
