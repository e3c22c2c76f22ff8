"""Alert notification — formatting, channels and dispatch."""

from opsalert.notify.channels import (
    EmailChannel,
    LogChannel,
    NotificationChannel,
    WebhookChannel,
)
from opsalert.notify.dispatcher import NotificationDispatcher
from opsalert.notify.formatters import AlertMessage, format_alert

__all__ = [
    "AlertMessage",
    "EmailChannel",
    "LogChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "WebhookChannel",
    "format_alert",
]
