"""Pure functions that convert alerts into channel-ready messages."""

from __future__ import annotations

import datetime
import time
from typing import Any

from pydantic import BaseModel, Field

from opsalert.alerting.types import Alert
from opsalert.core.types import AlertCategory, Severity


class AlertMessage(BaseModel):
    """Normalised alert ready for dispatch to channels."""

    severity: Severity
    category: AlertCategory
    title: str
    body: str = ""
    fields: dict[str, str] = Field(default_factory=dict)
    alert_id: str = ""
    timestamp: float = Field(default_factory=time.time)
    raw: dict[str, Any] = Field(default_factory=dict)


def _iso(ts: float) -> str:
    return datetime.datetime.fromtimestamp(ts, datetime.UTC).isoformat()


def format_alert(alert: Alert) -> AlertMessage:
    """Convert an Alert to an AlertMessage."""
    fields: dict[str, str] = {
        "id": alert.id,
        "source": alert.source,
        "category": alert.category.value,
        "status": alert.status.value,
        "triggered_at": _iso(alert.timestamp),
    }

    if alert.current_value is not None:
        fields["current_value"] = f"{alert.current_value:g}"

    if alert.threshold is not None:
        fields["threshold"] = (
            f"{alert.threshold.metric} {alert.threshold.operator.value}"
            f" {alert.threshold.value:g}"
        )

    if alert.tags:
        fields["tags"] = ", ".join(alert.tags)

    if alert.correlation_id:
        fields["correlation_id"] = alert.correlation_id

    return AlertMessage(
        severity=alert.severity,
        category=alert.category,
        title=f"[{alert.severity.value}] {alert.name}",
        body=alert.description,
        fields=fields,
        alert_id=alert.id,
        timestamp=alert.timestamp,
        raw=alert.model_dump(mode="json"),
    )
