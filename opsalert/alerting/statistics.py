"""Pure statistics over a set of alert records."""

from __future__ import annotations

from collections import defaultdict

from opsalert.alerting.types import (
    Alert,
    AlertStatistics,
    CategoryResolutionTime,
    TopAlert,
)
from opsalert.core.types import AlertCategory, AlertStatus, Severity

_RECENT_LIMIT = 10
_TOP_LIMIT = 10


def compute_statistics(
    alerts: list[Alert],
    window_hours: float,
    now: float,
) -> AlertStatistics:
    """Summarise the alerts whose timestamp falls within the last ``window_hours``.

    Resolution times are expressed in minutes. Severity and category counts
    are zero-filled so every enum member is present.
    """
    cutoff = now - window_hours * 3600.0
    in_window = sorted(
        (a for a in alerts if a.timestamp >= cutoff),
        key=lambda a: a.timestamp,
        reverse=True,
    )

    by_severity = {s.value: 0 for s in Severity}
    by_category = {c.value: 0 for c in AlertCategory}
    by_source: dict[str, int] = defaultdict(int)
    name_counts: dict[str, int] = defaultdict(int)
    name_last: dict[str, float] = {}
    resolution_by_category: dict[AlertCategory, list[float]] = defaultdict(list)

    active = resolved = suppressed = 0
    for a in in_window:
        by_severity[a.severity.value] += 1
        by_category[a.category.value] += 1
        by_source[a.source] += 1
        name_counts[a.name] += 1
        name_last[a.name] = max(name_last.get(a.name, a.timestamp), a.timestamp)

        if a.is_open:
            active += 1
        elif a.status == AlertStatus.SUPPRESSED:
            suppressed += 1
        elif a.status == AlertStatus.RESOLVED:
            resolved += 1
            secs = a.resolution_time_secs
            if secs is not None:
                resolution_by_category[a.category].append(secs / 60.0)

    all_minutes = [m for ms in resolution_by_category.values() for m in ms]
    average = sum(all_minutes) / len(all_minutes) if all_minutes else 0.0

    top = sorted(
        (
            TopAlert(name=name, count=count, last_occurred=name_last[name])
            for name, count in name_counts.items()
        ),
        key=lambda t: (t.count, t.last_occurred),
        reverse=True,
    )

    resolution_times = [
        CategoryResolutionTime(
            category=category,
            avg_time=sum(minutes) / len(minutes),
            count=len(minutes),
        )
        for category, minutes in sorted(
            resolution_by_category.items(), key=lambda kv: kv[0].value,
        )
    ]

    return AlertStatistics(
        window_hours=window_hours,
        total=len(in_window),
        active=active,
        resolved=resolved,
        suppressed=suppressed,
        by_severity=by_severity,
        by_category=by_category,
        by_source=dict(by_source),
        recent_alerts=[a.model_copy(deep=True) for a in in_window[:_RECENT_LIMIT]],
        top_alerts=top[:_TOP_LIMIT],
        average_resolution_time=average,
        resolution_times=resolution_times,
    )
