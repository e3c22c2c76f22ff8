"""Tests for compute_statistics — counts, rankings, resolution times."""

from __future__ import annotations

from opsalert.alerting.statistics import compute_statistics
from opsalert.alerting.types import Alert
from opsalert.core.types import AlertCategory, AlertStatus, Severity

NOW = 1_000_000.0


def _alert(
    name: str,
    minutes_ago: float,
    severity: Severity = Severity.MEDIUM,
    category: AlertCategory = AlertCategory.SYSTEM,
    source: str = "system",
    status: AlertStatus = AlertStatus.ACTIVE,
    resolved_after_minutes: float | None = None,
) -> Alert:
    ts = NOW - minutes_ago * 60.0
    alert = Alert(
        name=name,
        severity=severity,
        category=category,
        source=source,
        status=status,
        timestamp=ts,
    )
    if resolved_after_minutes is not None:
        alert.status = AlertStatus.RESOLVED
        alert.resolved_at = ts + resolved_after_minutes * 60.0
    return alert


class TestCounts:
    def test_empty(self) -> None:
        stats = compute_statistics([], 24, NOW)
        assert stats.total == 0
        assert stats.average_resolution_time == 0.0
        assert stats.by_severity == {"LOW": 0, "MEDIUM": 0, "HIGH": 0, "CRITICAL": 0}
        assert set(stats.by_category) == {c.value for c in AlertCategory}
        assert stats.top_alerts == []

    def test_status_counts(self) -> None:
        alerts = [
            _alert("a", 10),
            _alert("b", 20, status=AlertStatus.ACKNOWLEDGED),
            _alert("c", 30, status=AlertStatus.SUPPRESSED),
            _alert("d", 40, resolved_after_minutes=5),
        ]
        stats = compute_statistics(alerts, 24, NOW)
        assert stats.total == 4
        assert stats.active == 2
        assert stats.suppressed == 1
        assert stats.resolved == 1

    def test_groupings(self) -> None:
        alerts = [
            _alert("a", 1, Severity.HIGH, AlertCategory.PERFORMANCE, "api"),
            _alert("b", 2, Severity.HIGH, AlertCategory.SYSTEM, "infra"),
            _alert("c", 3, Severity.LOW, AlertCategory.SYSTEM, "infra"),
        ]
        stats = compute_statistics(alerts, 24, NOW)
        assert stats.by_severity["HIGH"] == 2
        assert stats.by_severity["LOW"] == 1
        assert stats.by_category["SYSTEM"] == 2
        assert stats.by_category["SECURITY"] == 0
        assert stats.by_source == {"api": 1, "infra": 2}

    def test_window_boundary(self) -> None:
        alerts = [_alert("inside", 60 * 24), _alert("outside", 60 * 24 + 1)]
        stats = compute_statistics(alerts, 24, NOW)
        assert stats.total == 1
        assert stats.recent_alerts[0].name == "inside"


class TestRankings:
    def test_recent_alerts_newest_first_and_capped(self) -> None:
        alerts = [_alert(f"a{i}", i) for i in range(15)]
        stats = compute_statistics(alerts, 24, NOW)
        assert [a.name for a in stats.recent_alerts] == [f"a{i}" for i in range(10)]

    def test_top_alerts_by_count(self) -> None:
        alerts = [
            _alert("Disk", 5),
            _alert("Disk", 15),
            _alert("Disk", 25),
            _alert("CPU", 10),
            _alert("CPU", 20),
            _alert("Latency", 30),
        ]
        stats = compute_statistics(alerts, 24, NOW)
        assert [(t.name, t.count) for t in stats.top_alerts] == [
            ("Disk", 3), ("CPU", 2), ("Latency", 1),
        ]
        assert stats.top_alerts[0].last_occurred == NOW - 300

    def test_top_alert_ties_prefer_most_recent(self) -> None:
        alerts = [_alert("Older", 50), _alert("Newer", 5)]
        stats = compute_statistics(alerts, 24, NOW)
        assert [t.name for t in stats.top_alerts] == ["Newer", "Older"]


class TestResolutionTimes:
    def test_average_in_minutes(self) -> None:
        alerts = [
            _alert("a", 100, resolved_after_minutes=10),
            _alert("b", 100, resolved_after_minutes=30),
            _alert("c", 100),
        ]
        stats = compute_statistics(alerts, 24, NOW)
        assert stats.average_resolution_time == 20.0

    def test_per_category(self) -> None:
        alerts = [
            _alert("a", 100, category=AlertCategory.SYSTEM, resolved_after_minutes=10),
            _alert("b", 100, category=AlertCategory.SYSTEM, resolved_after_minutes=20),
            _alert("c", 100, category=AlertCategory.PERFORMANCE, resolved_after_minutes=60),
        ]
        stats = compute_statistics(alerts, 24, NOW)
        by_cat = {r.category: r for r in stats.resolution_times}
        assert by_cat[AlertCategory.SYSTEM].avg_time == 15.0
        assert by_cat[AlertCategory.SYSTEM].count == 2
        assert by_cat[AlertCategory.PERFORMANCE].avg_time == 60.0
        assert stats.average_resolution_time == 30.0
