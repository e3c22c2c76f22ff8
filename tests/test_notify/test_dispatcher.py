"""Tests for NotificationDispatcher — fan-out, filtering, isolation, timeouts."""

from __future__ import annotations

import asyncio

from opsalert.alerting.types import Alert
from opsalert.core.config import ChannelConfig
from opsalert.core.types import AlertCategory, ChannelKind, Severity
from opsalert.notify.channels import NotificationChannel
from opsalert.notify.dispatcher import NotificationDispatcher
from opsalert.notify.formatters import AlertMessage


# ── Helpers ─────────────────────────────────────────────────────


class FakeChannel(NotificationChannel):
    """In-memory channel for testing."""

    kind = ChannelKind.LOG

    def __init__(
        self,
        name: str = "fake",
        fail: bool = False,
        delay: float = 0.0,
        result: bool = True,
        **config: object,
    ) -> None:
        fields: dict[str, object] = {"enabled": True, "name": name}
        fields.update(config)
        super().__init__(ChannelConfig(**fields))  # type: ignore[arg-type]
        self.sent: list[AlertMessage] = []
        self._fail = fail
        self._delay = delay
        self._result = result
        self.closed = False

    @property
    def target(self) -> str:
        return "memory"

    async def send(self, msg: AlertMessage) -> bool:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail:
            raise ConnectionError("fake error")
        self.sent.append(msg)
        return self._result

    async def close(self) -> None:
        self.closed = True


def _alert(**kw: object) -> Alert:
    defaults: dict[str, object] = {
        "name": "High Error Rate",
        "severity": Severity.HIGH,
        "category": AlertCategory.PERFORMANCE,
        "source": "rule:performance.error_rate",
        "timestamp": 1000.0,
    }
    defaults.update(kw)
    return Alert(**defaults)  # type: ignore[arg-type]


# ── Dispatch ────────────────────────────────────────────────────


class TestDispatch:
    async def test_every_channel_once(self) -> None:
        a, b = FakeChannel("a"), FakeChannel("b")
        disp = NotificationDispatcher([a, b])
        results = await disp.dispatch(_alert())
        assert results == {"a": True, "b": True}
        assert len(a.sent) == 1
        assert len(b.sent) == 1
        assert a.sent[0].title == "[HIGH] High Error Rate"

    async def test_failing_channel_isolated(self) -> None:
        bad, good = FakeChannel("bad", fail=True), FakeChannel("good")
        disp = NotificationDispatcher([bad, good])
        results = await disp.dispatch(_alert())
        assert results == {"bad": False, "good": True}
        assert len(good.sent) == 1

    async def test_channel_reporting_failure(self) -> None:
        ch = FakeChannel("flaky", result=False)
        results = await NotificationDispatcher([ch]).dispatch(_alert())
        assert results == {"flaky": False}

    async def test_hung_channel_times_out(self) -> None:
        slow, fast = FakeChannel("slow", delay=5.0), FakeChannel("fast")
        disp = NotificationDispatcher([slow, fast], timeout_secs=0.05)
        results = await asyncio.wait_for(disp.dispatch(_alert()), timeout=2.0)
        assert results == {"slow": False, "fast": True}

    async def test_disabled_channel_skipped(self) -> None:
        ch = FakeChannel("off", enabled=False)
        results = await NotificationDispatcher([ch]).dispatch(_alert())
        assert results == {}
        assert ch.sent == []

    async def test_filtered_channel_skipped(self) -> None:
        pager = FakeChannel("pager", severities=[Severity.CRITICAL])
        log = FakeChannel("log")
        disp = NotificationDispatcher([pager, log])
        results = await disp.dispatch(_alert(severity=Severity.HIGH))
        assert results == {"log": True}

        results = await disp.dispatch(_alert(severity=Severity.CRITICAL))
        assert results == {"pager": True, "log": True}

    async def test_no_channels(self) -> None:
        assert await NotificationDispatcher().dispatch(_alert()) == {}

    async def test_add_channel(self) -> None:
        disp = NotificationDispatcher()
        disp.add_channel(FakeChannel("late"))
        assert [c.name for c in disp.channels] == ["late"]
        assert await disp.dispatch(_alert()) == {"late": True}


# ── Lifecycle ───────────────────────────────────────────────────


class TestClose:
    async def test_close_all_channels(self) -> None:
        a, b = FakeChannel("a"), FakeChannel("b")
        disp = NotificationDispatcher([a, b])
        await disp.close()
        assert a.closed and b.closed

    async def test_close_error_does_not_stop_others(self) -> None:
        class BrokenClose(FakeChannel):
            async def close(self) -> None:
                raise RuntimeError("close failed")

        broken, ok = BrokenClose("broken"), FakeChannel("ok")
        disp = NotificationDispatcher([broken, ok])
        await disp.close()
        assert ok.closed
