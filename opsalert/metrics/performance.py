"""PerformanceTracker — rolling request performance statistics.

Records one sample per handled request and answers:
- Windowed average response time, error rate and cache hit rate
- Per-endpoint stats (slowest, most active, fastest among the most active)
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from opsalert.core.types import PerformanceSnapshot


@dataclass(frozen=True)
class RequestSample:
    """A single handled request."""

    endpoint: str
    method: str
    status_code: int
    response_time_ms: float
    timestamp: float
    cache_hit: bool | None = None

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400


@dataclass
class EndpointStats:
    """Aggregated statistics for a single endpoint."""

    endpoint: str
    method: str
    total_requests: int = 0
    errors: int = 0
    total_response_time_ms: float = 0.0
    min_response_time_ms: float = float("inf")
    max_response_time_ms: float = 0.0
    last_accessed: float = 0.0

    @property
    def average_response_time(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_response_time_ms / self.total_requests

    @property
    def error_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.errors / self.total_requests * 100.0


class PerformanceTracker:
    """Collects request samples and serves :class:`PerformanceSnapshot` reads.

    Usage::

        tracker = PerformanceTracker()
        tracker.record("/api/accounts", "GET", 200, 42.0)

        snap = tracker.get_performance_stats(window_secs=300)
        slow = tracker.slowest_endpoints(5)
    """

    def __init__(
        self,
        max_samples: int = 50_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._samples: deque[RequestSample] = deque(maxlen=max_samples)
        self._clock = clock

    def record(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        response_time_ms: float,
        *,
        cache_hit: bool | None = None,
        timestamp: float | None = None,
    ) -> None:
        """Record a handled request."""
        self._samples.append(RequestSample(
            endpoint=endpoint,
            method=method.upper(),
            status_code=status_code,
            response_time_ms=response_time_ms,
            timestamp=timestamp if timestamp is not None else self._clock(),
            cache_hit=cache_hit,
        ))

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def get_performance_stats(self, window_secs: float = 300.0) -> PerformanceSnapshot:
        """Aggregate the samples of the last ``window_secs`` seconds.

        Rates are ``None`` when the window holds no eligible samples.
        """
        now = self._clock()
        samples = self._window(now, window_secs)
        total = len(samples)
        if total == 0:
            return PerformanceSnapshot(window_secs=window_secs, timestamp=now)

        avg = sum(s.response_time_ms for s in samples) / total
        errors = sum(1 for s in samples if s.is_error)
        cache_samples = [s for s in samples if s.cache_hit is not None]
        cache_rate: float | None = None
        if cache_samples:
            hits = sum(1 for s in cache_samples if s.cache_hit)
            cache_rate = hits / len(cache_samples) * 100.0

        return PerformanceSnapshot(
            average_response_time=round(avg, 3),
            error_rate=round(errors / total * 100.0, 3),
            cache_hit_rate=round(cache_rate, 3) if cache_rate is not None else None,
            total_requests=total,
            window_secs=window_secs,
            timestamp=now,
        )

    def endpoint_stats(self, window_secs: float | None = None) -> list[EndpointStats]:
        """Per-endpoint aggregates, optionally limited to a time window."""
        samples = (
            self._window(self._clock(), window_secs)
            if window_secs is not None
            else list(self._samples)
        )
        stats: dict[tuple[str, str], EndpointStats] = {}
        for s in samples:
            key = (s.method, s.endpoint)
            st = stats.get(key)
            if st is None:
                st = EndpointStats(endpoint=s.endpoint, method=s.method)
                stats[key] = st
            st.total_requests += 1
            st.errors += int(s.is_error)
            st.total_response_time_ms += s.response_time_ms
            st.min_response_time_ms = min(st.min_response_time_ms, s.response_time_ms)
            st.max_response_time_ms = max(st.max_response_time_ms, s.response_time_ms)
            st.last_accessed = max(st.last_accessed, s.timestamp)
        return list(stats.values())

    def slowest_endpoints(self, limit: int = 10) -> list[EndpointStats]:
        """Endpoints ordered by average response time, slowest first."""
        ranked = sorted(
            self.endpoint_stats(),
            key=lambda st: st.average_response_time,
            reverse=True,
        )
        return ranked[:limit]

    def most_active_endpoints(self, limit: int = 10) -> list[EndpointStats]:
        """Endpoints ordered by request count, busiest first."""
        ranked = sorted(
            self.endpoint_stats(),
            key=lambda st: st.total_requests,
            reverse=True,
        )
        return ranked[:limit]

    def fastest_endpoints(self, limit: int = 10) -> list[EndpointStats]:
        """Lowest average response time among the ``limit`` most active endpoints."""
        return sorted(
            self.most_active_endpoints(limit),
            key=lambda st: st.average_response_time,
        )

    def clear(self) -> None:
        self._samples.clear()

    def _window(self, now: float, window_secs: float) -> list[RequestSample]:
        cutoff = now - window_secs
        return [s for s in self._samples if s.timestamp >= cutoff]
