"""Pull-style metric source signatures consumed by the scheduler.

Each source is a plain callable, sync or async, e.g.
``PerformanceTracker.get_performance_stats`` or
``HealthCheckRunner.perform_health_check``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from opsalert.core.types import HealthReport, InfrastructureSnapshot, PerformanceSnapshot

T = TypeVar("T")

PerformanceSourceFn = Callable[[float], PerformanceSnapshot | Awaitable[PerformanceSnapshot]]
HealthSourceFn = Callable[[], HealthReport | Awaitable[HealthReport]]
InfrastructureSourceFn = Callable[
    [], InfrastructureSnapshot | Awaitable[InfrastructureSnapshot]
]


async def pull(fn: Callable[..., T | Awaitable[T]], *args: Any) -> T:
    """Call a source and await its result when it is a coroutine."""
    result = fn(*args)
    if asyncio.iscoroutine(result):
        return await result
    return result  # type: ignore[return-value]
