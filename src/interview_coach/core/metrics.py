from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StepTiming:
    name: str
    elapsed_ms: float


class Timer:
    """Collects per-stage latencies for one turn."""

    def __init__(self) -> None:
        self._steps: list[StepTiming] = []

    async def measure_async(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        start = time.perf_counter()
        try:
            return await fn()
        finally:
            self._record(name, start)

    def _record(self, name: str, start: float) -> None:
        elapsed = (time.perf_counter() - start) * 1000.0
        self._steps.append(StepTiming(name=name, elapsed_ms=elapsed))

    @property
    def steps(self) -> list[StepTiming]:
        return list(self._steps)

    def summary(self) -> Dict[str, float]:
        out: Dict[str, float] = {s.name: s.elapsed_ms for s in self._steps}
        out["total_ms"] = sum(s.elapsed_ms for s in self._steps)
        return out
