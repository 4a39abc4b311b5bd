"""Shared test helpers."""

from __future__ import annotations

import random

import pytest


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class ScriptedRandom(random.Random):
    """Returns queued values from random(), in order."""

    def __init__(self, values: list[float]) -> None:
        super().__init__(0)
        self.values = list(values)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.values.pop(0)


class RecordingScheduler:
    """Idle scheduler that never runs anything on its own."""

    def __init__(self) -> None:
        self.callbacks: dict[int, object] = {}
        self.cancelled: list[int] = []
        self._next = 0

    def request_idle(self, callback) -> int:
        self._next += 1
        self.callbacks[self._next] = callback
        return self._next

    def cancel(self, handle: int) -> None:
        self.cancelled.append(handle)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1_000_000.0)
