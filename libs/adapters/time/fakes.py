from __future__ import annotations

from ports.time import ClockPort


class FakeClockPort(ClockPort):
    """Manually driven clock for tests."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += float(seconds)
