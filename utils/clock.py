import time

ONE_MINUTE_MS = 60_000
ONE_HOUR_MS = 3_600_000
ONE_DAY_MS = 86_400_000


class Clock:
    """Wall-clock source of millisecond timestamps."""

    def now(self) -> int:
        return int(time.time() * 1000)


class FixedClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, now_ms: int):
        self.now_ms = now_ms

    def now(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms
