"""
Injectable time source.

Services take a ``Clock`` instead of calling ``datetime.now()``, so every
``*_at`` stamp, scheduled pay date and outbox retry time comes from one
place and the Tuesday cutoff can be exercised at any instant in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

# Monday 2026-02-23 10:00 at UTC-7, the day before the weekly pay-run cutoff
DEFAULT_TEST_INSTANT = datetime(2026, 2, 23, 17, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Returns timezone-aware instants."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    """Wall-clock UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Stands still until moved.

    ``advance`` takes seconds or a ``timedelta``; ``set_time`` jumps to an
    instant, which must be timezone-aware.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._now = DEFAULT_TEST_INSTANT
        if fixed_time is not None:
            self.set_time(fixed_time)

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        if time.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._now = time

    def advance(self, by: int | float | timedelta = 1) -> None:
        self._now += by if isinstance(by, timedelta) else timedelta(seconds=by)
