"""
Module: commission_engines.pay_run
Responsibility:
    Map an instant (submission or approval time) to the Friday pay run it
    lands in under the weekly cutoff rule: anything strictly before
    Tuesday 15:00 in the reference offset is paid this week's Friday,
    anything at or after it is paid next week's Friday.

Architecture position:
    Engines -- pure, zero I/O, no clock access.  Callers pass the instant.

Invariants enforced:
    - Weeks run Sunday through Saturday in the reference offset.
    - The reference offset is fixed (default UTC-7, no daylight saving).
    - The result is always a Friday, and always strictly after the local
      date of a Friday or Saturday input (no same-day payment).
    - ``scheduled_pay_date_string`` / ``parse_pay_date_string`` round-trip
      losslessly through YYYY-MM-DD.

Failure modes:
    - ValueError for naive datetimes (the offset would be ambiguous).
    - ValueError when parsing a date string that is not a Friday.

Usage:
    from commission_engines.pay_run import scheduled_pay_date

    scheduled_pay_date(datetime(2026, 2, 24, 21, 0, tzinfo=timezone.utc))
    # Tuesday 14:00 MST -> date(2026, 2, 27)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

FRIDAY = 4


@dataclass(frozen=True)
class PayRunCutoff:
    """
    Weekly cutoff rule.

    ``weekday`` uses Python numbering (Monday=0, Tuesday=1).
    """

    weekday: int = 1
    hour: int = 15
    minute: int = 0
    utc_offset_hours: int = -7

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be 0-6, got {self.weekday}")
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError(f"invalid cutoff time {self.hour}:{self.minute}")
        if not -14 <= self.utc_offset_hours <= 14:
            raise ValueError(f"invalid UTC offset {self.utc_offset_hours}")

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(hours=self.utc_offset_hours))

    @property
    def cutoff_time(self) -> time:
        return time(self.hour, self.minute)


DEFAULT_CUTOFF = PayRunCutoff()


def _days_since_sunday(day: date) -> int:
    return (day.weekday() + 1) % 7


def is_before_cutoff(instant: datetime, cutoff: PayRunCutoff = DEFAULT_CUTOFF) -> bool:
    """True when the local time falls strictly before this week's cutoff."""
    if instant.tzinfo is None:
        raise ValueError("instant must be timezone-aware")
    local = instant.astimezone(cutoff.tz)
    day = _days_since_sunday(local.date())
    cutoff_day = (cutoff.weekday + 1) % 7
    if day != cutoff_day:
        return day < cutoff_day
    return local.time().replace(tzinfo=None) < cutoff.cutoff_time


def scheduled_pay_date(instant: datetime, cutoff: PayRunCutoff = DEFAULT_CUTOFF) -> date:
    """The Friday pay-run date for ``instant``."""
    local_day = instant.astimezone(cutoff.tz).date() if instant.tzinfo else None
    if local_day is None:
        raise ValueError("instant must be timezone-aware")
    this_friday = local_day + timedelta(days=FRIDAY + 1 - _days_since_sunday(local_day))
    if is_before_cutoff(instant, cutoff):
        return this_friday
    return this_friday + timedelta(days=7)


def scheduled_pay_datetime(instant: datetime, cutoff: PayRunCutoff = DEFAULT_CUTOFF) -> datetime:
    """The pay-run Friday at local midnight in the reference offset."""
    pay_date = scheduled_pay_date(instant, cutoff)
    return datetime.combine(pay_date, time(0, 0), tzinfo=cutoff.tz)


def scheduled_pay_date_string(instant: datetime, cutoff: PayRunCutoff = DEFAULT_CUTOFF) -> str:
    """YYYY-MM-DD form of ``scheduled_pay_date``."""
    return scheduled_pay_date(instant, cutoff).isoformat()


def parse_pay_date_string(value: str) -> date:
    """Inverse of ``scheduled_pay_date_string``; rejects non-Fridays."""
    parsed = date.fromisoformat(value)
    if parsed.weekday() != FRIDAY:
        raise ValueError(f"{value} is not a Friday")
    return parsed
