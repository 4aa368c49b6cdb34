"""
Pay-run scheduler tests.

Reference zone is a fixed UTC-7 offset; the cutoff is Tuesday 15:00 local.
Week of 2026-02-22 (Sunday) .. 2026-02-28 (Saturday); its Friday is
2026-02-27 and the following Friday is 2026-03-06.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from commission_engines.pay_run import (
    FRIDAY,
    PayRunCutoff,
    is_before_cutoff,
    parse_pay_date_string,
    scheduled_pay_date,
    scheduled_pay_date_string,
    scheduled_pay_datetime,
)

LOCAL = timezone(timedelta(hours=-7))
THIS_FRIDAY = date(2026, 2, 27)
NEXT_FRIDAY = date(2026, 3, 6)


def local(day: int, hour: int, minute: int = 0, second: int = 0, month: int = 2) -> datetime:
    return datetime(2026, month, day, hour, minute, second, tzinfo=LOCAL)


class TestCutoffBoundary:
    def test_one_second_before_cutoff_is_this_friday(self):
        assert scheduled_pay_date(local(24, 14, 59, 59)) == THIS_FRIDAY

    def test_exactly_at_cutoff_is_next_friday(self):
        assert scheduled_pay_date(local(24, 15, 0, 0)) == NEXT_FRIDAY

    def test_after_cutoff_same_day(self):
        assert scheduled_pay_date(local(24, 21, 30)) == NEXT_FRIDAY

    def test_cutoff_is_evaluated_in_the_reference_offset(self):
        # 21:59 UTC Tuesday is 14:59 local
        assert scheduled_pay_date(datetime(2026, 2, 24, 21, 59, tzinfo=timezone.utc)) == THIS_FRIDAY
        assert scheduled_pay_date(datetime(2026, 2, 24, 22, 0, tzinfo=timezone.utc)) == NEXT_FRIDAY

    def test_utc_date_differs_from_local_date(self):
        # 03:00 UTC Wednesday is still Tuesday 20:00 local, after the cutoff
        assert scheduled_pay_date(datetime(2026, 2, 25, 3, 0, tzinfo=timezone.utc)) == NEXT_FRIDAY
        # 05:00 UTC Monday is Sunday 22:00 local, before the cutoff
        assert scheduled_pay_date(datetime(2026, 2, 23, 5, 0, tzinfo=timezone.utc)) == THIS_FRIDAY


class TestWeekdays:
    @pytest.mark.parametrize("day", [22, 23])
    def test_sunday_and_monday_pay_this_friday(self, day):
        assert scheduled_pay_date(local(day, 9)) == THIS_FRIDAY

    @pytest.mark.parametrize("day", [25, 26])
    def test_wednesday_and_thursday_pay_next_friday(self, day):
        assert scheduled_pay_date(local(day, 9)) == NEXT_FRIDAY

    def test_friday_rolls_to_following_friday(self):
        assert scheduled_pay_date(local(27, 8)) == NEXT_FRIDAY

    def test_saturday_rolls_to_following_friday(self):
        assert scheduled_pay_date(local(28, 8)) == NEXT_FRIDAY

    def test_across_month_boundary(self):
        assert scheduled_pay_date(local(3, 10, month=3)) == NEXT_FRIDAY


class TestResultShape:
    def test_result_is_always_a_friday(self):
        start = local(1, 0)
        for hours in range(0, 24 * 21, 5):
            assert scheduled_pay_date(start + timedelta(hours=hours)).weekday() == FRIDAY

    def test_datetime_form_is_local_midnight(self):
        result = scheduled_pay_datetime(local(23, 9))
        assert result == datetime(2026, 2, 27, 0, 0, tzinfo=LOCAL)

    def test_string_form_round_trips(self):
        text = scheduled_pay_date_string(local(23, 9))
        assert text == "2026-02-27"
        assert parse_pay_date_string(text) == THIS_FRIDAY

    def test_parse_rejects_non_friday(self):
        with pytest.raises(ValueError, match="not a Friday"):
            parse_pay_date_string("2026-02-26")

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            scheduled_pay_date(datetime(2026, 2, 23, 9, 0))


class TestCustomCutoff:
    def test_monday_noon_cutoff(self):
        cutoff = PayRunCutoff(weekday=0, hour=12, utc_offset_hours=0)
        monday = datetime(2026, 2, 23, 11, 59, tzinfo=timezone.utc)
        assert is_before_cutoff(monday, cutoff)
        assert scheduled_pay_date(monday, cutoff) == THIS_FRIDAY
        assert scheduled_pay_date(monday + timedelta(minutes=1), cutoff) == NEXT_FRIDAY

    def test_invalid_cutoff_rejected(self):
        with pytest.raises(ValueError):
            PayRunCutoff(weekday=7)
        with pytest.raises(ValueError):
            PayRunCutoff(hour=24)
