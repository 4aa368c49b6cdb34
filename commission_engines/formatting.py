"""
Module: commission_engines.formatting
Responsibility:
    Presentation helpers whose output lands on generated compliance
    documents, so they must agree byte for byte with every other renderer:
    US-dollar currency with a U+2212 minus sign, two-decimal percentages,
    whole-number tier percentages, lenient currency input parsing, and
    pay-date strings.

Architecture position:
    Engines -- pure, zero I/O.  Month and weekday names are spelled out
    here rather than taken from the process locale.

Invariants enforced:
    - Currency and percent rounding is ROUND_HALF_UP.
    - ``parse_currency_input`` never returns a negative value.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from commission_kernel.domain.money import ZERO, round_money, to_decimal

MINUS_SIGN = "−"

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_NUMBER_PREFIX = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)")


def format_currency(value: Decimal | int | str) -> str:
    """1234.56 -> "$1,234.56"; -500 -> "−$500.00"; 0 -> "$0.00"."""
    amount = round_money(to_decimal(value))
    body = f"${abs(amount):,.2f}"
    if amount < 0:
        return MINUS_SIGN + body
    return body


def format_percent(value: Decimal | int | str) -> str:
    """0.15 -> "15.00%"; 0.125 -> "12.50%"."""
    percent = (to_decimal(value) * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{percent:.2f}%"


def format_tier_percent(value: Decimal | int | str) -> str:
    """0.4000000001 -> "40%"."""
    percent = (to_decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{percent:.0f}%"


def parse_currency_input(text: str) -> Decimal:
    """Strip everything but digits, '.', '-' and read the leading number.

    Unparseable input reads as 0 and negatives are clamped to 0.
    """
    cleaned = re.sub(r"[^0-9.\-]", "", text or "")
    match = _NUMBER_PREFIX.match(cleaned)
    if match is None:
        return ZERO
    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return ZERO
    return max(ZERO, value)


def format_pay_date(pay_date: date) -> str:
    """date(2026, 2, 27) -> "Friday, February 27, 2026"."""
    return (
        f"{_WEEKDAYS[pay_date.weekday()]}, {_MONTHS[pay_date.month - 1]} "
        f"{pay_date.day}, {pay_date.year}"
    )


def format_pay_date_short(pay_date: date) -> str:
    """date(2026, 2, 27) -> "Friday, Feb 27"."""
    return f"{_WEEKDAYS[pay_date.weekday()]}, {_MONTHS[pay_date.month - 1][:3]} {pay_date.day}"
