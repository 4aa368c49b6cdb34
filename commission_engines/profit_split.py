"""
Module: commission_engines.profit_split
Responsibility:
    Profit-split labels such as "15/40/60": O&P percent, rep share, and
    company share of net profit.  Parses labels, generates the option list
    shown to submitters, and maps commission tier codes to splits.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - A label is recognized only if it decomposes into three numbers in
      [0, 100] whose rep and company parts sum to 100% within 1e-10.
    - Generated options always have ``company = 1 - rep``.
    - Labels render percentages with trailing zeros stripped
      (0.125 -> "12.5", 0.40 -> "40").

Failure modes:
    - ``parse_profit_split_label`` never raises; it returns None for
      anything it does not recognize.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable

from commission_kernel.domain.money import to_decimal

ONE = Decimal("1")
HUNDRED = Decimal("100")
SPLIT_TOLERANCE = Decimal("1e-10")

DEFAULT_OP_PERCENT_OPTIONS: tuple[Decimal, ...] = (
    Decimal("0.10"),
    Decimal("0.125"),
    Decimal("0.15"),
)
DEFAULT_REP_PERCENT_OPTIONS: tuple[Decimal, ...] = (
    Decimal("0.35"),
    Decimal("0.40"),
    Decimal("0.45"),
    Decimal("0.50"),
)


@dataclass(frozen=True)
class ProfitSplit:
    """An O&P / rep / company split, each as a fraction of 1."""

    op: Decimal
    rep: Decimal
    company: Decimal
    label: str

    @property
    def is_balanced(self) -> bool:
        return abs(self.rep + self.company - ONE) <= SPLIT_TOLERANCE


class CommissionTier(str, Enum):
    """Tier codes assignable to a rep."""

    TIER_15_40_60 = "15_40_60"
    TIER_15_45_55 = "15_45_55"
    TIER_15_50_50 = "15_50_50"
    CUSTOM = "custom"


def format_label_part(fraction: Decimal) -> str:
    """Render a fraction as a whole or minimal-decimal percent: 0.125 -> "12.5"."""
    percent = (to_decimal(fraction) * HUNDRED).normalize()
    return format(percent, "f")


def make_label(op: Decimal, rep: Decimal, company: Decimal) -> str:
    return "/".join(format_label_part(part) for part in (op, rep, company))


def generate_profit_split_options(
    op_options: Iterable[Decimal] = DEFAULT_OP_PERCENT_OPTIONS,
    rep_options: Iterable[Decimal] = DEFAULT_REP_PERCENT_OPTIONS,
) -> tuple[ProfitSplit, ...]:
    """Every (O&P, rep) combination, O&P-major, with company = 1 - rep."""
    reps = tuple(to_decimal(r) for r in rep_options)
    options: list[ProfitSplit] = []
    for op in (to_decimal(o) for o in op_options):
        for rep in reps:
            company = ONE - rep
            options.append(ProfitSplit(op, rep, company, make_label(op, rep, company)))
    return tuple(options)


def filter_op_percent_options(
    allowed: Iterable[Decimal],
    options: Iterable[Decimal] = DEFAULT_OP_PERCENT_OPTIONS,
) -> tuple[Decimal, ...]:
    """Keep the O&P options that appear in ``allowed``, in option order."""
    allowed_set = {to_decimal(a) for a in allowed}
    return tuple(o for o in options if to_decimal(o) in allowed_set)


def parse_profit_split_label(label: str | None) -> ProfitSplit | None:
    """Decompose "15/40/60" into fractions; None if the label is not recognized."""
    if not label or not isinstance(label, str):
        return None
    parts = label.strip().split("/")
    if len(parts) != 3:
        return None
    try:
        percents = [Decimal(p.strip()) for p in parts]
    except InvalidOperation:
        return None
    if any(not p.is_finite() or p < 0 or p > HUNDRED for p in percents):
        return None
    op, rep, company = (p / HUNDRED for p in percents)
    split = ProfitSplit(op=op, rep=rep, company=company, label=label.strip())
    if not split.is_balanced:
        return None
    return split


def split_for_tier(tier: CommissionTier | str) -> ProfitSplit | None:
    """The fixed split behind a tier code; None for the custom tier."""
    tier = CommissionTier(tier)
    if tier is CommissionTier.CUSTOM:
        return None
    return parse_profit_split_label(tier.value.replace("_", "/"))


def resolve_rep_percent(
    tier: CommissionTier | str,
    custom_percentage: Decimal | None = None,
) -> Decimal:
    """Rep share for a tier; the custom tier uses the rep's override percentage.

    Raises:
        ValueError: custom tier without a custom percentage.
    """
    split = split_for_tier(tier)
    if split is not None:
        return split.rep
    if custom_percentage is None:
        raise ValueError("Custom tier requires a custom override percentage")
    return to_decimal(custom_percentage)
