"""
Module: commission_engines.draws
Responsibility:
    Draw (advance) arithmetic: the outstanding balance as a sum over signed
    ledger entries, the per-request cap and approval tier for a new draw,
    and how much of a commission can be applied against an open draw.

Architecture position:
    Engines -- pure, zero I/O.  ``DrawService`` feeds it ledger rows and
    settings; this module never sees the database.

Invariants enforced:
    - balance = sum(taken) - sum(paid_back); nothing stores a balance.
    - A draw request is capped at ``estimate_ratio`` of the estimated
      commission when one is given, else at the small-draw limit.
    - Requests above the small-draw limit need an estimate and manager
      approval.
    - Outstanding balance plus the new request may not exceed
      ``max_outstanding``.
    - Repayments never exceed what is outstanding on the draw.

Failure modes:
    - ValueError for non-positive amounts.
    - DrawEstimateRequiredError / DrawLimitExceededError for requests that
      break the limits.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable

from commission_kernel.domain.money import ZERO, round_money, to_decimal
from commission_kernel.exceptions import (
    DrawEstimateRequiredError,
    DrawLimitExceededError,
)


class DrawLedgerEntryType(str, Enum):
    """Direction of a draw ledger entry."""

    TAKEN = "taken"
    PAID_BACK = "paid_back"


@dataclass(frozen=True)
class DrawLedgerLine:
    """One signed movement on a rep's draw ledger."""

    entry_type: DrawLedgerEntryType
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "entry_type", DrawLedgerEntryType(self.entry_type))
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if self.amount <= 0:
            raise ValueError("Draw ledger amounts must be positive")

    @property
    def signed_amount(self) -> Decimal:
        if self.entry_type is DrawLedgerEntryType.TAKEN:
            return self.amount
        return -self.amount


@dataclass(frozen=True)
class DrawLimits:
    """Configured draw thresholds."""

    small_draw_limit: Decimal = Decimal("1500")
    max_outstanding: Decimal = Decimal("4000")
    estimate_ratio: Decimal = Decimal("0.5")


@dataclass(frozen=True)
class DrawDecision:
    """How a new draw request must be handled."""

    requested_amount: Decimal
    cap: Decimal
    requires_manager_approval: bool


@dataclass(frozen=True)
class DrawBalance:
    """Aggregate of a rep's draw ledger."""

    taken: Decimal
    paid_back: Decimal

    @property
    def outstanding(self) -> Decimal:
        return self.taken - self.paid_back


def summarize_ledger(lines: Iterable[DrawLedgerLine]) -> DrawBalance:
    taken = ZERO
    paid_back = ZERO
    for line in lines:
        if line.entry_type is DrawLedgerEntryType.TAKEN:
            taken += line.amount
        else:
            paid_back += line.amount
    return DrawBalance(taken=taken, paid_back=paid_back)


def draw_balance(lines: Iterable[DrawLedgerLine]) -> Decimal:
    """Outstanding balance = sum(taken) - sum(paid back)."""
    return sum((line.signed_amount for line in lines), ZERO)


def evaluate_draw_request(
    requested_amount: Decimal,
    estimated_commission: Decimal | None,
    outstanding_balance: Decimal,
    limits: DrawLimits = DrawLimits(),
) -> DrawDecision:
    """Apply the draw limits to a new request."""
    requested = to_decimal(requested_amount)
    if requested <= 0:
        raise ValueError("Draw amount must be greater than zero")
    estimate = to_decimal(estimated_commission) if estimated_commission is not None else ZERO

    if requested > limits.small_draw_limit and estimate <= 0:
        raise DrawEstimateRequiredError(requested, limits.small_draw_limit)

    cap = round_money(estimate * limits.estimate_ratio) if estimate > 0 else limits.small_draw_limit
    if requested > cap:
        raise DrawLimitExceededError(requested, cap, "per-request cap")

    if to_decimal(outstanding_balance) + requested > limits.max_outstanding:
        raise DrawLimitExceededError(requested, limits.max_outstanding, "maximum outstanding draw")

    return DrawDecision(
        requested_amount=requested,
        cap=cap,
        requires_manager_approval=requested > limits.small_draw_limit,
    )


def repayment_amount(commission_amount: Decimal, outstanding_on_draw: Decimal) -> Decimal:
    """Portion of a commission that can be applied to an open draw."""
    amount = to_decimal(commission_amount)
    outstanding = to_decimal(outstanding_on_draw)
    if amount <= 0 or outstanding <= 0:
        return ZERO
    return min(amount, outstanding)
