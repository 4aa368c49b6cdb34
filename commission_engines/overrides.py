"""
Module: commission_engines.overrides
Responsibility:
    Override-phase arithmetic.  A rep's first N approved commissions
    (default ten) each pay their manager a fixed share (default 10%) of the
    commission's net amount.  The phase state is derived from how many
    override ledger entries the rep already has.

Architecture position:
    Engines -- pure, zero I/O.

Invariants enforced:
    - The phase is complete exactly when the ledger count reaches the limit;
      the count comes from an append-only ledger, so it never decreases and
      a completed phase never reopens.
    - The Nth award (N == limit) both pays and completes the phase.
    - After completion every commission earns zero override.
    - A commission with a negative net still counts toward the phase
      and its override carries the same sign.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from commission_kernel.domain.money import round_money, to_decimal


@dataclass(frozen=True)
class OverridePolicy:
    """Configured override limit and rate."""

    limit: int = 10
    rate: Decimal = Decimal("0.10")

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError("Override limit cannot be negative")
        object.__setattr__(self, "rate", to_decimal(self.rate))


@dataclass(frozen=True)
class OverridePhaseStatus:
    """Where a rep stands in the override phase."""

    approved_count: int
    is_complete: bool
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.approved_count)


@dataclass(frozen=True)
class OverrideAward:
    """Override earned by one approved commission."""

    commission_number: int
    net_amount: Decimal
    override_percentage: Decimal
    override_amount: Decimal
    completes_phase: bool


def override_phase(approved_count: int, policy: OverridePolicy = OverridePolicy()) -> OverridePhaseStatus:
    """Phase status derived from the number of ledger entries."""
    if approved_count < 0:
        raise ValueError("approved_count cannot be negative")
    return OverridePhaseStatus(
        approved_count=approved_count,
        is_complete=approved_count >= policy.limit,
        limit=policy.limit,
    )


def compute_override(
    net_commission_owed: Decimal,
    phase: OverridePhaseStatus,
    policy: OverridePolicy = OverridePolicy(),
) -> OverrideAward | None:
    """Award for the next approved commission, or None once the phase is over."""
    if phase.is_complete or phase.approved_count >= policy.limit:
        return None
    number = phase.approved_count + 1
    net = to_decimal(net_commission_owed)
    return OverrideAward(
        commission_number=number,
        net_amount=net,
        override_percentage=policy.rate,
        override_amount=round_money(net * policy.rate),
        completes_phase=number >= policy.limit,
    )
