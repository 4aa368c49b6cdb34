"""
Override Domain Models (``commission_modules.overrides.models``).

Frozen value objects read back from the override ledger.  Pure data; the
phase arithmetic lives in ``commission_engines.overrides``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class OverrideLedgerEntry:
    """One override award, recorded when a rep's commission was approved."""

    id: UUID
    rep_id: UUID
    commission_id: UUID
    manager_id: UUID
    commission_number: int
    net_amount: Decimal
    override_percentage: Decimal
    override_amount: Decimal
    completes_phase: bool
    awarded_at: datetime


@dataclass(frozen=True)
class OverrideTotals:
    """Overrides a manager earned in a period."""

    manager_id: UUID
    entries: tuple[OverrideLedgerEntry, ...]
    total_amount: Decimal

    @property
    def count(self) -> int:
        return len(self.entries)
