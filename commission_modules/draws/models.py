"""
Draw Domain Models (``commission_modules.draws.models``).

Responsibility
--------------
Frozen value objects for commission advances: the draw request and its
two-state approval gate, ledger entries, and a rep's draw summary.

Architecture position
---------------------
**Modules layer** -- pure data.  Ledger arithmetic is in
``commission_engines.draws``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from commission_engines.draws import DrawLedgerEntryType


class DrawStatus(str, Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    DENIED = "denied"


@dataclass(frozen=True)
class DrawRequest:
    """Snapshot of one draw request."""

    id: UUID
    version: int
    rep_id: UUID
    job_name: str
    requested_amount: Decimal
    status: DrawStatus
    requires_manager_approval: bool
    job_number: str | None = None
    estimated_commission: Decimal | None = None
    notes: str | None = None
    requested_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    denied_at: datetime | None = None
    denied_by: UUID | None = None
    denial_reason: str | None = None
    disbursed_at: datetime | None = None
    disbursed_by: UUID | None = None

    @property
    def is_disbursed(self) -> bool:
        return self.disbursed_at is not None


@dataclass(frozen=True)
class DrawLedgerEntry:
    """One movement on a rep's draw ledger."""

    id: UUID
    rep_id: UUID
    draw_id: UUID
    entry_type: DrawLedgerEntryType
    amount: Decimal
    recorded_at: datetime
    commission_id: UUID | None = None


@dataclass(frozen=True)
class DrawSummary:
    """A rep's draw position, derived from the ledger."""

    rep_id: UUID
    total_taken: Decimal
    total_paid_back: Decimal
    outstanding: Decimal
    open_draw_count: int
