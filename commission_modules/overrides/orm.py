"""
Override ORM Models (``commission_modules.overrides.orm``).

Responsibility
--------------
Persistence for the override ledger.  A rep's phase position is the count
of their rows here; nothing stores a running counter.

Invariants enforced
-------------------
* One row per commission (``uq_override_ledger_commission``), so a retried
  approval can never award twice.
* ``(rep_id, commission_number)`` is unique, so two concurrent approvals
  cannot both claim the same slot in the phase.
* Append-only.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commission_kernel.db.base import TrackedBase, UTCDateTime, UUIDString


class OverrideLedgerEntryModel(TrackedBase):
    """One override award."""

    __tablename__ = "override_ledger"
    __append_only__ = True

    __table_args__ = (
        UniqueConstraint("commission_id", name="uq_override_ledger_commission"),
        UniqueConstraint("rep_id", "commission_number", name="uq_override_ledger_rep_number"),
        Index("idx_override_ledger_manager", "manager_id", "awarded_at"),
    )

    rep_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    commission_id: Mapped[UUID] = mapped_column(ForeignKey("commission_requests.id"), nullable=False)
    manager_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    commission_number: Mapped[int] = mapped_column(Integer, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(nullable=False)
    override_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    override_amount: Mapped[Decimal] = mapped_column(nullable=False)
    completes_phase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    awarded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def to_dto(self):
        from commission_modules.overrides.models import OverrideLedgerEntry

        return OverrideLedgerEntry(
            id=self.id,
            rep_id=self.rep_id,
            commission_id=self.commission_id,
            manager_id=self.manager_id,
            commission_number=self.commission_number,
            net_amount=self.net_amount,
            override_percentage=self.override_percentage,
            override_amount=self.override_amount,
            completes_phase=self.completes_phase,
            awarded_at=self.awarded_at,
        )
