"""
Draw ORM Models (``commission_modules.draws.orm``).

Responsibility
--------------
Persistence for draw requests and the draw ledger.

Invariants enforced
-------------------
* ``version`` is bumped by every conditional UPDATE on a draw request.
* Ledger rows are append-only with a positive amount; the balance is always
  recomputed from them, never stored.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commission_kernel.db.base import TrackedBase, UTCDateTime, UUIDString


class DrawRequestModel(TrackedBase):
    """A rep's request for an advance against future commissions."""

    __tablename__ = "draw_requests"

    __table_args__ = (
        Index("idx_draw_requests_rep", "rep_id"),
        Index("idx_draw_requests_status", "status"),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    rep_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    job_name: Mapped[str] = mapped_column(String(255), nullable=False)
    job_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    requested_amount: Mapped[Decimal] = mapped_column(nullable=False)
    estimated_commission: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    requires_manager_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    requested_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    denied_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    denied_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    denial_reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    disbursed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    disbursed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def to_dto(self):
        from commission_modules.draws.models import DrawRequest, DrawStatus

        return DrawRequest(
            id=self.id,
            version=self.version,
            rep_id=self.rep_id,
            job_name=self.job_name,
            requested_amount=self.requested_amount,
            status=DrawStatus(self.status),
            requires_manager_approval=self.requires_manager_approval,
            job_number=self.job_number,
            estimated_commission=self.estimated_commission,
            notes=self.notes,
            requested_at=self.requested_at,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            denied_at=self.denied_at,
            denied_by=self.denied_by,
            denial_reason=self.denial_reason,
            disbursed_at=self.disbursed_at,
            disbursed_by=self.disbursed_by,
        )


class DrawLedgerEntryModel(TrackedBase):
    """Money out to a rep (taken) or back from a commission (paid_back)."""

    __tablename__ = "draw_ledger"
    __append_only__ = True

    __table_args__ = (
        CheckConstraint("entry_type IN ('taken', 'paid_back')", name="ck_draw_ledger_entry_type"),
        Index("idx_draw_ledger_rep", "rep_id"),
        Index("idx_draw_ledger_draw", "draw_id"),
    )

    rep_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    draw_id: Mapped[UUID] = mapped_column(ForeignKey("draw_requests.id"), nullable=False)
    commission_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("commission_requests.id"), nullable=True
    )
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def to_dto(self):
        from commission_engines.draws import DrawLedgerEntryType
        from commission_modules.draws.models import DrawLedgerEntry

        return DrawLedgerEntry(
            id=self.id,
            rep_id=self.rep_id,
            draw_id=self.draw_id,
            entry_type=DrawLedgerEntryType(self.entry_type),
            amount=self.amount,
            recorded_at=self.recorded_at,
            commission_id=self.commission_id,
        )

    def to_line(self):
        from commission_engines.draws import DrawLedgerLine

        return DrawLedgerLine(entry_type=self.entry_type, amount=self.amount)
