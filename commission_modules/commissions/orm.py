"""
Commission ORM Models (``commission_modules.commissions.orm``).

Responsibility
--------------
SQLAlchemy persistence for commission requests, their revision history, and
the job numbers locked by a denial.  Maps to the frozen dataclasses in
``models.py``.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``commission_kernel.db``
and sibling ``models.py``.  MUST NOT be imported by ``commission_kernel``
(other than through the ORM registry).

Invariants enforced
-------------------
* ``version`` starts at 1 and is bumped by every conditional UPDATE the
  workflow service issues; it is never written any other way.
* Revision-log and denied-job-number rows are append-only.
* A four-digit job number appears at most once in ``denied_job_numbers``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commission_engines.calculation import MAX_EXPENSE_LINES
from commission_kernel.db.base import TrackedBase, UTCDateTime, UUIDString

_NEG = tuple(f"neg_expense_{i}" for i in range(1, MAX_EXPENSE_LINES + 1))
_POS = tuple(f"pos_expense_{i}" for i in range(1, MAX_EXPENSE_LINES + 1))


# ---------------------------------------------------------------------------
# 1. CommissionRequestModel
# ---------------------------------------------------------------------------


class CommissionRequestModel(TrackedBase):
    """
    ORM model for commission requests.

    Guarantees:
        - status / approval_stage stored as string enum values.
        - Monetary fields use ExactDecimal via the type annotation map.
        - Expense lines occupy four fixed columns per side; unused columns
          are NULL.
    """

    __tablename__ = "commission_requests"

    __table_args__ = (
        Index("idx_commission_requests_submitter", "submitter_id"),
        Index("idx_commission_requests_state", "status", "approval_stage"),
        Index("idx_commission_requests_pay_date", "scheduled_pay_date"),
        Index("idx_commission_requests_job_number", "job_number"),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    submitter_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    submitter_role: Mapped[str] = mapped_column(String(50), nullable=False)
    submitter_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    worksheet_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    manager_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # job facts
    job_name: Mapped[str] = mapped_column(String(255), nullable=False)
    job_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    job_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    job_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    roof_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contract_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # rep facts
    sales_rep_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    sales_rep_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rep_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    commission_tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    custom_override_percent: Mapped[Decimal | None] = mapped_column(nullable=True)

    # document worksheet
    gross_contract_total: Mapped[Decimal | None] = mapped_column(nullable=True)
    op_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    material_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    labor_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    neg_expense_1: Mapped[Decimal | None] = mapped_column(nullable=True)
    neg_expense_2: Mapped[Decimal | None] = mapped_column(nullable=True)
    neg_expense_3: Mapped[Decimal | None] = mapped_column(nullable=True)
    neg_expense_4: Mapped[Decimal | None] = mapped_column(nullable=True)
    pos_expense_1: Mapped[Decimal | None] = mapped_column(nullable=True)
    pos_expense_2: Mapped[Decimal | None] = mapped_column(nullable=True)
    pos_expense_3: Mapped[Decimal | None] = mapped_column(nullable=True)
    pos_expense_4: Mapped[Decimal | None] = mapped_column(nullable=True)
    rep_profit_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    profit_split_label: Mapped[str | None] = mapped_column(String(20), nullable=True)
    op_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    contract_total_net: Mapped[Decimal | None] = mapped_column(nullable=True)
    net_profit: Mapped[Decimal | None] = mapped_column(nullable=True)
    rep_commission: Mapped[Decimal | None] = mapped_column(nullable=True)
    company_profit: Mapped[Decimal | None] = mapped_column(nullable=True)

    # submission worksheet
    contract_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    supplements_approved: Mapped[Decimal | None] = mapped_column(nullable=True)
    commission_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    advances_paid: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_flat_fee: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    flat_fee_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_job_revenue: Mapped[Decimal | None] = mapped_column(nullable=True)
    gross_commission: Mapped[Decimal | None] = mapped_column(nullable=True)
    net_commission_owed: Mapped[Decimal | None] = mapped_column(nullable=True)

    payable_amount: Mapped[Decimal] = mapped_column(nullable=False)
    approved_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    # workflow
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    approval_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    revision_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    was_rejected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_manager_submission: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    scheduled_pay_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    reviewer_notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    previous_submission: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # audit stamps
    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    manager_approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    manager_approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    accounting_approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    accounting_approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    admin_approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    admin_approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    # the payable commission itself, whichever stage gave final approval
    commission_approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    commission_approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    denied_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    denied_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    paid_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    resubmitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    @property
    def negative_expenses(self) -> tuple[Decimal, ...]:
        return tuple(v for v in (getattr(self, c) for c in _NEG) if v is not None)

    @property
    def positive_expenses(self) -> tuple[Decimal, ...]:
        return tuple(v for v in (getattr(self, c) for c in _POS) if v is not None)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from commission_engines.calculation import SubmitterKind, WorksheetKind
        from commission_modules.commissions.models import (
            ApprovalStage,
            CommissionRequest,
            CommissionStatus,
            RepRole,
        )

        return CommissionRequest(
            id=self.id,
            version=self.version,
            submitter_id=self.submitter_id,
            submitter_role=self.submitter_role,
            submitter_kind=SubmitterKind(self.submitter_kind),
            worksheet_kind=WorksheetKind(self.worksheet_kind),
            manager_id=self.manager_id,
            job_name=self.job_name,
            sales_rep_name=self.sales_rep_name,
            sales_rep_id=self.sales_rep_id,
            status=CommissionStatus(self.status),
            approval_stage=ApprovalStage(self.approval_stage) if self.approval_stage else None,
            revision_count=self.revision_count,
            was_rejected=self.was_rejected,
            is_manager_submission=self.is_manager_submission,
            payable_amount=self.payable_amount,
            job_number=self.job_number,
            job_address=self.job_address,
            job_type=self.job_type,
            roof_type=self.roof_type,
            contract_date=self.contract_date,
            completion_date=self.completion_date,
            rep_role=RepRole(self.rep_role) if self.rep_role else None,
            commission_tier=self.commission_tier,
            custom_override_percent=self.custom_override_percent,
            gross_contract_total=self.gross_contract_total,
            op_percent=self.op_percent,
            material_cost=self.material_cost,
            labor_cost=self.labor_cost,
            negative_expenses=self.negative_expenses,
            positive_expenses=self.positive_expenses,
            rep_profit_percent=self.rep_profit_percent,
            profit_split_label=self.profit_split_label,
            op_amount=self.op_amount,
            contract_total_net=self.contract_total_net,
            net_profit=self.net_profit,
            rep_commission=self.rep_commission,
            company_profit=self.company_profit,
            contract_amount=self.contract_amount,
            supplements_approved=self.supplements_approved,
            commission_percent=self.commission_percent,
            advances_paid=self.advances_paid,
            is_flat_fee=self.is_flat_fee,
            flat_fee_amount=self.flat_fee_amount,
            total_job_revenue=self.total_job_revenue,
            gross_commission=self.gross_commission,
            net_commission_owed=self.net_commission_owed,
            approved_amount=self.approved_amount,
            scheduled_pay_date=self.scheduled_pay_date,
            rejection_reason=self.rejection_reason,
            reviewer_notes=self.reviewer_notes,
            notes=self.notes,
            previous_submission=self.previous_submission,
            created_at=self.submitted_at,
            manager_approved_at=self.manager_approved_at,
            manager_approved_by=self.manager_approved_by,
            accounting_approved_at=self.accounting_approved_at,
            accounting_approved_by=self.accounting_approved_by,
            admin_approved_at=self.admin_approved_at,
            admin_approved_by=self.admin_approved_by,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            commission_approved_at=self.commission_approved_at,
            commission_approved_by=self.commission_approved_by,
            denied_at=self.denied_at,
            denied_by=self.denied_by,
            paid_at=self.paid_at,
            paid_by=self.paid_by,
            resubmitted_at=self.resubmitted_at,
        )

    def __repr__(self) -> str:
        return f"<CommissionRequestModel {self.id} {self.status}/{self.approval_stage} v{self.version}>"


def expense_columns(
    negative: tuple[Decimal, ...],
    positive: tuple[Decimal, ...],
) -> dict[str, Decimal | None]:
    """Spread expense lines over the fixed columns (unused -> NULL)."""
    values: dict[str, Decimal | None] = {}
    for names, lines in ((_NEG, negative), (_POS, positive)):
        for index, name in enumerate(names):
            values[name] = lines[index] if index < len(lines) else None
    return values


# ---------------------------------------------------------------------------
# 2. RevisionLogModel
# ---------------------------------------------------------------------------


class RevisionLogModel(TrackedBase):
    """
    One revision request against a commission.

    Guarantees:
        - (request_id, revision_number) is unique.
        - Append-only.
    """

    __tablename__ = "commission_revision_log"
    __append_only__ = True

    __table_args__ = (
        UniqueConstraint("request_id", "revision_number", name="uq_revision_log_request_number"),
        Index("idx_revision_log_request", "request_id"),
    )

    request_id: Mapped[UUID] = mapped_column(ForeignKey("commission_requests.id"), nullable=False)
    revision_number: Mapped[int] = mapped_column(Integer, nullable=False)
    requested_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    requested_by_role: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[str] = mapped_column(String(4000), nullable=False)
    previous_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    requested_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def to_dto(self):
        from commission_modules.commissions.models import RevisionRecord

        return RevisionRecord(
            request_id=self.request_id,
            revision_number=self.revision_number,
            requested_by=self.requested_by,
            requested_by_role=self.requested_by_role,
            reason=self.reason,
            previous_amount=self.previous_amount,
            requested_at=self.requested_at,
        )


# ---------------------------------------------------------------------------
# 3. DeniedJobNumberModel
# ---------------------------------------------------------------------------


class DeniedJobNumberModel(TrackedBase):
    """A job number that can no longer be submitted because its request was denied."""

    __tablename__ = "denied_job_numbers"
    __append_only__ = True

    __table_args__ = (
        UniqueConstraint("job_number", name="uq_denied_job_numbers_job_number"),
    )

    job_number: Mapped[str] = mapped_column(String(20), nullable=False)
    request_id: Mapped[UUID] = mapped_column(ForeignKey("commission_requests.id"), nullable=False)
    denied_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
