"""
Commission Domain Models (``commission_modules.commissions.models``).

Responsibility
--------------
Frozen value objects for the commission request lifecycle: the workflow
vocabulary (status, approval stage), the submitter's draft, the stored
request snapshot, its revision history, and the result every transition
returns.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.  These
objects flow into ``CommissionWorkflowService`` as drafts and out of it
(and out of ``CommissionSelector``) as immutable snapshots.

Invariants enforced
-------------------
* All monetary fields are ``Decimal``.
* All dataclasses are ``frozen=True``.
* Derived amounts on ``CommissionRequest`` are only ever produced by the
  calculation engine from the stored inputs; nothing here computes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from commission_engines.calculation import SubmitterKind, WorksheetKind
from commission_kernel.domain.events import NotificationEvent
from commission_kernel.logging_config import get_logger

logger = get_logger("modules.commissions.models")


class CommissionStatus(str, Enum):
    """Outer status.  Must align with ``workflows.COMMISSION_WORKFLOW.states``."""
    PENDING_REVIEW = "pending_review"
    REVISION_REQUIRED = "revision_required"
    APPROVED = "approved"
    DENIED = "denied"
    PAID = "paid"


class ApprovalStage(str, Enum):
    """Reviewer queue the request sits in."""
    PENDING_MANAGER = "pending_manager"
    PENDING_ACCOUNTING = "pending_accounting"
    PENDING_ADMIN = "pending_admin"
    COMPLETED = "completed"


class RepRole(str, Enum):
    SETTER = "setter"
    CLOSER = "closer"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class CommissionDraft:
    """
    What a submitter fills in.

    The document worksheet reads the O&P fields; the submission worksheet
    reads contract/supplements/percent/flat fee.  ``advances_paid`` left as
    None is taken from the rep's outstanding draw balance.
    """

    worksheet_kind: WorksheetKind
    job_name: str
    sales_rep_name: str
    submitter_kind: SubmitterKind = SubmitterKind.EMPLOYEE
    job_number: str | None = None
    job_address: str | None = None
    job_type: str | None = None
    roof_type: str | None = None
    contract_date: date | None = None
    completion_date: date | None = None
    sales_rep_id: UUID | None = None
    rep_role: RepRole | None = None
    commission_tier: str | None = None
    custom_override_percent: Decimal | None = None
    # document worksheet
    gross_contract_total: Decimal | None = None
    op_percent: Decimal | None = None
    material_cost: Decimal | None = None
    labor_cost: Decimal | None = None
    negative_expenses: tuple[Decimal, ...] = ()
    positive_expenses: tuple[Decimal, ...] = ()
    rep_profit_percent: Decimal | None = None
    profit_split_label: str | None = None
    # submission worksheet
    contract_amount: Decimal | None = None
    supplements_approved: Decimal | None = None
    commission_percent: Decimal | None = None
    is_flat_fee: bool = False
    flat_fee_amount: Decimal | None = None
    advances_paid: Decimal | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "worksheet_kind", WorksheetKind(self.worksheet_kind))
        object.__setattr__(self, "submitter_kind", SubmitterKind(self.submitter_kind))
        if self.rep_role is not None:
            object.__setattr__(self, "rep_role", RepRole(self.rep_role))
        object.__setattr__(self, "negative_expenses", tuple(self.negative_expenses))
        object.__setattr__(self, "positive_expenses", tuple(self.positive_expenses))

    def document_fields(self) -> dict[str, Any]:
        """Field mapping for ``validate_document_fields``."""
        return {
            "job_name": self.job_name,
            "job_date": self.contract_date,
            "sales_rep_name": self.sales_rep_name,
            "gross_contract_total": self.gross_contract_total,
            "op_percent": self.op_percent,
            "material_cost": self.material_cost,
            "labor_cost": self.labor_cost,
            "negative_expenses": self.negative_expenses,
            "positive_expenses": self.positive_expenses,
            "rep_profit_percent": self.rep_profit_percent,
            "profit_split_label": self.profit_split_label,
            "job_number": self.job_number,
        }

    def worksheet_fields(self) -> dict[str, Any]:
        """Field mapping for ``validate_worksheet_fields``."""
        return {
            "job_name": self.job_name,
            "sales_rep_name": self.sales_rep_name,
            "contract_amount": self.contract_amount,
            "supplements_approved": self.supplements_approved,
            "commission_percent": self.commission_percent,
            "advances_paid": self.advances_paid,
            "is_flat_fee": self.is_flat_fee,
            "flat_fee_amount": self.flat_fee_amount,
            "job_number": self.job_number,
        }


@dataclass(frozen=True)
class CommissionRequest:
    """Snapshot of one stored commission request."""

    id: UUID
    version: int
    submitter_id: UUID
    submitter_role: str
    submitter_kind: SubmitterKind
    worksheet_kind: WorksheetKind
    manager_id: UUID | None
    job_name: str
    sales_rep_name: str
    sales_rep_id: UUID
    status: CommissionStatus
    approval_stage: ApprovalStage | None
    revision_count: int
    was_rejected: bool
    is_manager_submission: bool
    payable_amount: Decimal
    job_number: str | None = None
    job_address: str | None = None
    job_type: str | None = None
    roof_type: str | None = None
    contract_date: date | None = None
    completion_date: date | None = None
    rep_role: RepRole | None = None
    commission_tier: str | None = None
    custom_override_percent: Decimal | None = None
    # document worksheet inputs and outputs
    gross_contract_total: Decimal | None = None
    op_percent: Decimal | None = None
    material_cost: Decimal | None = None
    labor_cost: Decimal | None = None
    negative_expenses: tuple[Decimal, ...] = ()
    positive_expenses: tuple[Decimal, ...] = ()
    rep_profit_percent: Decimal | None = None
    profit_split_label: str | None = None
    op_amount: Decimal | None = None
    contract_total_net: Decimal | None = None
    net_profit: Decimal | None = None
    rep_commission: Decimal | None = None
    company_profit: Decimal | None = None
    # submission worksheet inputs and outputs
    contract_amount: Decimal | None = None
    supplements_approved: Decimal | None = None
    commission_percent: Decimal | None = None
    advances_paid: Decimal | None = None
    is_flat_fee: bool = False
    flat_fee_amount: Decimal | None = None
    total_job_revenue: Decimal | None = None
    gross_commission: Decimal | None = None
    net_commission_owed: Decimal | None = None
    # review outcome
    approved_amount: Decimal | None = None
    scheduled_pay_date: date | None = None
    rejection_reason: str | None = None
    reviewer_notes: str | None = None
    notes: str | None = None
    previous_submission: dict[str, Any] | None = None
    created_at: datetime | None = None
    manager_approved_at: datetime | None = None
    manager_approved_by: UUID | None = None
    accounting_approved_at: datetime | None = None
    accounting_approved_by: UUID | None = None
    admin_approved_at: datetime | None = None
    admin_approved_by: UUID | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    commission_approved_at: datetime | None = None
    commission_approved_by: UUID | None = None
    denied_at: datetime | None = None
    denied_by: UUID | None = None
    paid_at: datetime | None = None
    paid_by: UUID | None = None
    resubmitted_at: datetime | None = None

    @property
    def state(self) -> tuple[CommissionStatus, ApprovalStage | None]:
        return (self.status, self.approval_stage)


@dataclass(frozen=True)
class RevisionRecord:
    """One revision request in a commission's history."""

    request_id: UUID
    revision_number: int
    requested_by: UUID
    requested_by_role: str
    reason: str
    previous_amount: Decimal | None
    requested_at: datetime


@dataclass(frozen=True)
class TransitionResult:
    """The new state of the request and the event the change published."""

    request: CommissionRequest
    event: NotificationEvent
    details: dict[str, Any] = field(default_factory=dict)
