"""
Commission Workflow Service (``commission_modules.commissions.service``).

Responsibility
--------------
The command side of the commission approval workflow: submission, manager
approval, final approval, payment, revision, denial and resubmission.
Every command returns the new state together with the event it published.

Architecture position
---------------------
**Modules layer** -- ``CommissionWorkflowService`` is the sole public entry
point for changing a commission request.  It composes:

* ``commission_engines`` -- calculation, validation, profit split, pay run.
* ``COMMISSION_WORKFLOW`` -- which transition an action selects.
* ``RoleAuthority`` -- capability checks.
* ``StatusLogService`` / ``OutboxService`` -- audit chain and notifications.
* ``OverrideService`` / ``DrawService`` -- override ledger and draw balance.

Invariants enforced
-------------------
* Each public command owns the transaction boundary: ``commit`` on
  success, ``rollback`` and re-raise on any exception.
* Input validation and authorization run before any write.
* The request row changes only through a conditional UPDATE on
  ``(id, version, status, approval_stage)`` that bumps ``version``; zero
  matched rows is ``StaleStateError``.
* The status-log entry, revision-log row, override award, denied job
  number and outbox row commit atomically with the state change.
* Notification delivery happens after commit and can never fail a command.

Failure modes
-------------
* ``ValidationError`` / ``JobNumberLockedError`` -- bad or locked input.
* ``ManagerRequiredError`` -- submitter has no manager (creation only).
* ``CapabilityDeniedError`` / ``SelfApprovalError`` / ``NotSubmitterError``.
* ``TerminalStateError`` -- request is denied or paid.
* ``InvalidTransitionError`` -- action not allowed from the current state.
* ``ReasonRequiredError`` / ``ApprovedAmountNotesRequiredError``.
* ``StaleStateError`` -- the stored state moved since the actor read it.
* ``CommissionRequestNotFoundError``.

Audit relevance
---------------
``commission_created``, ``commission_transition_applied`` and
``commission_transition_rejected`` are logged with the request and actor
bound to ``LogContext``.  The status log is the compliance record.

Usage::

    service = CommissionWorkflowService(
        session, StaticManagerAssignments({rep_id: manager_id}), clock=clock,
    )
    created = service.create_request(rep, draft)
    service.manager_approve(created.request.id, manager,
                            expected_version=created.request.version)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_config import get_active_settings
from commission_config.bridges import build_override_policy, build_pay_run_cutoff
from commission_config.schema import CommissionSettings
from commission_engines.calculation import (
    DocumentInputs,
    WorksheetInputs,
    WorksheetKind,
    calculate_document,
    calculate_worksheet,
    payable_amount,
)
from commission_engines.pay_run import scheduled_pay_date
from commission_engines.profit_split import parse_profit_split_label, resolve_rep_percent
from commission_engines.validation import validate_document_fields, validate_worksheet_fields
from commission_kernel.db.types import ZERO, to_decimal
from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.events import NotificationEvent, NotificationType
from commission_kernel.domain.values import Actor
from commission_kernel.exceptions import (
    ApprovedAmountNotesRequiredError,
    CommissionKernelError,
    CommissionRequestNotFoundError,
    InvalidTransitionError,
    JobNumberLockedError,
    ManagerRequiredError,
    NotSubmitterError,
    ReasonRequiredError,
    SelfApprovalError,
    TerminalStateError,
    ValidationError,
)
from commission_kernel.logging_config import LogContext, get_logger
from commission_kernel.services.outbox_service import OutboxService
from commission_kernel.services.status_log_service import StatusLogService
from commission_kernel.utils.hashing import to_json_safe
from commission_modules._transition_helpers import (
    AfterCommitHook,
    compare_and_swap,
    run_after_commit,
    version_mismatch,
)
from commission_modules.commissions.models import (
    ApprovalStage,
    CommissionDraft,
    CommissionRequest,
    CommissionStatus,
    TransitionResult,
)
from commission_modules.commissions.orm import (
    CommissionRequestModel,
    DeniedJobNumberModel,
    RevisionLogModel,
    expense_columns,
)
from commission_modules.commissions.workflows import (
    COMMISSION_WORKFLOW,
    MANAGER_SUBMISSION,
    REP_SUBMISSION,
    TERMINAL_STATUSES,
)
from commission_modules.draws.service import DrawService
from commission_modules.overrides.service import OverrideService
from commission_services.authority import STAGE_REVIEW_CAPABILITY, Capability, RoleAuthority

logger = get_logger("modules.commissions.service")

SUBMITTED_NOTE = "Commission submitted"
SENT_TO_ACCOUNTING_NOTE = "manager approved – sent to accounting"
SENT_TO_ADMIN_NOTE = "manager approved – sent to admin"
APPROVED_NOTE = "Approved - ready for payment"
PAID_NOTE = "Marked as paid"
RESUBMITTED_NOTE = "Commission resubmitted"

# Stored with every resubmission so reviewers can compare against the
# version they sent back.
_SNAPSHOT_FIELDS = (
    "job_name", "job_number", "sales_rep_name", "worksheet_kind",
    "gross_contract_total", "op_percent", "material_cost", "labor_cost",
    "rep_profit_percent", "profit_split_label", "op_amount",
    "contract_total_net", "net_profit", "rep_commission", "company_profit",
    "contract_amount", "supplements_approved", "commission_percent",
    "advances_paid", "is_flat_fee", "flat_fee_amount", "total_job_revenue",
    "gross_commission", "net_commission_owed", "payable_amount",
    "rejection_reason", "revision_count", "notes",
)


class ManagerAssignmentLookup(Protocol):
    """Resolves a submitter's manager, by direct link or team assignment."""

    def manager_for(self, submitter_id: UUID) -> UUID | None: ...


class StaticManagerAssignments:
    """In-memory assignment table."""

    def __init__(self, assignments: Mapping[UUID, UUID] | None = None):
        self._assignments = dict(assignments or {})

    def assign(self, submitter_id: UUID, manager_id: UUID) -> None:
        self._assignments[submitter_id] = manager_id

    def manager_for(self, submitter_id: UUID) -> UUID | None:
        return self._assignments.get(submitter_id)


@dataclass
class _Effect:
    """What one transition writes beyond status and stage."""

    values: dict[str, Any]
    event_type: NotificationType
    log_notes: str | None
    event_notes: str | None = None
    amount: Decimal | None = None
    is_resubmission: bool = False
    # side writes in the same transaction, after the conditional update
    after: Callable[[datetime], dict[str, Any]] | None = None
    log_extra: dict[str, Any] = field(default_factory=dict)


def _state_of(row: CommissionRequestModel) -> tuple[CommissionStatus, ApprovalStage | None]:
    stage = ApprovalStage(row.approval_stage) if row.approval_stage else None
    return (CommissionStatus(row.status), stage)


def _guard_results(row: CommissionRequestModel) -> dict[str, bool]:
    return {
        MANAGER_SUBMISSION.name: row.is_manager_submission,
        REP_SUBMISSION.name: not row.is_manager_submission,
    }


class CommissionWorkflowService:
    """
    Commands over commission requests.

    Contract
    --------
    * Every command returns ``TransitionResult(request, event)``; failures
      raise a ``CommissionKernelError`` subclass and leave nothing written.
    * ``expected_version`` is the version the actor last observed; when
      given it must still be current.

    Non-goals
    ---------
    * Does NOT deliver notifications; ``after_commit`` (usually a
      ``BackgroundNotificationRelay``) is poked once the command commits.
    * Does NOT authenticate; ``Actor`` is trusted as supplied.
    """

    def __init__(
        self,
        session: Session,
        manager_lookup: ManagerAssignmentLookup,
        clock: Clock | None = None,
        settings: CommissionSettings | None = None,
        authority: RoleAuthority | None = None,
        after_commit: AfterCommitHook | None = None,
    ):
        self._session = session
        self._manager_lookup = manager_lookup
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_settings()
        self._authority = authority or RoleAuthority.from_settings(self._settings)
        self._after_commit = after_commit
        self._cutoff = build_pay_run_cutoff(self._settings)

        self._status_log = StatusLogService(session)
        self._outbox = OutboxService(session)
        self._overrides = OverrideService(session, build_override_policy(self._settings))
        self._draws = DrawService(
            session, clock=self._clock, settings=self._settings, authority=self._authority,
        )

    # =========================================================================
    # Reads used by the commands
    # =========================================================================

    def _load(self, request_id: UUID) -> CommissionRequestModel:
        row = self._session.execute(
            select(CommissionRequestModel)
            .where(CommissionRequestModel.id == request_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise CommissionRequestNotFoundError(str(request_id))
        return row

    def get(self, request_id: UUID) -> CommissionRequest:
        return self._load(request_id).to_dto()

    def _job_number_locked(self, job_number: str | None) -> bool:
        if not job_number:
            return False
        found = self._session.execute(
            select(DeniedJobNumberModel.id).where(DeniedJobNumberModel.job_number == job_number.strip())
        ).first()
        return found is not None

    # =========================================================================
    # Draft handling
    # =========================================================================

    def _derive_rep_percent(self, draft: CommissionDraft) -> Decimal | None:
        split = parse_profit_split_label(draft.profit_split_label)
        if split is not None:
            return split.rep
        if draft.commission_tier:
            try:
                return resolve_rep_percent(draft.commission_tier, draft.custom_override_percent)
            except ValueError:
                return None
        return None

    def _prepare_draft(self, draft: CommissionDraft, rep_id: UUID) -> CommissionDraft:
        """Fill the rep percent from the split label or tier, and advances from the draw ledger."""
        changes: dict[str, Any] = {}
        if draft.worksheet_kind is WorksheetKind.DOCUMENT and draft.rep_profit_percent is None:
            percent = self._derive_rep_percent(draft)
            if percent is not None:
                changes["rep_profit_percent"] = percent
        if draft.worksheet_kind is WorksheetKind.SUBMISSION and draft.advances_paid is None:
            changes["advances_paid"] = self._draws.draw_balance(rep_id)
        return replace(draft, **changes) if changes else draft

    @staticmethod
    def _validate(draft: CommissionDraft) -> None:
        if draft.worksheet_kind is WorksheetKind.DOCUMENT:
            result = validate_document_fields(draft.document_fields())
        else:
            result = validate_worksheet_fields(draft.worksheet_fields())
        if not result.valid:
            raise ValidationError(result.issues)

    @staticmethod
    def _financial_values(draft: CommissionDraft) -> dict[str, Any]:
        """Stored inputs plus every derived amount, keyed by column name."""
        values: dict[str, Any] = {
            "worksheet_kind": draft.worksheet_kind.value,
            "submitter_kind": draft.submitter_kind.value,
            "job_name": draft.job_name.strip(),
            "job_number": draft.job_number.strip() if draft.job_number else None,
            "job_address": draft.job_address,
            "job_type": draft.job_type,
            "roof_type": draft.roof_type,
            "contract_date": draft.contract_date,
            "completion_date": draft.completion_date,
            "sales_rep_name": draft.sales_rep_name.strip(),
            "rep_role": draft.rep_role.value if draft.rep_role else None,
            "commission_tier": draft.commission_tier,
            "custom_override_percent": draft.custom_override_percent,
            "gross_contract_total": draft.gross_contract_total,
            "op_percent": draft.op_percent,
            "material_cost": draft.material_cost,
            "labor_cost": draft.labor_cost,
            "rep_profit_percent": draft.rep_profit_percent,
            "profit_split_label": draft.profit_split_label,
            "contract_amount": draft.contract_amount,
            "supplements_approved": draft.supplements_approved,
            "commission_percent": draft.commission_percent,
            "advances_paid": draft.advances_paid,
            "is_flat_fee": draft.is_flat_fee,
            "flat_fee_amount": draft.flat_fee_amount,
            "notes": draft.notes,
            **expense_columns(draft.negative_expenses, draft.positive_expenses),
        }

        if draft.worksheet_kind is WorksheetKind.DOCUMENT:
            financials = calculate_document(inputs=DocumentInputs(
                gross_contract_total=draft.gross_contract_total,
                op_percent=draft.op_percent,
                material_cost=draft.material_cost if draft.material_cost is not None else ZERO,
                labor_cost=draft.labor_cost if draft.labor_cost is not None else ZERO,
                negative_expenses=draft.negative_expenses,
                positive_expenses=draft.positive_expenses,
                rep_profit_percent=draft.rep_profit_percent,
            ))
            values.update(
                op_amount=financials.op_amount,
                contract_total_net=financials.contract_total_net,
                net_profit=financials.net_profit,
                rep_commission=financials.rep_commission,
                company_profit=financials.company_profit,
                total_job_revenue=None,
                gross_commission=None,
                net_commission_owed=None,
            )
        else:
            financials = calculate_worksheet(inputs=WorksheetInputs(
                contract_amount=draft.contract_amount,
                supplements_approved=(
                    draft.supplements_approved if draft.supplements_approved is not None else ZERO
                ),
                commission_percent=(
                    draft.commission_percent if draft.commission_percent is not None else ZERO
                ),
                advances_paid=draft.advances_paid if draft.advances_paid is not None else ZERO,
                is_flat_fee=draft.is_flat_fee,
                flat_fee_amount=draft.flat_fee_amount,
            ))
            values.update(
                op_amount=None,
                contract_total_net=None,
                net_profit=None,
                rep_commission=None,
                company_profit=None,
                total_job_revenue=financials.total_job_revenue,
                gross_commission=financials.gross_commission,
                net_commission_owed=financials.net_commission_owed,
            )
        values["payable_amount"] = payable_amount(financials)
        return values

    # =========================================================================
    # Creation
    # =========================================================================

    def create_request(self, actor: Actor, draft: CommissionDraft) -> TransitionResult:
        """
        Submit a new commission request.

        Preconditions:
            - Actor holds ``submit_commission``.
            - The draft validates; its job number, if any, is not locked.
            - The submitter has a manager.
        Postconditions:
            - Request stored at ``(pending_review, pending_manager)``,
              version 1, with its first status-log entry and a ``submitted``
              outbox row, all in one commit.
        """
        now = self._clock.now()
        with LogContext.bind(actor_id=str(actor.actor_id)):
            try:
                self._authority.require(actor, Capability.SUBMIT_COMMISSION)
                rep_id = draft.sales_rep_id or actor.actor_id
                draft = self._prepare_draft(draft, rep_id)
                self._validate(draft)
                if self._job_number_locked(draft.job_number):
                    raise JobNumberLockedError(draft.job_number.strip())
                manager_id = self._manager_lookup.manager_for(actor.actor_id)
                if manager_id is None:
                    raise ManagerRequiredError(str(actor.actor_id))

                status, stage = COMMISSION_WORKFLOW.initial_state
                row = CommissionRequestModel(
                    **self._financial_values(draft),
                    version=1,
                    submitter_id=actor.actor_id,
                    submitter_role=actor.role.value,
                    manager_id=manager_id,
                    sales_rep_id=rep_id,
                    status=status.value,
                    approval_stage=stage.value,
                    revision_count=0,
                    was_rejected=False,
                    is_manager_submission=actor.role.value in self._settings.manager_submitter_roles,
                    submitted_at=now,
                    created_by_id=actor.actor_id,
                )
                self._session.add(row)
                self._session.flush()

                self._status_log.append(
                    request_id=row.id,
                    previous_status=None,
                    new_status=status.value,
                    previous_stage=None,
                    new_stage=stage.value,
                    changed_by=actor.actor_id,
                    occurred_at=now,
                    notes=SUBMITTED_NOTE,
                    extra={"action": "create", "version": 1, "actor_role": actor.role.value},
                )
                event = NotificationEvent(
                    event_type=NotificationType.SUBMITTED,
                    subject_id=row.id,
                    occurred_at=now,
                    actor_id=actor.actor_id,
                    submitter_id=actor.actor_id,
                    previous_status=None,
                    new_status=status.value,
                    previous_stage=None,
                    new_stage=stage.value,
                    job_name=row.job_name,
                    job_number=row.job_number,
                    sales_rep_name=row.sales_rep_name,
                    amount=row.payable_amount,
                    notes=draft.notes,
                    version=1,
                    details={"manager_id": str(manager_id)},
                )
                self._outbox.enqueue(
                    event_type=event.event_type.value,
                    subject_id=row.id,
                    payload=event.to_payload(),
                    occurred_at=now,
                    request_version=1,
                )
                request_id = row.id
                is_manager_submission = row.is_manager_submission
                request = row.to_dto()
                self._session.commit()
            except CommissionKernelError as exc:
                self._session.rollback()
                logger.warning(
                    "commission_transition_rejected",
                    extra={"action": "create", "error_code": exc.code, "reason": str(exc)},
                )
                raise
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "commission_created",
                extra={
                    "request_id": str(request_id),
                    "worksheet_kind": draft.worksheet_kind.value,
                    "payable_amount": str(event.amount),
                    "is_manager_submission": is_manager_submission,
                },
            )
        run_after_commit(self._after_commit)
        return TransitionResult(request=request, event=event)

    # =========================================================================
    # Transitions
    # =========================================================================

    def manager_approve(
        self,
        request_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
        notes: str | None = None,
    ) -> TransitionResult:
        """First review: on to accounting, or to admin for a manager's own submission."""

        def authorize(row: CommissionRequestModel) -> None:
            self._authority.require(actor, Capability.MANAGER_APPROVE)
            self._forbid_self_review(row, actor)

        def build(row: CommissionRequestModel, now: datetime) -> _Effect:
            values: dict[str, Any] = {
                "manager_approved_at": now,
                "manager_approved_by": actor.actor_id,
            }
            if notes:
                values["reviewer_notes"] = notes
            note = SENT_TO_ADMIN_NOTE if row.is_manager_submission else SENT_TO_ACCOUNTING_NOTE
            return _Effect(
                values=values,
                event_type=NotificationType.MANAGER_APPROVED,
                log_notes=note,
                event_notes=notes,
                log_extra={"reviewer_notes": notes} if notes else {},
            )

        return self._transition(request_id, actor, "manager_approve", expected_version, authorize, build)

    def final_approve(
        self,
        request_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
        approved_amount: Decimal | None = None,
        notes: str | None = None,
    ) -> TransitionResult:
        """
        Accounting (or admin, for manager submissions) approves for payment.

        The approved amount defaults to the payable amount; a different
        amount needs notes.  Assigns the pay date and records the manager's
        override in the same transaction.
        """

        def authorize(row: CommissionRequestModel) -> None:
            if row.approval_stage == ApprovalStage.PENDING_ADMIN.value:
                self._authority.require(actor, Capability.ADMIN_APPROVE)
            else:
                self._authority.require(actor, Capability.ACCOUNTING_APPROVE)
            self._forbid_self_review(row, actor)

        def build(row: CommissionRequestModel, now: datetime) -> _Effect:
            requested = row.payable_amount
            amount = to_decimal(approved_amount) if approved_amount is not None else requested
            if amount != requested and not (notes or "").strip():
                raise ApprovedAmountNotesRequiredError(requested, amount)
            pay_date = scheduled_pay_date(now, self._cutoff)

            values: dict[str, Any] = {
                "approved_amount": amount,
                "approved_at": now,
                "approved_by": actor.actor_id,
                "commission_approved_at": now,
                "commission_approved_by": actor.actor_id,
                "scheduled_pay_date": pay_date,
            }
            if row.approval_stage == ApprovalStage.PENDING_ADMIN.value:
                values.update(admin_approved_at=now, admin_approved_by=actor.actor_id)
            else:
                values.update(accounting_approved_at=now, accounting_approved_by=actor.actor_id)
            if notes:
                values["reviewer_notes"] = notes

            def record_override(occurred_at: datetime) -> dict[str, Any]:
                entry = self._overrides.record_for_approved_commission(
                    commission_id=row.id,
                    rep_id=row.sales_rep_id,
                    manager_id=row.manager_id,
                    net_amount=requested,
                    actor_id=actor.actor_id,
                    occurred_at=occurred_at,
                )
                return {"override": entry}

            return _Effect(
                values=values,
                event_type=NotificationType.APPROVED,
                log_notes=APPROVED_NOTE,
                event_notes=notes,
                amount=amount,
                after=record_override,
                log_extra={
                    "approved_amount": amount,
                    "requested_amount": requested,
                    "scheduled_pay_date": pay_date,
                },
            )

        return self._transition(request_id, actor, "final_approve", expected_version, authorize, build)

    def mark_paid(
        self,
        request_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Record payment of an approved commission.  Terminal."""

        def authorize(row: CommissionRequestModel) -> None:
            self._authority.require(actor, Capability.MARK_PAID)

        def build(row: CommissionRequestModel, now: datetime) -> _Effect:
            return _Effect(
                values={"paid_at": now, "paid_by": actor.actor_id},
                event_type=NotificationType.PAID,
                log_notes=PAID_NOTE,
                amount=row.approved_amount,
            )

        return self._transition(request_id, actor, "mark_paid", expected_version, authorize, build)

    def request_revision(
        self,
        request_id: UUID,
        actor: Actor,
        reason: str,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Send the request back to the submitter; it restarts at the manager."""
        reason = (reason or "").strip()
        if not reason:
            raise ReasonRequiredError("request a revision")

        def build(row: CommissionRequestModel, now: datetime) -> _Effect:
            revision_number = row.revision_count + 1

            def log_revision(occurred_at: datetime) -> dict[str, Any]:
                self._session.add(RevisionLogModel(
                    request_id=row.id,
                    revision_number=revision_number,
                    requested_by=actor.actor_id,
                    requested_by_role=actor.role.value,
                    reason=reason,
                    previous_amount=row.payable_amount,
                    requested_at=occurred_at,
                    created_by_id=actor.actor_id,
                ))
                self._session.flush()
                return {"revision_number": revision_number}

            return _Effect(
                values={
                    "revision_count": revision_number,
                    "was_rejected": True,
                    "rejection_reason": reason,
                },
                event_type=NotificationType.REVISION_REQUIRED,
                log_notes=reason,
                event_notes=reason,
                after=log_revision,
                log_extra={"revision_number": revision_number},
            )

        return self._transition(
            request_id, actor, "request_revision", expected_version,
            lambda row: self._authorize_reviewer(row, actor), build,
        )

    def deny(
        self,
        request_id: UUID,
        actor: Actor,
        reason: str,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Reject the request for good.  Its job number can never be submitted again."""
        reason = (reason or "").strip()
        if not reason:
            raise ReasonRequiredError("deny")

        def build(row: CommissionRequestModel, now: datetime) -> _Effect:
            def lock_job_number(occurred_at: datetime) -> dict[str, Any]:
                if not row.job_number or self._job_number_locked(row.job_number):
                    return {"locked_job_number": None}
                self._session.add(DeniedJobNumberModel(
                    job_number=row.job_number,
                    request_id=row.id,
                    denied_at=occurred_at,
                    created_by_id=actor.actor_id,
                ))
                self._session.flush()
                return {"locked_job_number": row.job_number}

            return _Effect(
                values={
                    "denied_at": now,
                    "denied_by": actor.actor_id,
                    "rejection_reason": reason,
                    "was_rejected": True,
                },
                event_type=NotificationType.DENIED,
                log_notes=reason,
                event_notes=reason,
                after=lock_job_number,
            )

        return self._transition(
            request_id, actor, "deny", expected_version,
            lambda row: self._authorize_reviewer(row, actor), build,
        )

    def resubmit(
        self,
        request_id: UUID,
        actor: Actor,
        draft: CommissionDraft,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """
        The original submitter sends a revised request back for review.

        Inputs are replaced and every derived amount recomputed; the prior
        submission is kept as a snapshot on the row.
        """

        def authorize(row: CommissionRequestModel) -> None:
            self._authority.require(actor, Capability.SUBMIT_COMMISSION)
            if row.submitter_id != actor.actor_id:
                raise NotSubmitterError(str(actor.actor_id), str(row.id))

        def build(row: CommissionRequestModel, now: datetime) -> _Effect:
            prepared = self._prepare_draft(draft, row.sales_rep_id)
            self._validate(prepared)
            if self._job_number_locked(prepared.job_number):
                raise JobNumberLockedError(prepared.job_number.strip())

            snapshot = {name: getattr(row, name) for name in _SNAPSHOT_FIELDS}
            snapshot["negative_expenses"] = list(row.negative_expenses)
            snapshot["positive_expenses"] = list(row.positive_expenses)
            snapshot["version"] = row.version
            snapshot["captured_at"] = now

            values = self._financial_values(prepared)
            values.update(
                previous_submission=to_json_safe(snapshot),
                rejection_reason=None,
                resubmitted_at=now,
            )
            return _Effect(
                values=values,
                event_type=NotificationType.SUBMITTED,
                log_notes=RESUBMITTED_NOTE,
                event_notes=prepared.notes,
                amount=values["payable_amount"],
                is_resubmission=True,
                log_extra={
                    "previous_amount": row.payable_amount,
                    "payable_amount": values["payable_amount"],
                },
            )

        return self._transition(request_id, actor, "resubmit", expected_version, authorize, build)

    # =========================================================================
    # Authorization helpers
    # =========================================================================

    @staticmethod
    def _forbid_self_review(row: CommissionRequestModel, actor: Actor) -> None:
        if actor.actor_id in (row.submitter_id, row.sales_rep_id):
            raise SelfApprovalError(str(actor.actor_id), str(row.id))

    def _authorize_reviewer(self, row: CommissionRequestModel, actor: Actor) -> None:
        """Revision and denial: the reviewer of the request's current stage."""
        if (
            row.status == CommissionStatus.PENDING_REVIEW.value
            and row.approval_stage in STAGE_REVIEW_CAPABILITY
        ):
            self._authority.require_stage_reviewer(actor, row.approval_stage)
        self._forbid_self_review(row, actor)

    # =========================================================================
    # The transition pipeline
    # =========================================================================

    def _transition(
        self,
        request_id: UUID,
        actor: Actor,
        action: str,
        expected_version: int | None,
        authorize: Callable[[CommissionRequestModel], None],
        build: Callable[[CommissionRequestModel, datetime], _Effect],
    ) -> TransitionResult:
        """
        Re-read, check, write conditionally, audit, enqueue, commit.

        Order: version check, terminal check, authorization, transition
        selection, effect, conditional update, side writes, status log,
        outbox, commit.
        """
        now = self._clock.now()
        with LogContext.bind(request_id=str(request_id), actor_id=str(actor.actor_id)):
            try:
                row = self._load(request_id)
                if expected_version is not None and row.version != expected_version:
                    raise version_mismatch(
                        "CommissionRequest", row.id, expected_version, row.version,
                    )
                state = _state_of(row)
                if state[0] in TERMINAL_STATUSES:
                    raise TerminalStateError(str(request_id), row.status, action)

                authorize(row)

                transition = COMMISSION_WORKFLOW.select(state, action, _guard_results(row))
                if transition is None:
                    raise InvalidTransitionError(str(request_id), action, row.status, row.approval_stage)
                new_status, new_stage = transition.to_state

                effect = build(row, now)
                previous_status = row.status
                previous_stage = row.approval_stage
                new_version = row.version + 1

                compare_and_swap(
                    self._session,
                    CommissionRequestModel,
                    "CommissionRequest",
                    row.id,
                    expected={
                        "version": row.version,
                        "status": previous_status,
                        "approval_stage": previous_stage,
                    },
                    values={
                        **effect.values,
                        "status": new_status.value,
                        "approval_stage": new_stage.value if new_stage else None,
                        "version": new_version,
                        "updated_by_id": actor.actor_id,
                    },
                )

                details = effect.after(now) if effect.after is not None else {}

                self._status_log.append(
                    request_id=row.id,
                    previous_status=previous_status,
                    new_status=new_status.value,
                    previous_stage=previous_stage,
                    new_stage=new_stage.value if new_stage else None,
                    changed_by=actor.actor_id,
                    occurred_at=now,
                    notes=effect.log_notes,
                    extra={
                        "action": action,
                        "version": new_version,
                        "actor_role": actor.role.value,
                        **effect.log_extra,
                    },
                )

                merged = {**{
                    "job_name": row.job_name,
                    "job_number": row.job_number,
                    "sales_rep_name": row.sales_rep_name,
                    "payable_amount": row.payable_amount,
                    "scheduled_pay_date": row.scheduled_pay_date,
                }, **effect.values}
                event = NotificationEvent(
                    event_type=effect.event_type,
                    subject_id=row.id,
                    occurred_at=now,
                    actor_id=actor.actor_id,
                    submitter_id=row.submitter_id,
                    previous_status=previous_status,
                    new_status=new_status.value,
                    previous_stage=previous_stage,
                    new_stage=new_stage.value if new_stage else None,
                    job_name=merged["job_name"],
                    job_number=merged["job_number"],
                    sales_rep_name=merged["sales_rep_name"],
                    amount=effect.amount if effect.amount is not None else merged["payable_amount"],
                    notes=effect.event_notes,
                    scheduled_pay_date=merged["scheduled_pay_date"],
                    version=new_version,
                    is_resubmission=effect.is_resubmission,
                    details={"action": action},
                )
                self._outbox.enqueue(
                    event_type=event.event_type.value,
                    subject_id=row.id,
                    payload=event.to_payload(),
                    occurred_at=now,
                    request_version=new_version,
                )
                request = self._load(row.id).to_dto()
                self._session.commit()
            except CommissionKernelError as exc:
                self._session.rollback()
                logger.warning(
                    "commission_transition_rejected",
                    extra={"action": action, "error_code": exc.code, "reason": str(exc)},
                )
                raise
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "commission_transition_applied",
                extra={
                    "action": action,
                    "previous_status": previous_status,
                    "new_status": new_status.value,
                    "previous_stage": previous_stage,
                    "new_stage": new_stage.value if new_stage else None,
                    "version": new_version,
                },
            )
        run_after_commit(self._after_commit)
        return TransitionResult(request=request, event=event, details=details)
