"""
Draw Service (``commission_modules.draws.service``).

Responsibility
--------------
Commission advances: a rep requests a draw, an approver approves or denies
it once, accounting disburses it, and later commissions pay it back.
Every movement of money is a ledger row; the balance is a sum over them.

Architecture position
---------------------
**Modules layer**.  ``DrawService`` is the sole public entry point for
draws.  Limits come from ``commission_engines.draws`` via the config
bridge; authorization from ``commission_services.authority``.

Invariants enforced
-------------------
* Each public command owns the transaction boundary (``commit`` on
  success, ``rollback`` and re-raise on any exception).
* Authorization and limit checks run before any write.
* Approve/deny and disburse are conditional writes on the stored version
  and status; a lost race raises ``StaleStateError``.
* A draw is disbursed at most once, and paid back at most up to what was
  taken on it.

Failure modes
-------------
* ``ValidationError`` -- non-positive amount or blank job name.
* ``DrawEstimateRequiredError`` / ``DrawLimitExceededError`` -- limits.
* ``CapabilityDeniedError`` / ``SelfApprovalError`` -- authorization.
* ``ReasonRequiredError`` -- denial without a reason.
* ``InvalidTransitionError`` -- decision on a decided draw, disbursing an
  unapproved or already disbursed draw.
* ``StaleStateError`` -- concurrent decision.

Audit relevance
---------------
Every command logs a structured event and enqueues a notification in the
same transaction as its state change.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_config import get_active_settings
from commission_config.bridges import build_draw_limits
from commission_config.schema import CommissionSettings
from commission_engines.draws import (
    DrawLedgerEntryType,
    evaluate_draw_request,
    repayment_amount,
    summarize_ledger,
)
from commission_kernel.db.types import ZERO, to_decimal
from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.events import NotificationEvent, NotificationType
from commission_kernel.domain.values import Actor, ValidationIssue
from commission_kernel.exceptions import (
    DrawRequestNotFoundError,
    InvalidTransitionError,
    ReasonRequiredError,
    SelfApprovalError,
    ValidationError,
)
from commission_kernel.logging_config import LogContext, get_logger
from commission_kernel.services.outbox_service import OutboxService
from commission_modules._transition_helpers import (
    AfterCommitHook,
    compare_and_swap,
    run_after_commit,
    version_mismatch,
)
from commission_modules.draws.models import DrawLedgerEntry, DrawRequest, DrawStatus, DrawSummary
from commission_modules.draws.orm import DrawLedgerEntryModel, DrawRequestModel
from commission_modules.draws.workflows import DRAW_WORKFLOW
from commission_services.authority import Capability, RoleAuthority

logger = get_logger("modules.draws.service")


class DrawService:
    """
    Draw requests, decisions, disbursement and repayment.

    Contract
    --------
    * Commands return the refreshed ``DrawRequest`` (or ledger entry).
    * ``draw_balance`` and ``draw_summary`` are read-only.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: CommissionSettings | None = None,
        authority: RoleAuthority | None = None,
        after_commit: AfterCommitHook | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_settings()
        self._limits = build_draw_limits(self._settings)
        self._authority = authority or RoleAuthority.from_settings(self._settings)
        self._outbox = OutboxService(session)
        self._after_commit = after_commit

    # =========================================================================
    # Reads
    # =========================================================================

    def _load(self, draw_id: UUID) -> DrawRequestModel:
        row = self._session.execute(
            select(DrawRequestModel)
            .where(DrawRequestModel.id == draw_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise DrawRequestNotFoundError(str(draw_id))
        return row

    def get(self, draw_id: UUID) -> DrawRequest:
        return self._load(draw_id).to_dto()

    def list_for_rep(self, rep_id: UUID) -> list[DrawRequest]:
        rows = self._session.execute(
            select(DrawRequestModel)
            .where(DrawRequestModel.rep_id == rep_id)
            .order_by(DrawRequestModel.requested_at)
        ).scalars()
        return [row.to_dto() for row in rows]

    def _ledger_rows(self, *, rep_id: UUID | None = None, draw_id: UUID | None = None):
        stmt = select(DrawLedgerEntryModel)
        if rep_id is not None:
            stmt = stmt.where(DrawLedgerEntryModel.rep_id == rep_id)
        if draw_id is not None:
            stmt = stmt.where(DrawLedgerEntryModel.draw_id == draw_id)
        return list(self._session.execute(stmt.order_by(DrawLedgerEntryModel.recorded_at)).scalars())

    def ledger(self, rep_id: UUID) -> list[DrawLedgerEntry]:
        return [row.to_dto() for row in self._ledger_rows(rep_id=rep_id)]

    def draw_balance(self, rep_id: UUID) -> Decimal:
        """Outstanding advances: sum(taken) - sum(paid back)."""
        return summarize_ledger(row.to_line() for row in self._ledger_rows(rep_id=rep_id)).outstanding

    def draw_summary(self, rep_id: UUID) -> DrawSummary:
        rows = self._ledger_rows(rep_id=rep_id)
        balance = summarize_ledger(row.to_line() for row in rows)

        per_draw: dict[UUID, Decimal] = {}
        for row in rows:
            per_draw[row.draw_id] = per_draw.get(row.draw_id, ZERO) + row.to_line().signed_amount

        open_count = 0
        for draw in self.list_for_rep(rep_id):
            if draw.status is DrawStatus.DENIED:
                continue
            if not draw.is_disbursed or per_draw.get(draw.id, ZERO) > 0:
                open_count += 1

        return DrawSummary(
            rep_id=rep_id,
            total_taken=balance.taken,
            total_paid_back=balance.paid_back,
            outstanding=balance.outstanding,
            open_draw_count=open_count,
        )

    # =========================================================================
    # Commands
    # =========================================================================

    def request_draw(
        self,
        actor: Actor,
        *,
        amount: Decimal,
        job_name: str,
        job_number: str | None = None,
        estimated_commission: Decimal | None = None,
        notes: str | None = None,
    ) -> DrawRequest:
        """
        Request an advance for ``actor`` against a job.

        Preconditions:
            - ``amount`` > 0; over the small-draw limit an estimate is
              required and the cap is half of it.
            - Outstanding balance plus ``amount`` stays within the maximum.
        Postconditions:
            - One ``requested`` draw and one ``draw_requested`` outbox row,
              committed together.
        """
        now = self._clock.now()
        try:
            self._authority.require(actor, Capability.REQUEST_DRAW)

            issues = []
            if not (job_name or "").strip():
                issues.append(ValidationIssue("job_name", "Job name is required"))
            requested = to_decimal(amount)
            if requested <= 0:
                issues.append(ValidationIssue("requested_amount", "Draw amount must be greater than zero"))
            if issues:
                raise ValidationError(issues)

            estimate = to_decimal(estimated_commission) if estimated_commission is not None else None
            decision = evaluate_draw_request(
                requested, estimate, self.draw_balance(actor.actor_id), self._limits,
            )

            row = DrawRequestModel(
                rep_id=actor.actor_id,
                job_name=job_name.strip(),
                job_number=job_number,
                requested_amount=decision.requested_amount,
                estimated_commission=estimate,
                status=DrawStatus.REQUESTED.value,
                requires_manager_approval=decision.requires_manager_approval,
                notes=notes,
                requested_at=now,
                version=1,
                created_by_id=actor.actor_id,
            )
            self._session.add(row)
            self._session.flush()

            self._publish(row, NotificationType.DRAW_REQUESTED, actor, now, previous_status=None)
            draw = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        with LogContext.bind(draw_id=str(draw.id), actor_id=str(actor.actor_id)):
            logger.info(
                "draw_requested",
                extra={
                    "amount": str(decision.requested_amount),
                    "cap": str(decision.cap),
                    "requires_manager_approval": decision.requires_manager_approval,
                },
            )
        run_after_commit(self._after_commit)
        return draw

    def approve_draw(
        self,
        draw_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
        notes: str | None = None,
    ) -> DrawRequest:
        return self._decide(draw_id, actor, "approve", expected_version, notes=notes)

    def deny_draw(
        self,
        draw_id: UUID,
        actor: Actor,
        reason: str,
        expected_version: int | None = None,
    ) -> DrawRequest:
        if not (reason or "").strip():
            raise ReasonRequiredError("deny a draw")
        return self._decide(draw_id, actor, "deny", expected_version, reason=reason.strip())

    def _authorize_decision(self, row: DrawRequestModel, actor: Actor) -> None:
        self._authority.require(actor, Capability.APPROVE_DRAW)
        if row.requires_manager_approval:
            self._authority.require(actor, Capability.APPROVE_LARGE_DRAW)
        if row.rep_id == actor.actor_id:
            raise SelfApprovalError(str(actor.actor_id), str(row.id))

    def _decide(
        self,
        draw_id: UUID,
        actor: Actor,
        action: str,
        expected_version: int | None,
        *,
        notes: str | None = None,
        reason: str | None = None,
    ) -> DrawRequest:
        now = self._clock.now()
        try:
            row = self._load(draw_id)
            if expected_version is not None and row.version != expected_version:
                raise version_mismatch("DrawRequest", row.id, expected_version, row.version)
            self._authorize_decision(row, actor)

            transition = DRAW_WORKFLOW.select(DrawStatus(row.status), action)
            if transition is None:
                raise InvalidTransitionError(str(draw_id), action, row.status, None)
            new_status: DrawStatus = transition.to_state

            values: dict = {
                "status": new_status.value,
                "version": row.version + 1,
                "updated_by_id": actor.actor_id,
            }
            if new_status is DrawStatus.APPROVED:
                values.update(approved_at=now, approved_by=actor.actor_id)
                if notes:
                    values["notes"] = notes
                event_type = NotificationType.DRAW_APPROVED
            else:
                values.update(denied_at=now, denied_by=actor.actor_id, denial_reason=reason)
                event_type = NotificationType.DRAW_DENIED

            compare_and_swap(
                self._session, DrawRequestModel, "DrawRequest", draw_id,
                expected={"version": row.version, "status": row.status},
                values=values,
            )
            previous_status = row.status
            row = self._load(draw_id)
            self._publish(row, event_type, actor, now, previous_status=previous_status,
                          notes=reason or notes)
            draw = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        with LogContext.bind(draw_id=str(draw_id), actor_id=str(actor.actor_id)):
            logger.info(
                "draw_decided",
                extra={"action": action, "status": draw.status.value, "version": draw.version},
            )
        run_after_commit(self._after_commit)
        return draw

    def disburse_draw(
        self,
        draw_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
    ) -> DrawLedgerEntry:
        """Pay out an approved draw once; appends a ``taken`` ledger entry."""
        now = self._clock.now()
        try:
            self._authority.require(actor, Capability.DISBURSE_DRAW)
            row = self._load(draw_id)
            if expected_version is not None and row.version != expected_version:
                raise version_mismatch("DrawRequest", row.id, expected_version, row.version)
            if row.status != DrawStatus.APPROVED.value or row.disbursed_at is not None:
                raise InvalidTransitionError(str(draw_id), "disburse", row.status, None)

            compare_and_swap(
                self._session, DrawRequestModel, "DrawRequest", draw_id,
                expected={"version": row.version, "status": row.status, "disbursed_at": None},
                values={
                    "disbursed_at": now,
                    "disbursed_by": actor.actor_id,
                    "version": row.version + 1,
                    "updated_by_id": actor.actor_id,
                },
            )
            entry = DrawLedgerEntryModel(
                rep_id=row.rep_id,
                draw_id=row.id,
                entry_type=DrawLedgerEntryType.TAKEN.value,
                amount=row.requested_amount,
                recorded_at=now,
                created_by_id=actor.actor_id,
            )
            self._session.add(entry)
            self._session.flush()

            row = self._load(draw_id)
            self._publish(row, NotificationType.DRAW_PAID, actor, now, previous_status=row.status)
            taken = entry.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        with LogContext.bind(draw_id=str(draw_id), actor_id=str(actor.actor_id)):
            logger.info(
                "draw_disbursed",
                extra={"rep_id": str(taken.rep_id), "amount": str(taken.amount)},
            )
        run_after_commit(self._after_commit)
        return taken

    def apply_commission_to_draw(
        self,
        draw_id: UUID,
        commission_id: UUID,
        amount: Decimal,
        actor: Actor,
    ) -> DrawLedgerEntry | None:
        """
        Pay a draw back from a commission.

        The ``paid_back`` entry is capped at what is still outstanding on
        this draw; returns None when nothing is outstanding.
        """
        now = self._clock.now()
        try:
            self._authority.require(actor, Capability.DISBURSE_DRAW)
            row = self._load(draw_id)
            outstanding = summarize_ledger(
                r.to_line() for r in self._ledger_rows(draw_id=draw_id)
            ).outstanding
            repaid = repayment_amount(amount, outstanding)
            if repaid <= 0:
                self._session.rollback()
                logger.info(
                    "draw_repayment_skipped",
                    extra={"draw_id": str(draw_id), "outstanding": str(outstanding)},
                )
                return None

            entry = DrawLedgerEntryModel(
                rep_id=row.rep_id,
                draw_id=row.id,
                commission_id=commission_id,
                entry_type=DrawLedgerEntryType.PAID_BACK.value,
                amount=repaid,
                recorded_at=now,
                created_by_id=actor.actor_id,
            )
            self._session.add(entry)
            self._session.flush()
            repayment = entry.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "draw_repaid",
            extra={
                "draw_id": str(draw_id),
                "commission_id": str(commission_id),
                "amount": str(repaid),
                "remaining": str(outstanding - repaid),
            },
        )
        return repayment

    # =========================================================================
    # Helpers
    # =========================================================================

    def _publish(
        self,
        row: DrawRequestModel,
        event_type: NotificationType,
        actor: Actor,
        now: datetime,
        *,
        previous_status: str | None,
        notes: str | None = None,
    ) -> NotificationEvent:
        event = NotificationEvent(
            event_type=event_type,
            subject_id=row.id,
            occurred_at=now,
            actor_id=actor.actor_id,
            submitter_id=row.rep_id,
            previous_status=previous_status,
            new_status=row.status,
            job_name=row.job_name,
            job_number=row.job_number,
            amount=row.requested_amount,
            notes=notes,
            version=row.version,
            details={"requires_manager_approval": row.requires_manager_approval},
        )
        self._outbox.enqueue(
            event_type=event_type.value,
            subject_id=row.id,
            payload=event.to_payload(),
            occurred_at=now,
            request_version=row.version,
        )
        return event

