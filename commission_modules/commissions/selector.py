"""
Commission Selector (``commission_modules.commissions.selector``).

Responsibility
--------------
The read side of the commission workflow: plain queries over persisted
state, returned as frozen ``CommissionRequest`` snapshots.

Architecture position
---------------------
**Modules layer** -- read-only.  Never flushes or commits; the caller owns
the session.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select

from commission_kernel.exceptions import CommissionRequestNotFoundError
from commission_kernel.selectors.base import BaseSelector
from commission_kernel.services.status_log_service import StatusLogEntry, StatusLogService
from commission_modules.commissions.models import (
    ApprovalStage,
    CommissionRequest,
    CommissionStatus,
    RevisionRecord,
)
from commission_modules.commissions.orm import CommissionRequestModel, RevisionLogModel


class CommissionSelector(BaseSelector[CommissionRequestModel]):
    """Queries over commission requests and their history."""

    def get(self, request_id: UUID) -> CommissionRequest:
        row = self.session.get(CommissionRequestModel, request_id, populate_existing=True)
        if row is None:
            raise CommissionRequestNotFoundError(str(request_id))
        return row.to_dto()

    def list_for_submitter(self, submitter_id: UUID) -> list[CommissionRequest]:
        rows = self.session.execute(
            select(CommissionRequestModel)
            .where(CommissionRequestModel.submitter_id == submitter_id)
            .order_by(CommissionRequestModel.submitted_at.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_by_state(
        self,
        status: CommissionStatus | str,
        stage: ApprovalStage | str | None = None,
    ) -> list[CommissionRequest]:
        """Requests in ``status`` (and ``stage`` when given), oldest first."""
        stmt = select(CommissionRequestModel).where(
            CommissionRequestModel.status == CommissionStatus(status).value
        )
        if stage is not None:
            stmt = stmt.where(CommissionRequestModel.approval_stage == ApprovalStage(stage).value)
        rows = self.session.execute(stmt.order_by(CommissionRequestModel.submitted_at)).scalars()
        return [row.to_dto() for row in rows]

    def review_queue(self, stage: ApprovalStage | str) -> list[CommissionRequest]:
        return self.list_by_state(CommissionStatus.PENDING_REVIEW, stage)

    def pay_run(self, pay_date: date) -> list[CommissionRequest]:
        """Approved, unpaid requests scheduled for the Friday ``pay_date``."""
        rows = self.session.execute(
            select(CommissionRequestModel)
            .where(
                CommissionRequestModel.status == CommissionStatus.APPROVED.value,
                CommissionRequestModel.scheduled_pay_date == pay_date,
            )
            .order_by(CommissionRequestModel.approved_at)
        ).scalars()
        return [row.to_dto() for row in rows]

    def status_history(self, request_id: UUID) -> list[StatusLogEntry]:
        return StatusLogService(self.session).history(request_id)

    def status_export(self, request_id: UUID) -> list[dict[str, Any]]:
        return StatusLogService(self.session).export_rows(request_id)

    def revisions(self, request_id: UUID) -> list[RevisionRecord]:
        rows = self.session.execute(
            select(RevisionLogModel)
            .where(RevisionLogModel.request_id == request_id)
            .order_by(RevisionLogModel.revision_number)
        ).scalars()
        return [row.to_dto() for row in rows]
