"""
Override Service (``commission_modules.overrides.service``).

Responsibility
--------------
Records the override a manager earns when one of their rep's commissions
is finally approved, and answers phase and reporting queries.

Architecture position
---------------------
**Modules layer**.  Called by ``CommissionWorkflowService.final_approve``
inside the approval transaction; never commits.  Delegates the arithmetic
to ``commission_engines.overrides``.

Invariants enforced
-------------------
* The phase position is ``COUNT(*)`` over the rep's ledger rows.
* Recording is idempotent per commission: a second call returns the
  existing entry.
* A lost race for the same phase slot surfaces as ``StaleStateError`` so
  the whole approval rolls back and can be retried.

Failure modes
-------------
* ``StaleStateError`` -- another approval claimed the same commission
  number for this rep first.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from commission_engines.overrides import (
    OverridePhaseStatus,
    OverridePolicy,
    compute_override,
    override_phase,
)
from commission_kernel.db.types import ZERO
from commission_kernel.exceptions import StaleStateError
from commission_kernel.logging_config import get_logger
from commission_modules.overrides.models import OverrideLedgerEntry, OverrideTotals
from commission_modules.overrides.orm import OverrideLedgerEntryModel

logger = get_logger("modules.overrides.service")


class OverrideService:
    """
    Override ledger writes and reads.

    Contract:
        ``record_for_approved_commission`` flushes but never commits; the
        caller owns the transaction.
    """

    def __init__(self, session: Session, policy: OverridePolicy | None = None):
        self._session = session
        self._policy = policy or OverridePolicy()

    def _count_for_rep(self, rep_id: UUID) -> int:
        return self._session.execute(
            select(func.count(OverrideLedgerEntryModel.id)).where(
                OverrideLedgerEntryModel.rep_id == rep_id
            )
        ).scalar_one()

    def phase_for_rep(self, rep_id: UUID) -> OverridePhaseStatus:
        return override_phase(self._count_for_rep(rep_id), self._policy)

    def entry_for_commission(self, commission_id: UUID) -> OverrideLedgerEntry | None:
        row = self._session.execute(
            select(OverrideLedgerEntryModel).where(
                OverrideLedgerEntryModel.commission_id == commission_id
            )
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def record_for_approved_commission(
        self,
        *,
        commission_id: UUID,
        rep_id: UUID,
        manager_id: UUID | None,
        net_amount: Decimal,
        actor_id: UUID,
        occurred_at: datetime,
    ) -> OverrideLedgerEntry | None:
        """
        Award the override for one newly approved commission.

        Returns:
            The ledger entry, or None when there is no manager or the
            rep's phase is already complete.
        """
        if manager_id is None:
            logger.info(
                "override_skipped_no_manager",
                extra={"commission_id": str(commission_id), "rep_id": str(rep_id)},
            )
            return None

        existing = self.entry_for_commission(commission_id)
        if existing is not None:
            return existing

        phase = self.phase_for_rep(rep_id)
        award = compute_override(net_amount, phase, self._policy)
        if award is None:
            logger.info(
                "override_phase_complete",
                extra={
                    "commission_id": str(commission_id),
                    "rep_id": str(rep_id),
                    "approved_count": phase.approved_count,
                },
            )
            return None

        row = OverrideLedgerEntryModel(
            rep_id=rep_id,
            commission_id=commission_id,
            manager_id=manager_id,
            commission_number=award.commission_number,
            net_amount=award.net_amount,
            override_percentage=award.override_percentage,
            override_amount=award.override_amount,
            completes_phase=award.completes_phase,
            awarded_at=occurred_at,
            created_by_id=actor_id,
        )
        try:
            with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as exc:
            logger.warning(
                "override_slot_conflict",
                extra={
                    "commission_id": str(commission_id),
                    "rep_id": str(rep_id),
                    "commission_number": award.commission_number,
                },
            )
            raise StaleStateError("OverrideLedger", str(rep_id)) from exc

        logger.info(
            "override_recorded",
            extra={
                "commission_id": str(commission_id),
                "rep_id": str(rep_id),
                "manager_id": str(manager_id),
                "commission_number": award.commission_number,
                "override_amount": str(award.override_amount),
                "completes_phase": award.completes_phase,
            },
        )
        return row.to_dto()

    def overrides_for_manager(
        self,
        manager_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> OverrideTotals:
        """Awards for ``manager_id`` with ``start <= awarded_at < end``."""
        stmt = select(OverrideLedgerEntryModel).where(
            OverrideLedgerEntryModel.manager_id == manager_id
        )
        if start is not None:
            stmt = stmt.where(OverrideLedgerEntryModel.awarded_at >= start)
        if end is not None:
            stmt = stmt.where(OverrideLedgerEntryModel.awarded_at < end)
        stmt = stmt.order_by(OverrideLedgerEntryModel.awarded_at)
        entries = tuple(row.to_dto() for row in self._session.execute(stmt).scalars())
        return OverrideTotals(
            manager_id=manager_id,
            entries=entries,
            total_amount=sum((e.override_amount for e in entries), ZERO),
        )

    def entries_for_rep(self, rep_id: UUID) -> list[OverrideLedgerEntry]:
        rows = self._session.execute(
            select(OverrideLedgerEntryModel)
            .where(OverrideLedgerEntryModel.rep_id == rep_id)
            .order_by(OverrideLedgerEntryModel.commission_number)
        ).scalars()
        return [row.to_dto() for row in rows]
