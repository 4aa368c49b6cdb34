"""
Manager override ledger tests.

Overrides are recorded by final approval, inside the approval
transaction, once per commission, for the first N approved commissions of
each rep.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from commission_config.bridges import build_override_policy
from commission_config.schema import OverrideSettings
from commission_engines.overrides import OverridePhaseStatus, OverridePolicy
from commission_kernel.exceptions import ImmutabilityViolationError, StaleStateError
from commission_modules.overrides import OverrideService
from commission_modules.overrides.orm import OverrideLedgerEntryModel


def _approve(workflow, rep, manager, accounting, draft):
    request = workflow.create_request(rep, draft).request
    workflow.manager_approve(request.id, manager)
    return workflow.final_approve(request.id, accounting)


class TestRecordedOnApproval:
    def test_first_approval_awards_manager(self, workflow, session, rep, manager, accounting, worksheet_draft):
        result = _approve(workflow, rep, manager, accounting, worksheet_draft())

        entry = result.details["override"]
        assert entry.manager_id == manager.actor_id
        assert entry.rep_id == rep.actor_id
        assert entry.commission_id == result.request.id
        assert entry.commission_number == 1
        assert entry.override_amount == Decimal("300.00")
        assert not entry.completes_phase

        service = OverrideService(session)
        assert service.entry_for_commission(result.request.id) == entry
        assert service.phase_for_rep(rep.actor_id).approved_count == 1

    def test_numbers_are_per_rep(self, workflow, session, rep, other_rep, manager, accounting, worksheet_draft):
        _approve(workflow, rep, manager, accounting, worksheet_draft())
        second = _approve(workflow, rep, manager, accounting, worksheet_draft())
        other = _approve(workflow, other_rep, manager, accounting, worksheet_draft())

        assert second.details["override"].commission_number == 2
        assert other.details["override"].commission_number == 1
        assert [e.commission_number for e in OverrideService(session).entries_for_rep(rep.actor_id)] == [1, 2]

    def test_manager_totals(self, workflow, session, rep, other_rep, manager, accounting, worksheet_draft):
        _approve(workflow, rep, manager, accounting, worksheet_draft())
        _approve(workflow, other_rep, manager, accounting, worksheet_draft(contract_amount=Decimal("8000")))

        totals = OverrideService(session).overrides_for_manager(manager.actor_id)
        assert totals.count == 2
        assert totals.total_amount == Decimal("450.00")

    def test_override_base_is_requested_amount(self, workflow, rep, manager, accounting, worksheet_draft):
        request = workflow.create_request(rep, worksheet_draft()).request
        workflow.manager_approve(request.id, manager)
        result = workflow.final_approve(
            request.id, accounting, approved_amount=Decimal("1000"), notes="Partial payment",
        )
        assert result.details["override"].net_amount == Decimal("3000")
        assert result.details["override"].override_amount == Decimal("300.00")

    def test_negative_commission_uses_a_slot_with_signed_override(self, workflow, rep, manager, accounting, worksheet_draft):
        result = _approve(workflow, rep, manager, accounting, worksheet_draft(advances_paid=Decimal("3500")))
        entry = result.details["override"]
        assert entry.net_amount == Decimal("-500")
        assert entry.override_amount == Decimal("-50.00")
        assert entry.commission_number == 1


class TestPhaseLimit:
    def test_no_award_after_limit(self, session, make_workflow, settings, rep, manager, accounting, worksheet_draft):
        limited = replace(settings, override=OverrideSettings(limit=2, rate=Decimal("0.10")))
        workflow = make_workflow(session, settings=limited)

        first = _approve(workflow, rep, manager, accounting, worksheet_draft())
        second = _approve(workflow, rep, manager, accounting, worksheet_draft())
        third = _approve(workflow, rep, manager, accounting, worksheet_draft())

        assert not first.details["override"].completes_phase
        assert second.details["override"].completes_phase
        assert third.details["override"] is None
        phase = OverrideService(session, build_override_policy(limited)).phase_for_rep(rep.actor_id)
        assert phase == OverridePhaseStatus(approved_count=2, is_complete=True, limit=2)


class TestOverrideService:
    def test_no_manager_records_nothing(self, session, rep, accounting):
        entry = OverrideService(session).record_for_approved_commission(
            commission_id=uuid4(),
            rep_id=rep.actor_id,
            manager_id=None,
            net_amount=Decimal("1000"),
            actor_id=accounting.actor_id,
            occurred_at=datetime(2026, 2, 23, 17, tzinfo=timezone.utc),
        )
        assert entry is None

    def test_recording_twice_returns_existing(self, workflow, session, rep, manager, accounting, worksheet_draft):
        result = _approve(workflow, rep, manager, accounting, worksheet_draft())
        again = OverrideService(session).record_for_approved_commission(
            commission_id=result.request.id,
            rep_id=rep.actor_id,
            manager_id=manager.actor_id,
            net_amount=Decimal("3000"),
            actor_id=accounting.actor_id,
            occurred_at=datetime(2026, 2, 24, 17, tzinfo=timezone.utc),
        )
        assert again == result.details["override"]
        session.rollback()

    def test_slot_conflict_is_stale_state(self, workflow, session, rep, manager, accounting, worksheet_draft):
        first = _approve(workflow, rep, manager, accounting, worksheet_draft())
        pending = workflow.create_request(rep, worksheet_draft()).request

        # Count read before the first award committed: slot 1 is claimed twice.
        service = OverrideService(session, OverridePolicy(limit=10))
        service._count_for_rep = lambda rep_id: 0
        with pytest.raises(StaleStateError):
            service.record_for_approved_commission(
                commission_id=pending.id,
                rep_id=rep.actor_id,
                manager_id=manager.actor_id,
                net_amount=Decimal("3000"),
                actor_id=accounting.actor_id,
                occurred_at=datetime(2026, 2, 24, 17, tzinfo=timezone.utc),
            )
        session.rollback()
        assert OverrideService(session).entries_for_rep(rep.actor_id)[0].commission_id == first.request.id

    def test_period_window(self, workflow, session, clock, rep, manager, accounting, worksheet_draft):
        _approve(workflow, rep, manager, accounting, worksheet_draft())
        clock.advance(7 * 24 * 3600)
        _approve(workflow, rep, manager, accounting, worksheet_draft())

        start = clock.now() - timedelta(days=1)
        totals = OverrideService(session).overrides_for_manager(manager.actor_id, start=start)
        assert totals.count == 1
        assert totals.entries[0].commission_number == 2

    def test_ledger_is_append_only(self, workflow, session, rep, manager, accounting, worksheet_draft):
        result = _approve(workflow, rep, manager, accounting, worksheet_draft())
        row = session.get(OverrideLedgerEntryModel, result.details["override"].id)
        row.override_amount = Decimal("9999")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
