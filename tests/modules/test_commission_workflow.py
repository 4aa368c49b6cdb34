"""
Commission approval workflow tests.

Covers creation, the two approval routes (rep submissions to accounting,
manager submissions to admin), payment, revision and resubmission, denial
with job-number locking, terminal states and optimistic versioning.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from commission_kernel.domain.events import NotificationType
from commission_kernel.domain.values import Actor, Role
from commission_kernel.exceptions import (
    ApprovedAmountNotesRequiredError,
    CapabilityDeniedError,
    CommissionRequestNotFoundError,
    InvalidTransitionError,
    JobNumberLockedError,
    ManagerRequiredError,
    NotSubmitterError,
    ReasonRequiredError,
    SelfApprovalError,
    StaleStateError,
    TerminalStateError,
    ValidationError,
)
from commission_kernel.services.outbox_service import OutboxService
from commission_modules.commissions import (
    ApprovalStage,
    CommissionSelector,
    CommissionStatus,
)
from commission_modules.commissions.service import (
    APPROVED_NOTE,
    PAID_NOTE,
    RESUBMITTED_NOTE,
    SENT_TO_ACCOUNTING_NOTE,
    SENT_TO_ADMIN_NOTE,
    SUBMITTED_NOTE,
)

THIS_FRIDAY = date(2026, 2, 27)
NEXT_FRIDAY = date(2026, 3, 6)


def _submit(workflow, actor, draft):
    return workflow.create_request(actor, draft).request


def _approved(workflow, rep, manager, accounting, draft):
    request = _submit(workflow, rep, draft)
    workflow.manager_approve(request.id, manager)
    return workflow.final_approve(request.id, accounting).request


class TestCreate:
    def test_worksheet_submission_starts_with_manager(self, workflow, session, rep, manager, worksheet_draft):
        result = workflow.create_request(rep, worksheet_draft(job_number="4821"))
        request = result.request

        assert request.state == (CommissionStatus.PENDING_REVIEW, ApprovalStage.PENDING_MANAGER)
        assert request.version == 1
        assert request.revision_count == 0
        assert request.manager_id == manager.actor_id
        assert request.submitter_id == rep.actor_id
        assert request.sales_rep_id == rep.actor_id
        assert request.total_job_revenue == Decimal("20000")
        assert request.gross_commission == Decimal("3000.00")
        assert request.payable_amount == Decimal("3000.00")
        assert not request.is_manager_submission

        assert result.event.event_type is NotificationType.SUBMITTED
        assert result.event.details["manager_id"] == str(manager.actor_id)

        history = CommissionSelector(session).status_history(request.id)
        assert [(e.previous_status, e.new_status, e.notes) for e in history] == [
            (None, "pending_review", SUBMITTED_NOTE),
        ]
        assert len(OutboxService(session).for_subject(request.id)) == 1

    def test_document_submission_takes_rep_percent_from_split(self, workflow, rep, document_draft):
        request = _submit(workflow, rep, document_draft())

        assert request.rep_profit_percent == Decimal("0.40")
        assert request.op_amount == Decimal("3750.00")
        assert request.net_profit == Decimal("11350.00")
        assert request.rep_commission == Decimal("4540.00")
        assert request.company_profit == Decimal("10560.00")
        assert request.payable_amount == Decimal("4540.00")
        assert request.negative_expenses == (
            Decimal("500"), Decimal("300"), Decimal("0"), Decimal("200"),
        )

    def test_document_rep_percent_from_tier(self, workflow, rep, document_draft):
        request = _submit(
            workflow, rep, document_draft(profit_split_label="15/50/50", commission_tier="15_45_55"),
        )
        # the split label wins over the tier
        assert request.rep_profit_percent == Decimal("0.50")

    def test_negative_document_commission_is_stored(self, workflow, rep, document_draft):
        request = _submit(workflow, rep, document_draft(
            gross_contract_total=Decimal("10000"),
            material_cost=Decimal("5000"),
            labor_cost=Decimal("5000"),
            negative_expenses=(Decimal("1000"),),
            positive_expenses=(),
        ))
        assert request.net_profit == Decimal("-2500.00")
        assert request.payable_amount == Decimal("-1000.00")

    def test_manager_submission_is_flagged(self, workflow, sales_manager, worksheet_draft):
        request = _submit(workflow, sales_manager, worksheet_draft())
        assert request.is_manager_submission

    def test_invalid_draft_stores_nothing(self, workflow, session, rep, worksheet_draft):
        with pytest.raises(ValidationError) as exc_info:
            workflow.create_request(rep, worksheet_draft(job_name=" ", contract_amount=None))

        fields = {issue.field for issue in exc_info.value.issues}
        assert fields == {"job_name", "contract_amount"}
        assert CommissionSelector(session).list_for_submitter(rep.actor_id) == []

    def test_submitter_without_manager(self, workflow, worksheet_draft):
        loner = Actor(uuid4(), Role.SALES_REP)
        with pytest.raises(ManagerRequiredError):
            workflow.create_request(loner, worksheet_draft())

    def test_missing_request(self, workflow, manager):
        with pytest.raises(CommissionRequestNotFoundError):
            workflow.manager_approve(uuid4(), manager)


class TestRepApprovalRoute:
    def test_manager_then_accounting_then_paid(self, workflow, session, clock, rep, manager, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())

        first = workflow.manager_approve(request.id, manager, expected_version=1, notes="Looks right")
        assert first.request.state == (CommissionStatus.PENDING_REVIEW, ApprovalStage.PENDING_ACCOUNTING)
        assert first.request.manager_approved_by == manager.actor_id
        assert first.request.reviewer_notes == "Looks right"
        assert first.request.version == 2
        assert first.event.event_type is NotificationType.MANAGER_APPROVED

        second = workflow.final_approve(request.id, accounting, expected_version=2)
        approved = second.request
        assert approved.state == (CommissionStatus.APPROVED, ApprovalStage.COMPLETED)
        assert approved.approved_amount == Decimal("3000.00")
        assert approved.approved_by == accounting.actor_id
        assert approved.accounting_approved_by == accounting.actor_id
        assert approved.commission_approved_by == accounting.actor_id
        assert approved.commission_approved_at == approved.approved_at == clock.now()
        assert approved.admin_approved_by is None
        assert approved.scheduled_pay_date == THIS_FRIDAY
        assert second.event.event_type is NotificationType.APPROVED
        assert second.event.scheduled_pay_date == THIS_FRIDAY

        paid = workflow.mark_paid(request.id, accounting, expected_version=3)
        assert paid.request.state == (CommissionStatus.PAID, ApprovalStage.COMPLETED)
        assert paid.request.paid_by == accounting.actor_id
        assert paid.event.amount == Decimal("3000.00")

        history = CommissionSelector(session).status_history(request.id)
        assert [e.notes for e in history] == [
            SUBMITTED_NOTE, SENT_TO_ACCOUNTING_NOTE, APPROVED_NOTE, PAID_NOTE,
        ]
        assert [e.sequence for e in history] == [1, 2, 3, 4]
        events = [row.event_type for row in OutboxService(session).for_subject(request.id)]
        assert events == ["submitted", "manager_approved", "approved", "paid"]

    def test_approval_after_cutoff_pays_next_friday(self, workflow, clock, rep, manager, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, manager)

        clock.set_time(datetime(2026, 2, 24, 22, 0, tzinfo=timezone.utc))  # Tuesday 15:00 local
        approved = workflow.final_approve(request.id, accounting).request
        assert approved.scheduled_pay_date == NEXT_FRIDAY

    def test_accounting_cannot_act_at_manager_stage(self, workflow, rep, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(InvalidTransitionError):
            workflow.final_approve(request.id, accounting)

    def test_mark_paid_requires_approval(self, workflow, rep, manager, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, manager)
        with pytest.raises(InvalidTransitionError):
            workflow.mark_paid(request.id, accounting)


class TestManagerApprovalRoute:
    def test_manager_submission_goes_to_admin(self, workflow, session, sales_manager, manager, accounting, admin, worksheet_draft):
        request = _submit(workflow, sales_manager, worksheet_draft())

        routed = workflow.manager_approve(request.id, manager).request
        assert routed.state == (CommissionStatus.PENDING_REVIEW, ApprovalStage.PENDING_ADMIN)

        with pytest.raises(CapabilityDeniedError):
            workflow.final_approve(request.id, accounting)

        approved = workflow.final_approve(request.id, admin).request
        assert approved.state == (CommissionStatus.APPROVED, ApprovalStage.COMPLETED)
        assert approved.admin_approved_by == admin.actor_id
        assert approved.commission_approved_by == admin.actor_id
        assert approved.accounting_approved_by is None

        notes = [e.notes for e in CommissionSelector(session).status_history(request.id)]
        assert notes[1] == SENT_TO_ADMIN_NOTE


class TestApprovedAmount:
    def test_different_amount_needs_notes(self, workflow, rep, manager, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, manager)

        with pytest.raises(ApprovedAmountNotesRequiredError):
            workflow.final_approve(request.id, accounting, approved_amount=Decimal("2500"))
        assert workflow.get(request.id).version == 2

        result = workflow.final_approve(
            request.id, accounting, approved_amount=Decimal("2500"), notes="Supplement not yet paid",
        )
        assert result.request.approved_amount == Decimal("2500")
        assert result.request.reviewer_notes == "Supplement not yet paid"
        assert result.event.amount == Decimal("2500")

    def test_same_amount_needs_no_notes(self, workflow, rep, manager, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, manager)
        result = workflow.final_approve(request.id, accounting, approved_amount=Decimal("3000"))
        assert result.request.approved_amount == Decimal("3000")


class TestAuthorization:
    def test_rep_cannot_approve(self, workflow, rep, other_rep, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(CapabilityDeniedError):
            workflow.manager_approve(request.id, other_rep)

    def test_manager_cannot_approve_own_submission(self, workflow, sales_manager, worksheet_draft):
        request = _submit(workflow, sales_manager, worksheet_draft())
        with pytest.raises(SelfApprovalError):
            workflow.manager_approve(request.id, sales_manager)

    def test_reviewer_cannot_approve_commission_paid_to_them(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft(sales_rep_id=manager.actor_id))
        with pytest.raises(SelfApprovalError):
            workflow.manager_approve(request.id, manager)

    def test_revision_needs_reviewer_of_current_stage(self, workflow, rep, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(CapabilityDeniedError):
            workflow.request_revision(request.id, accounting, "Missing supplement paperwork")

    def test_admin_reviews_any_stage(self, workflow, rep, admin, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, admin)
        result = workflow.final_approve(request.id, admin)
        assert result.request.status is CommissionStatus.APPROVED

    def test_rejection_is_logged(self, workflow, captured_logs, rep, other_rep, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(CapabilityDeniedError):
            workflow.manager_approve(request.id, other_rep)

        rejected = [r for r in captured_logs() if r["message"] == "commission_transition_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["action"] == "manager_approve"
        assert rejected[0]["request_id"] == str(request.id)


class TestRevisionCycle:
    def test_reason_required(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(ReasonRequiredError):
            workflow.request_revision(request.id, manager, "   ")

    def test_revision_from_accounting_returns_to_manager(self, workflow, session, rep, manager, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, manager)

        result = workflow.request_revision(request.id, accounting, "Supplement amount unsupported")
        revised = result.request
        assert revised.state == (CommissionStatus.REVISION_REQUIRED, ApprovalStage.PENDING_MANAGER)
        assert revised.revision_count == 1
        assert revised.was_rejected
        assert revised.rejection_reason == "Supplement amount unsupported"
        assert result.details == {"revision_number": 1}
        assert result.event.event_type is NotificationType.REVISION_REQUIRED

        revisions = CommissionSelector(session).revisions(request.id)
        assert len(revisions) == 1
        assert revisions[0].requested_by == accounting.actor_id
        assert revisions[0].previous_amount == Decimal("3000")

    def test_resubmit_recomputes_and_keeps_snapshot(self, workflow, session, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.request_revision(request.id, manager, "Contract amount is wrong")

        result = workflow.resubmit(
            request.id, rep, worksheet_draft(contract_amount=Decimal("20000")), expected_version=2,
        )
        resubmitted = result.request
        assert resubmitted.state == (CommissionStatus.PENDING_REVIEW, ApprovalStage.PENDING_MANAGER)
        assert resubmitted.payable_amount == Decimal("3300.00")
        assert resubmitted.rejection_reason is None
        assert resubmitted.revision_count == 1
        assert resubmitted.resubmitted_at is not None
        assert result.event.is_resubmission
        assert result.event.event_type is NotificationType.SUBMITTED

        snapshot = resubmitted.previous_submission
        assert Decimal(snapshot["payable_amount"]) == Decimal("3000")
        assert snapshot["rejection_reason"] == "Contract amount is wrong"
        assert snapshot["version"] == 2

        notes = [e.notes for e in CommissionSelector(session).status_history(request.id)]
        assert notes[-1] == RESUBMITTED_NOTE

    def test_each_cycle_counts_once(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        for cycle in (1, 2):
            revised = workflow.request_revision(request.id, manager, f"Round {cycle}").request
            assert revised.revision_count == cycle
            back = workflow.resubmit(request.id, rep, worksheet_draft()).request
            assert back.revision_count == cycle
            assert back.approval_stage is ApprovalStage.PENDING_MANAGER

    def test_only_submitter_resubmits(self, workflow, rep, other_rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.request_revision(request.id, manager, "Fix it")
        with pytest.raises(NotSubmitterError):
            workflow.resubmit(request.id, other_rep, worksheet_draft())

    def test_resubmit_only_from_revision_required(self, workflow, rep, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(InvalidTransitionError):
            workflow.resubmit(request.id, rep, worksheet_draft())

    def test_invalid_resubmission_leaves_request_unchanged(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.request_revision(request.id, manager, "Fix it")
        with pytest.raises(ValidationError):
            workflow.resubmit(request.id, rep, worksheet_draft(commission_percent=Decimal("150")))

        current = workflow.get(request.id)
        assert current.status is CommissionStatus.REVISION_REQUIRED
        assert current.version == 2


class TestDenial:
    def test_reason_required(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(ReasonRequiredError):
            workflow.deny(request.id, manager, "")

    def test_denial_is_terminal_and_locks_job_number(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft(job_number="4821"))

        result = workflow.deny(request.id, manager, "Duplicate of an earlier job")
        denied = result.request
        assert denied.status is CommissionStatus.DENIED
        assert denied.approval_stage is ApprovalStage.PENDING_MANAGER
        assert denied.denied_by == manager.actor_id
        assert result.details == {"locked_job_number": "4821"}

        with pytest.raises(JobNumberLockedError):
            workflow.create_request(rep, worksheet_draft(job_number="4821"))
        # other job numbers are unaffected
        _submit(workflow, rep, worksheet_draft(job_number="4822"))

    @pytest.mark.parametrize("action", ["manager_approve", "final_approve", "mark_paid"])
    def test_no_transition_leaves_denied(self, workflow, rep, admin, manager, worksheet_draft, action):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.deny(request.id, manager, "Not our job")
        with pytest.raises(TerminalStateError):
            getattr(workflow, action)(request.id, admin)

    def test_cannot_revise_or_resubmit_denied(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.deny(request.id, manager, "Not our job")
        with pytest.raises(TerminalStateError):
            workflow.request_revision(request.id, manager, "Try again")
        with pytest.raises(TerminalStateError):
            workflow.resubmit(request.id, rep, worksheet_draft())

    def test_cannot_deny_while_revision_required(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.request_revision(request.id, manager, "Fix it")
        with pytest.raises(InvalidTransitionError):
            workflow.deny(request.id, manager, "Changed my mind")


class TestPaidIsTerminal:
    def test_no_transition_leaves_paid(self, workflow, rep, manager, accounting, admin, worksheet_draft):
        approved = _approved(workflow, rep, manager, accounting, worksheet_draft())
        workflow.mark_paid(approved.id, accounting)

        with pytest.raises(TerminalStateError):
            workflow.mark_paid(approved.id, accounting)
        with pytest.raises(TerminalStateError):
            workflow.deny(approved.id, admin, "Too late")
        with pytest.raises(TerminalStateError):
            workflow.resubmit(approved.id, rep, worksheet_draft())


class TestVersioning:
    def test_stale_version_rejected(self, workflow, rep, manager, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, manager, expected_version=1)

        with pytest.raises(StaleStateError):
            workflow.request_revision(request.id, manager, "Late reviewer", expected_version=1)

        current = workflow.get(request.id)
        assert current.status is CommissionStatus.PENDING_REVIEW
        assert current.version == 2

    def test_version_increments_once_per_transition(self, workflow, rep, manager, accounting, worksheet_draft):
        request = _submit(workflow, rep, worksheet_draft())
        versions = [request.version]
        versions.append(workflow.manager_approve(request.id, manager).request.version)
        versions.append(workflow.final_approve(request.id, accounting).request.version)
        versions.append(workflow.mark_paid(request.id, accounting).request.version)
        assert versions == [1, 2, 3, 4]


class TestAfterCommitHook:
    def test_hook_runs_after_each_command(self, session, make_workflow, rep, manager, worksheet_draft):
        calls = []
        workflow = make_workflow(session, after_commit=lambda: calls.append(1))
        request = _submit(workflow, rep, worksheet_draft())
        workflow.manager_approve(request.id, manager)
        assert len(calls) == 2

    def test_hook_failure_does_not_undo_the_commit(self, session, make_workflow, captured_logs, rep, worksheet_draft):
        def broken():
            raise RuntimeError("relay down")

        workflow = make_workflow(session, after_commit=broken)
        request = _submit(workflow, rep, worksheet_draft())

        assert workflow.get(request.id).version == 1
        assert any(r["message"] == "after_commit_hook_failed" for r in captured_logs())

    def test_hook_not_called_on_rejection(self, session, make_workflow, rep, other_rep, worksheet_draft):
        calls = []
        workflow = make_workflow(session, after_commit=lambda: calls.append(1))
        request = _submit(workflow, rep, worksheet_draft())
        with pytest.raises(CapabilityDeniedError):
            workflow.manager_approve(request.id, other_rep)
        assert len(calls) == 1
