"""
Status log hash chain tests.

The ORM refuses UPDATE and DELETE on status-log rows.  Tampering is
simulated with Core statements that bypass the mapper, then caught by
``verify_chain``.
"""

from uuid import uuid4

import pytest
from sqlalchemy import update

from commission_kernel.exceptions import ImmutabilityViolationError, StatusLogChainBrokenError
from commission_kernel.models.status_log import CommissionStatusLogModel
from commission_kernel.services.status_log_service import StatusLogService

status_log = CommissionStatusLogModel.__table__


@pytest.fixture
def paid_request(workflow, rep, manager, accounting, worksheet_draft):
    request = workflow.create_request(rep, worksheet_draft()).request
    workflow.manager_approve(request.id, manager)
    workflow.final_approve(request.id, accounting)
    workflow.mark_paid(request.id, accounting)
    return request


def _tamper(session, request_id, sequence, **values):
    session.execute(
        update(status_log)
        .where(status_log.c.request_id == request_id, status_log.c.sequence == sequence)
        .values(**values)
    )
    session.commit()
    session.expire_all()


class TestChain:
    def test_full_history_verifies(self, session, paid_request):
        service = StatusLogService(session)
        history = service.history(paid_request.id)

        assert [e.sequence for e in history] == [1, 2, 3, 4]
        assert history[0].entry_hash != history[1].entry_hash
        assert service.verify_chain(paid_request.id) is True

    def test_links_to_previous_entry(self, session, paid_request):
        rows = session.query(CommissionStatusLogModel).filter_by(request_id=paid_request.id).order_by(
            CommissionStatusLogModel.sequence
        ).all()
        assert rows[0].is_genesis
        assert [r.prev_hash for r in rows[1:]] == [r.entry_hash for r in rows[:-1]]

    def test_empty_history_verifies(self, session):
        assert StatusLogService(session).verify_chain(uuid4()) is True


class TestTampering:
    def test_edited_notes(self, session, paid_request):
        _tamper(session, paid_request.id, 2, notes="approved by the owner")
        with pytest.raises(StatusLogChainBrokenError) as exc_info:
            StatusLogService(session).verify_chain(paid_request.id)
        assert exc_info.value.sequence == 2

    def test_edited_payload(self, session, paid_request):
        row = session.query(CommissionStatusLogModel).filter_by(request_id=paid_request.id, sequence=3).one()
        payload = dict(row.payload, notes="Approved - $9,000")
        _tamper(session, paid_request.id, 3, payload=payload)

        with pytest.raises(StatusLogChainBrokenError) as exc_info:
            StatusLogService(session).verify_chain(paid_request.id)
        assert exc_info.value.sequence == 3

    def test_rewritten_entry_breaks_the_next_link(self, session, paid_request):
        _tamper(session, paid_request.id, 2, entry_hash="0" * 64)
        with pytest.raises(StatusLogChainBrokenError) as exc_info:
            StatusLogService(session).verify_chain(paid_request.id)
        assert exc_info.value.sequence == 2

    def test_deleted_entry(self, session, paid_request):
        session.execute(
            status_log.delete().where(
                status_log.c.request_id == paid_request.id, status_log.c.sequence == 1,
            )
        )
        session.commit()
        with pytest.raises(StatusLogChainBrokenError) as exc_info:
            StatusLogService(session).verify_chain(paid_request.id)
        assert exc_info.value.sequence == 2

    def test_break_is_logged_critical(self, session, paid_request, captured_logs):
        _tamper(session, paid_request.id, 4, new_status="approved")
        with pytest.raises(StatusLogChainBrokenError):
            StatusLogService(session).verify_chain(paid_request.id)

        broken = [r for r in captured_logs() if r["message"] == "status_log_chain_broken"]
        assert broken[0]["level"] == "CRITICAL"
        assert broken[0]["request_id"] == str(paid_request.id)


class TestAppendOnly:
    def test_orm_update_refused(self, session, paid_request):
        row = session.query(CommissionStatusLogModel).filter_by(request_id=paid_request.id, sequence=1).one()
        row.notes = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_orm_delete_refused(self, session, paid_request):
        row = session.query(CommissionStatusLogModel).filter_by(request_id=paid_request.id, sequence=1).one()
        session.delete(row)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
