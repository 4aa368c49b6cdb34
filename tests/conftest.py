"""
Pytest fixtures for the commission workflow test suite.

Provides:
- A fresh database per test (SQLite file under tmp_path by default)
- A deterministic clock and the packaged settings
- Actors for every role and a manager-assignment table
- Worksheet and document draft factories
- Recording and failing notification dispatchers
- Structured-log capture

Environment Variables:
- DATABASE_URL: run against PostgreSQL instead of a per-test SQLite file.
  Tables are dropped and recreated for every test.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Callable, Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from commission_config import clear_settings_cache, get_active_settings
from commission_engines.calculation import WorksheetKind
from commission_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_env,
    reset_engine,
)
from commission_kernel.domain.clock import DeterministicClock
from commission_kernel.domain.events import NotificationEvent
from commission_kernel.domain.values import Actor, Role
from commission_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from commission_modules.commissions import (
    CommissionDraft,
    CommissionWorkflowService,
    StaticManagerAssignments,
)
from commission_modules.draws import DrawService

# Monday 2026-02-23 10:00 at UTC-7, before the Tuesday 15:00 cutoff
MONDAY_MORNING = datetime(2026, 2, 23, 17, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture commission_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.create_request(rep, draft)
            logs = captured_logs()
            assert any(r["message"] == "commission_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("commission_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    """One engine per test with every table created."""
    engine = init_engine_from_env(f"sqlite:///{tmp_path / 'commissions.db'}", echo=False)
    if engine.dialect.name != "sqlite":
        drop_tables()
    create_tables()
    yield engine
    if engine.dialect.name != "sqlite":
        drop_tables()
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """Session for the test body.  Services commit through it."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Clock, settings, actors
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(MONDAY_MORNING)


@pytest.fixture(scope="session")
def settings():
    clear_settings_cache()
    return get_active_settings()


@pytest.fixture
def rep() -> Actor:
    return Actor(uuid4(), Role.SALES_REP)


@pytest.fixture
def other_rep() -> Actor:
    return Actor(uuid4(), Role.SALES_REP)


@pytest.fixture
def manager() -> Actor:
    return Actor(uuid4(), Role.MANAGER)


@pytest.fixture
def sales_manager() -> Actor:
    return Actor(uuid4(), Role.SALES_MANAGER)


@pytest.fixture
def accounting() -> Actor:
    return Actor(uuid4(), Role.ACCOUNTING)


@pytest.fixture
def admin() -> Actor:
    return Actor(uuid4(), Role.ADMIN)


@pytest.fixture
def assignments(rep, other_rep, manager, sales_manager, admin) -> StaticManagerAssignments:
    """rep and other_rep report to manager; sales_manager reports to admin."""
    return StaticManagerAssignments({
        rep.actor_id: manager.actor_id,
        other_rep.actor_id: manager.actor_id,
        sales_manager.actor_id: admin.actor_id,
    })


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def make_workflow(assignments, clock, settings) -> Callable[..., CommissionWorkflowService]:
    """Build a workflow service over any session (threads need their own)."""

    def _make(session: Session, **kwargs) -> CommissionWorkflowService:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("settings", settings)
        return CommissionWorkflowService(session, assignments, **kwargs)

    return _make


@pytest.fixture
def workflow(session, make_workflow) -> CommissionWorkflowService:
    return make_workflow(session)


@pytest.fixture
def draws(session, clock, settings) -> DrawService:
    return DrawService(session, clock=clock, settings=settings)


# =============================================================================
# Drafts
# =============================================================================


@pytest.fixture
def worksheet_draft() -> Callable[..., CommissionDraft]:
    """contract 18000 + supplements 2000 at 15% -> 3000.00 owed."""

    def _make(**overrides) -> CommissionDraft:
        values = dict(
            worksheet_kind=WorksheetKind.SUBMISSION,
            job_name="Alvarez Residence Re-roof",
            sales_rep_name="Riley Moreno",
            contract_amount=Decimal("18000"),
            supplements_approved=Decimal("2000"),
            commission_percent=Decimal("15"),
            advances_paid=Decimal("0"),
        )
        values.update(overrides)
        return CommissionDraft(**values)

    return _make


@pytest.fixture
def document_draft() -> Callable[..., CommissionDraft]:
    """25000 gross at 15% O&P on the 15/40/60 split -> 4540.00 rep commission."""

    def _make(**overrides) -> CommissionDraft:
        values = dict(
            worksheet_kind=WorksheetKind.DOCUMENT,
            job_name="Birchwood HOA Building C",
            sales_rep_name="Riley Moreno",
            contract_date=date(2026, 2, 2),
            gross_contract_total=Decimal("25000"),
            op_percent=Decimal("0.15"),
            material_cost=Decimal("5000"),
            labor_cost=Decimal("4000"),
            negative_expenses=(Decimal("500"), Decimal("300"), Decimal("0"), Decimal("200")),
            positive_expenses=(Decimal("100"),),
            profit_split_label="15/40/60",
        )
        values.update(overrides)
        return CommissionDraft(**values)

    return _make


# =============================================================================
# Dispatchers
# =============================================================================


@dataclass
class RecordingDispatcher:
    """Keeps every event it is handed."""

    events: list[NotificationEvent] = field(default_factory=list)

    def dispatch(self, event: NotificationEvent) -> None:
        self.events.append(event)


@dataclass
class FailingDispatcher:
    """Fails the first ``failures`` calls, then records like RecordingDispatcher."""

    failures: int
    calls: int = 0
    events: list[NotificationEvent] = field(default_factory=list)

    def dispatch(self, event: NotificationEvent) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("smtp relay unavailable")
        self.events.append(event)


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher() -> Callable[[int], FailingDispatcher]:
    """Factory: ``failing_dispatcher(2)`` fails twice, then delivers."""
    return FailingDispatcher
