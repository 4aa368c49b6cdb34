"""
Notification events.

Responsibility:
    The structured event a state change publishes: what happened, to which
    commission or draw, by whom, between which states, and the job facts
    and amount a recipient needs to read the message.

Architecture position:
    Kernel > Domain -- pure values.  Produced by the module services,
    stored as JSON in the outbox, rebuilt by the relay before dispatch.

Invariants enforced:
    - ``from_payload(to_payload(e)) == e`` for every event.
    - Amounts travel as decimal strings, never floats.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID


class NotificationType(str, Enum):
    SUBMITTED = "submitted"
    MANAGER_APPROVED = "manager_approved"
    APPROVED = "approved"
    PAID = "paid"
    REVISION_REQUIRED = "revision_required"
    DENIED = "denied"
    DRAW_REQUESTED = "draw_requested"
    DRAW_APPROVED = "draw_approved"
    DRAW_DENIED = "draw_denied"
    DRAW_PAID = "draw_paid"


@dataclass(frozen=True)
class NotificationEvent:
    """One outbound notification."""

    event_type: NotificationType
    subject_id: UUID
    occurred_at: datetime
    actor_id: UUID
    submitter_id: UUID | None = None
    previous_status: str | None = None
    new_status: str | None = None
    previous_stage: str | None = None
    new_stage: str | None = None
    job_name: str | None = None
    job_number: str | None = None
    sales_rep_name: str | None = None
    amount: Decimal | None = None
    notes: str | None = None
    scheduled_pay_date: date | None = None
    version: int = 0
    is_resubmission: bool = False
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "subject_id": str(self.subject_id),
            "occurred_at": self.occurred_at.isoformat(),
            "actor_id": str(self.actor_id),
            "submitter_id": str(self.submitter_id) if self.submitter_id else None,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "previous_stage": self.previous_stage,
            "new_stage": self.new_stage,
            "job_name": self.job_name,
            "job_number": self.job_number,
            "sales_rep_name": self.sales_rep_name,
            "amount": str(self.amount) if self.amount is not None else None,
            "notes": self.notes,
            "scheduled_pay_date": (
                self.scheduled_pay_date.isoformat() if self.scheduled_pay_date else None
            ),
            "version": self.version,
            "is_resubmission": self.is_resubmission,
            "details": dict(self.details),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> NotificationEvent:
        submitter = payload.get("submitter_id")
        amount = payload.get("amount")
        pay_date = payload.get("scheduled_pay_date")
        return cls(
            event_type=NotificationType(payload["event_type"]),
            subject_id=UUID(payload["subject_id"]),
            occurred_at=datetime.fromisoformat(payload["occurred_at"]),
            actor_id=UUID(payload["actor_id"]),
            submitter_id=UUID(submitter) if submitter else None,
            previous_status=payload.get("previous_status"),
            new_status=payload.get("new_status"),
            previous_stage=payload.get("previous_stage"),
            new_stage=payload.get("new_stage"),
            job_name=payload.get("job_name"),
            job_number=payload.get("job_number"),
            sales_rep_name=payload.get("sales_rep_name"),
            amount=Decimal(amount) if amount is not None else None,
            notes=payload.get("notes"),
            scheduled_pay_date=date.fromisoformat(pay_date) if pay_date else None,
            version=int(payload.get("version", 0)),
            is_resubmission=bool(payload.get("is_resubmission", False)),
            details=dict(payload.get("details") or {}),
        )
