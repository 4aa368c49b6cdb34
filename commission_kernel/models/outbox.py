"""
Module: commission_kernel.models.outbox
Responsibility: ORM persistence for the notification outbox.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - A row is written in the same transaction as the state change that
      produced the event, so an event exists if and only if the change
      committed.
    - Status moves pending -> delivered or pending -> abandoned, never back.
    - Rows are delivered in (occurred_at, request_version) order.

Failure modes:
    - None at the model level; delivery failures are recorded on the row
      by the relay (attempts, last_error, next_attempt_at).
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commission_kernel.db.base import Base, UTCDateTime, UUIDString


class OutboxStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    ABANDONED = "abandoned"


class NotificationOutboxModel(Base):
    """One notification waiting for, or done with, delivery."""

    __tablename__ = "notification_outbox"

    __table_args__ = (
        Index("idx_outbox_due", "status", "next_attempt_at"),
        Index("idx_outbox_order", "occurred_at", "request_version"),
    )

    event_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Commission request or draw request the event is about
    subject_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    request_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OutboxStatus.PENDING.value,
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_attempt_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    delivered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_error: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    def __repr__(self) -> str:
        return f"<NotificationOutbox {self.event_type} {self.subject_id} {self.status}>"
