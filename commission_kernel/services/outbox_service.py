"""
OutboxService -- transactional notification enqueue.

Responsibility:
    Writes a pending outbox row for a notification event inside the
    caller's transaction, and lists the rows that are due for delivery.

Architecture position:
    Kernel > Services.  The workflow services enqueue; the relay in
    ``commission_services.notification_relay`` delivers.

Invariants enforced:
    - Enqueue never commits.  If the transition rolls back, so does the
      notification.
    - ``due`` returns pending rows whose next_attempt_at has passed, in
      (occurred_at, request_version) order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from commission_kernel.logging_config import get_logger
from commission_kernel.models.outbox import NotificationOutboxModel, OutboxStatus
from commission_kernel.services.base import BaseService
from commission_kernel.utils.hashing import to_json_safe

logger = get_logger("services.outbox")


class OutboxService(BaseService):
    """Enqueue and look up notification outbox rows."""

    def enqueue(
        self,
        *,
        event_type: str,
        subject_id: UUID,
        payload: dict[str, Any],
        occurred_at: datetime,
        request_version: int = 0,
    ) -> NotificationOutboxModel:
        row = NotificationOutboxModel(
            event_type=event_type,
            subject_id=subject_id,
            request_version=request_version,
            payload=to_json_safe(payload),
            occurred_at=occurred_at,
            status=OutboxStatus.PENDING.value,
            attempts=0,
            next_attempt_at=occurred_at,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "notification_enqueued",
            extra={
                "event_type": event_type,
                "subject_id": str(subject_id),
                "outbox_id": str(row.id),
            },
        )
        return row

    def due(self, now: datetime, limit: int = 100) -> list[NotificationOutboxModel]:
        return list(
            self.session.execute(
                select(NotificationOutboxModel)
                .where(
                    NotificationOutboxModel.status == OutboxStatus.PENDING.value,
                    NotificationOutboxModel.next_attempt_at <= now,
                )
                .order_by(
                    NotificationOutboxModel.occurred_at,
                    NotificationOutboxModel.request_version,
                )
                .limit(limit)
            ).scalars().all()
        )

    def for_subject(self, subject_id: UUID) -> list[NotificationOutboxModel]:
        return list(
            self.session.execute(
                select(NotificationOutboxModel)
                .where(NotificationOutboxModel.subject_id == subject_id)
                .order_by(
                    NotificationOutboxModel.occurred_at,
                    NotificationOutboxModel.request_version,
                )
            ).scalars().all()
        )
