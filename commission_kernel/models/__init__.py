"""Kernel-owned ORM models: the status log and the notification outbox."""

from commission_kernel.models.outbox import NotificationOutboxModel, OutboxStatus
from commission_kernel.models.status_log import CommissionStatusLogModel

__all__ = [
    "CommissionStatusLogModel",
    "NotificationOutboxModel",
    "OutboxStatus",
]
