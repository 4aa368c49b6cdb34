"""Kernel services: flush-only writers used inside workflow transactions."""

from commission_kernel.services.base import BaseService
from commission_kernel.services.outbox_service import OutboxService
from commission_kernel.services.status_log_service import (
    StatusLogEntry,
    StatusLogService,
)

__all__ = [
    "BaseService",
    "OutboxService",
    "StatusLogEntry",
    "StatusLogService",
]
