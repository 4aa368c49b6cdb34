"""Pure domain values, workflow definitions, events and the injectable clock."""

from commission_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
)
from commission_kernel.domain.events import NotificationEvent, NotificationType
from commission_kernel.domain.values import Actor, Role, ValidationIssue
from commission_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Actor",
    "Clock",
    "DeterministicClock",
    "Guard",
    "NotificationEvent",
    "NotificationType",
    "Role",
    "SystemClock",
    "Transition",
    "ValidationIssue",
    "Workflow",
]
