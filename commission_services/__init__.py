"""
Commission Services.

Cross-cutting services the modules call at their boundaries:

- authority: role -> capability checks before any state change
- notification_relay: post-commit delivery of outbox notifications
"""

from commission_services.authority import STAGE_REVIEW_CAPABILITY, Capability, RoleAuthority
from commission_services.notification_relay import (
    BackgroundNotificationRelay,
    LoggingDispatcher,
    NotificationDispatcher,
    NotificationRelay,
    RelayRunResult,
    backoff_delay,
)

__all__ = [
    "STAGE_REVIEW_CAPABILITY",
    "BackgroundNotificationRelay",
    "Capability",
    "LoggingDispatcher",
    "NotificationDispatcher",
    "NotificationRelay",
    "RelayRunResult",
    "RoleAuthority",
    "backoff_delay",
]
