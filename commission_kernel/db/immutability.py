"""
ORM-level append-only enforcement.

===============================================================================
WHAT IT COVERS
===============================================================================

Several tables in the workflow are histories, not state:

Entity                  | Rule
------------------------|----------------------------------------------
CommissionStatusLog     | Never updated, never deleted (hash chained)
RevisionLog             | Never updated, never deleted
DrawLedgerEntry         | Never updated, never deleted (balance source)
OverrideLedgerEntry     | Never updated, never deleted (phase count source)
DeniedJobNumber         | Never updated, never deleted (job-number lock)

A model opts in by setting ``__append_only__ = True``.  One pair of mapper
listeners is attached to ``Base`` with ``propagate=True`` so every mapped
subclass is covered, including ones declared outside the kernel.

SQLAlchemy fires ``before_update`` / ``before_delete`` during flush, before
any SQL is sent:

    session.flush()
         |
         v
    [before_update] --> _check_append_only_update() --> ImmutabilityViolationError
    [before_delete] --> _check_append_only_delete() --> ImmutabilityViolationError

Core-level ``update()`` / ``delete()`` statements do not pass through the
ORM and are not intercepted.

===============================================================================
USAGE
===============================================================================

Called once at startup (``init_engine_from_url`` does it):

    from commission_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Tests that deliberately tamper with history unregister first:

    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event

from commission_kernel.db.base import Base
from commission_kernel.exceptions import ImmutabilityViolationError
from commission_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _is_append_only(target) -> bool:
    return bool(getattr(type(target), "__append_only__", False))


def _check_append_only_update(mapper, connection, target):
    if not _is_append_only(target):
        return
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Append-only records cannot be modified",
    )


def _check_append_only_delete(mapper, connection, target):
    if not _is_append_only(target):
        return
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Append-only records cannot be deleted",
    )


def register_immutability_listeners() -> None:
    """Attach the append-only listeners.  Safe to call more than once."""
    if not event.contains(Base, "before_update", _check_append_only_update):
        event.listen(Base, "before_update", _check_append_only_update, propagate=True)
    if not event.contains(Base, "before_delete", _check_append_only_delete):
        event.listen(Base, "before_delete", _check_append_only_delete, propagate=True)


def unregister_immutability_listeners() -> None:
    """
    Remove the append-only listeners.

    WARNING: tests only.
    """
    if event.contains(Base, "before_update", _check_append_only_update):
        event.remove(Base, "before_update", _check_append_only_update)
    if event.contains(Base, "before_delete", _check_append_only_delete):
        event.remove(Base, "before_delete", _check_append_only_delete)
