"""
Shared helpers for module transition flows.

Used by commission_modules/*/service.py for the conditional write every
state change goes through and for the post-commit notification hook.

Architecture: Modules layer. Imports only from commission_kernel.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from commission_kernel.exceptions import StaleStateError
from commission_kernel.logging_config import get_logger

logger = get_logger("modules.transition_helpers")

AfterCommitHook = Callable[[], None]


def compare_and_swap(
    session: Session,
    model: type,
    entity_type: str,
    entity_id: UUID,
    *,
    expected: Mapping[str, Any],
    values: Mapping[str, Any],
) -> None:
    """UPDATE ``model`` row ``entity_id`` only if every ``expected`` column still holds.

    Raises:
        StaleStateError: zero rows matched; someone else moved the row.
    """
    conditions = [model.id == entity_id]
    for column, value in expected.items():
        attr = getattr(model, column)
        conditions.append(attr.is_(None) if value is None else attr == value)
    stmt = (
        update(model)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        logger.warning(
            "stale_state_detected",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "expected": {k: str(v) for k, v in expected.items()},
            },
        )
        raise StaleStateError(entity_type, str(entity_id), expected.get("version"))


def run_after_commit(hook: AfterCommitHook | None) -> None:
    """Invoke a post-commit hook; its failure is logged, never raised.

    The transition is already committed, so nothing the hook does may be
    reported to the actor as a failure of that transition.
    """
    if hook is None:
        return
    try:
        hook()
    except Exception:
        logger.exception("after_commit_hook_failed")


def version_mismatch(
    entity_type: str,
    entity_id: UUID,
    expected_version: int,
    actual_version: int,
) -> StaleStateError:
    """The error for an actor acting on a version that is no longer current."""
    logger.warning(
        "stale_state_detected",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "expected_version": expected_version,
            "actual_version": actual_version,
        },
    )
    return StaleStateError(entity_type, str(entity_id), expected_version)
