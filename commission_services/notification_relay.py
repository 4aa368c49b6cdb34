"""
commission_services.notification_relay -- delivers outbox rows after commit.

Responsibility:
    Reads due rows from ``notification_outbox``, rebuilds each
    ``NotificationEvent`` and hands it to a ``NotificationDispatcher``.
    Success marks the row delivered; failure schedules a retry with
    exponential backoff, and a row that keeps failing is abandoned.

Architecture position:
    Services layer.  Runs in its own sessions, never inside a workflow
    transaction.  Each attempt is two short transactions: one claims the
    row (counts the attempt and leases it until its retry time), one
    records the outcome.  No transaction is open while the dispatcher
    runs, so a slow dispatcher never holds a lock a transition needs.
    ``BackgroundNotificationRelay`` is the ``after_commit`` hook the
    workflow services call.

Invariants:
    - A dispatcher failure never propagates; it is recorded on the row and
      logged.
    - Rows are attempted oldest first (occurred_at, request version).
    - delay(n) = min(base * 2 ** (n - 1), max) for the n-th failure.
    - After ``max_attempts`` failures the row is ``abandoned`` and never
      retried.

Failure modes:
    - Database errors while reading or updating a row roll back that row's
      transaction and re-raise out of ``dispatch_pending``; the background
      wrapper logs them.
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_config.schema import OutboxSettings
from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.events import NotificationEvent
from commission_kernel.logging_config import get_logger
from commission_kernel.models.outbox import NotificationOutboxModel, OutboxStatus
from commission_kernel.services.outbox_service import OutboxService

logger = get_logger("services.notification_relay")

_MAX_ERROR_LENGTH = 2000


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Delivers one event (email, chat, push).  Raise to signal failure."""

    def dispatch(self, event: NotificationEvent) -> None: ...


class LoggingDispatcher:
    """Dispatcher that only writes the event to the log."""

    def dispatch(self, event: NotificationEvent) -> None:
        logger.info(
            "notification_dispatched",
            extra={
                "event_type": event.event_type.value,
                "subject_id": str(event.subject_id),
                "actor_id": str(event.actor_id),
                "new_status": event.new_status,
                "amount": str(event.amount) if event.amount is not None else None,
            },
        )


def backoff_delay(attempts: int, policy: OutboxSettings) -> timedelta:
    """Wait before the next try after ``attempts`` failures."""
    if attempts < 1:
        return timedelta(0)
    seconds = min(policy.base_delay_seconds * 2 ** (attempts - 1), policy.max_delay_seconds)
    return timedelta(seconds=seconds)


@dataclass(frozen=True)
class RelayRunResult:
    """Counts for one relay pass."""

    delivered: int = 0
    retried: int = 0
    abandoned: int = 0
    skipped: int = 0

    @property
    def attempted(self) -> int:
        return self.delivered + self.retried + self.abandoned


class NotificationRelay:
    """
    One-pass outbox relay.

    Contract:
        ``dispatch_pending(now)`` attempts every row due at ``now`` (up to
        the batch size) and returns the counts.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: NotificationDispatcher,
        clock: Clock | None = None,
        policy: OutboxSettings | None = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()
        self._policy = policy or OutboxSettings()

    def _due_ids(self, now: datetime) -> list[UUID]:
        session = self._session_factory()
        try:
            rows = OutboxService(session).due(now, limit=self._policy.batch_size)
            ids = [row.id for row in rows]
            session.rollback()
            return ids
        finally:
            session.close()

    def dispatch_pending(self, now: datetime | None = None) -> RelayRunResult:
        now = now or self._clock.now()
        delivered = retried = abandoned = skipped = 0

        for outbox_id in self._due_ids(now):
            outcome = self._deliver_one(outbox_id, now)
            if outcome == OutboxStatus.DELIVERED:
                delivered += 1
            elif outcome == OutboxStatus.ABANDONED:
                abandoned += 1
            elif outcome == OutboxStatus.PENDING:
                retried += 1
            else:
                skipped += 1

        result = RelayRunResult(
            delivered=delivered, retried=retried, abandoned=abandoned, skipped=skipped,
        )
        if result.attempted or skipped:
            logger.info(
                "notification_relay_pass",
                extra={
                    "delivered": delivered,
                    "retried": retried,
                    "abandoned": abandoned,
                    "skipped": skipped,
                },
            )
        return result

    def _deliver_one(self, outbox_id: UUID, now: datetime) -> OutboxStatus | None:
        claim = self._claim(outbox_id, now)
        if claim is None:
            return None
        if isinstance(claim, OutboxStatus):
            return claim

        attempts, event = claim
        started = time.monotonic()
        try:
            self._dispatcher.dispatch(event)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"[:_MAX_ERROR_LENGTH]
        else:
            error = None
        duration_ms = int((time.monotonic() - started) * 1000)
        return self._record(outbox_id, attempts, now, error, duration_ms)

    def _claim(
        self, outbox_id: UUID, now: datetime,
    ) -> tuple[int, NotificationEvent] | OutboxStatus | None:
        """
        Take the row for one attempt and commit before dispatching.

        The attempt is counted and the row leased until its retry time, so
        a relay that dies mid-dispatch leaves a row that is retried later,
        and no lock is held while the dispatcher runs.
        """
        session = self._session_factory()
        try:
            row = session.execute(
                select(NotificationOutboxModel)
                .where(NotificationOutboxModel.id == outbox_id)
                .with_for_update(skip_locked=True)
            ).scalar_one_or_none()
            # Another relay took it, or it is not due any more.
            if (
                row is None
                or row.status != OutboxStatus.PENDING.value
                or row.next_attempt_at > now
            ):
                session.rollback()
                return None

            # A previous relay claimed the last attempt and never recorded it.
            if row.attempts >= self._policy.max_attempts:
                row.status = OutboxStatus.ABANDONED.value
                row.last_error = row.last_error or "delivery outcome never recorded"
                self._log_abandoned(row)
                session.commit()
                return OutboxStatus.ABANDONED

            row.attempts += 1
            row.next_attempt_at = now + backoff_delay(row.attempts, self._policy)
            claim = (row.attempts, NotificationEvent.from_payload(row.payload))
            session.commit()
            return claim
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _record(
        self,
        outbox_id: UUID,
        attempts: int,
        now: datetime,
        error: str | None,
        duration_ms: int,
    ) -> OutboxStatus | None:
        session = self._session_factory()
        try:
            row = session.get(NotificationOutboxModel, outbox_id, with_for_update=True)
            # Lease expired and another relay re-claimed the row meanwhile.
            if row is None or row.status != OutboxStatus.PENDING.value or row.attempts != attempts:
                session.rollback()
                logger.warning(
                    "notification_outcome_discarded",
                    extra={"outbox_id": str(outbox_id), "attempts": attempts, "error": error},
                )
                return None

            if error is None:
                row.status = OutboxStatus.DELIVERED.value
                row.delivered_at = now
                row.last_error = None
                logger.info(
                    "notification_delivered",
                    extra={
                        "outbox_id": str(row.id),
                        "event_type": row.event_type,
                        "subject_id": str(row.subject_id),
                        "attempts": row.attempts,
                        "duration_ms": duration_ms,
                    },
                )
            else:
                row.last_error = error
                if row.attempts >= self._policy.max_attempts:
                    row.status = OutboxStatus.ABANDONED.value
                    self._log_abandoned(row)
                else:
                    logger.warning(
                        "notification_delivery_failed",
                        extra={
                            "outbox_id": str(row.id),
                            "event_type": row.event_type,
                            "subject_id": str(row.subject_id),
                            "attempts": row.attempts,
                            "next_attempt_at": row.next_attempt_at.isoformat(),
                            "error": error,
                        },
                    )

            status = OutboxStatus(row.status)
            session.commit()
            return status
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _log_abandoned(row: NotificationOutboxModel) -> None:
        logger.error(
            "notification_abandoned",
            extra={
                "outbox_id": str(row.id),
                "event_type": row.event_type,
                "subject_id": str(row.subject_id),
                "attempts": row.attempts,
                "error": row.last_error,
            },
        )


class BackgroundNotificationRelay:
    """
    Runs relay passes on a worker thread.

    An instance is callable, so it can be passed as ``after_commit`` to the
    workflow services: each commit schedules a pass and returns at once.
    """

    def __init__(
        self,
        relay: NotificationRelay,
        executor: ThreadPoolExecutor | None = None,
    ):
        self._relay = relay
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="notification-relay",
        )

    def __call__(self) -> Future:
        return self.submit()

    def submit(self) -> Future:
        return self._executor.submit(self._run)

    def _run(self) -> RelayRunResult | None:
        try:
            return self._relay.dispatch_pending()
        except Exception:
            logger.exception("notification_relay_pass_failed")
            return None

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
