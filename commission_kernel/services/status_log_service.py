"""
StatusLogService -- append-only, hash-chained status history.

Responsibility:
    Records one status-log entry per commission transition and verifies
    that a request's stored history has not been altered since it was
    written.

Architecture position:
    Kernel > Services.  Called by the commission workflow service inside
    its transaction.  Never commits.

Invariants enforced:
    - One entry per applied transition, written in the same transaction.
    - Entries for a request are numbered 1..N with no gaps; the unique
      (request_id, sequence) constraint turns a concurrent double append
      into an IntegrityError instead of a fork in the chain.
    - entry_hash = H(request_id | sequence | new_status | payload_hash |
      prev_hash), where prev_hash is the previous entry's entry_hash.
      Timestamps are carried in the payload, so editing one breaks the
      payload hash.

Failure modes:
    - StatusLogChainBrokenError from verify_chain() on any mismatch.
    - IntegrityError on a concurrent append with the same sequence.

Audit relevance:
    ``export_rows`` is the compliance export: previous status, new status,
    who changed it, notes and timestamp for every step of the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select

from commission_kernel.exceptions import StatusLogChainBrokenError
from commission_kernel.logging_config import get_logger
from commission_kernel.models.status_log import CommissionStatusLogModel
from commission_kernel.services.base import BaseService
from commission_kernel.utils.hashing import (
    hash_payload,
    hash_status_log_entry,
    to_json_safe,
)

logger = get_logger("services.status_log")


@dataclass(frozen=True)
class StatusLogEntry:
    """Read-side view of one status-log row."""

    request_id: UUID
    sequence: int
    previous_status: str | None
    new_status: str
    previous_stage: str | None
    new_stage: str | None
    changed_by: UUID
    notes: str | None
    occurred_at: datetime
    entry_hash: str

    @classmethod
    def from_model(cls, row: CommissionStatusLogModel) -> StatusLogEntry:
        return cls(
            request_id=row.request_id,
            sequence=row.sequence,
            previous_status=row.previous_status,
            new_status=row.new_status,
            previous_stage=row.previous_stage,
            new_stage=row.new_stage,
            changed_by=row.changed_by,
            notes=row.notes,
            occurred_at=row.occurred_at,
            entry_hash=row.entry_hash,
        )


class StatusLogService(BaseService):
    """
    Append and verify per-request status history.

    Guarantees:
        - ``append`` flushes the new row so the unique constraint is
          checked inside the caller's transaction.
    """

    def _last_entry(self, request_id: UUID) -> CommissionStatusLogModel | None:
        return self.session.execute(
            select(CommissionStatusLogModel)
            .where(CommissionStatusLogModel.request_id == request_id)
            .order_by(CommissionStatusLogModel.sequence.desc())
            .limit(1)
        ).scalar_one_or_none()

    def append(
        self,
        *,
        request_id: UUID,
        previous_status: str | None,
        new_status: str,
        previous_stage: str | None,
        new_stage: str | None,
        changed_by: UUID,
        occurred_at: datetime,
        notes: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> CommissionStatusLogModel:
        """Append the next entry of ``request_id``'s chain."""
        occurred_at = occurred_at.astimezone(timezone.utc)
        last = self._last_entry(request_id)
        sequence = (last.sequence + 1) if last is not None else 1
        prev_hash = last.entry_hash if last is not None else None

        payload = to_json_safe({
            "previous_status": previous_status,
            "new_status": new_status,
            "previous_stage": previous_stage,
            "new_stage": new_stage,
            "changed_by": changed_by,
            "notes": notes,
            "occurred_at": occurred_at,
            **(extra or {}),
        })
        payload_hash = hash_payload(payload)
        entry_hash = hash_status_log_entry(
            request_id=str(request_id),
            sequence=sequence,
            new_status=new_status,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        row = CommissionStatusLogModel(
            request_id=request_id,
            sequence=sequence,
            previous_status=previous_status,
            new_status=new_status,
            previous_stage=previous_stage,
            new_stage=new_stage,
            changed_by=changed_by,
            notes=notes,
            occurred_at=occurred_at,
            payload=payload,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            entry_hash=entry_hash,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "status_log_appended",
            extra={
                "request_id": str(request_id),
                "sequence": sequence,
                "previous_status": previous_status,
                "new_status": new_status,
            },
        )
        return row

    def history(self, request_id: UUID) -> list[StatusLogEntry]:
        """Entries of one request, oldest first."""
        rows = self.session.execute(
            select(CommissionStatusLogModel)
            .where(CommissionStatusLogModel.request_id == request_id)
            .order_by(CommissionStatusLogModel.sequence)
        ).scalars().all()
        return [StatusLogEntry.from_model(row) for row in rows]

    def export_rows(self, request_id: UUID) -> list[dict[str, Any]]:
        """Compliance export rows, oldest first."""
        return [
            {
                "previous_status": entry.previous_status,
                "new_status": entry.new_status,
                "changed_by": str(entry.changed_by),
                "notes": entry.notes,
                "timestamp": entry.occurred_at.isoformat(),
            }
            for entry in self.history(request_id)
        ]

    def verify_chain(self, request_id: UUID) -> bool:
        """
        Recompute every hash of one request's history.

        Raises:
            StatusLogChainBrokenError: at the first entry whose payload hash,
                entry hash, link to its predecessor, or sequence number does
                not match.
        """
        rows = self.session.execute(
            select(CommissionStatusLogModel)
            .where(CommissionStatusLogModel.request_id == request_id)
            .order_by(CommissionStatusLogModel.sequence)
        ).scalars().all()

        expected_prev: str | None = None
        for position, row in enumerate(rows, start=1):
            if row.sequence != position:
                self._broken(request_id, row.sequence, str(position), str(row.sequence))

            if row.prev_hash != expected_prev:
                self._broken(request_id, row.sequence, expected_prev or "None", row.prev_hash or "None")

            recomputed_payload_hash = hash_payload(row.payload or {})
            if recomputed_payload_hash != row.payload_hash:
                self._broken(request_id, row.sequence, recomputed_payload_hash, row.payload_hash)

            stored_payload = row.payload or {}
            if (
                stored_payload.get("new_status") != row.new_status
                or stored_payload.get("notes") != row.notes
                or stored_payload.get("changed_by") != str(row.changed_by)
                or stored_payload.get("occurred_at") != row.occurred_at.isoformat()
            ):
                self._broken(request_id, row.sequence, row.payload_hash, "column/payload mismatch")

            recomputed = hash_status_log_entry(
                request_id=str(row.request_id),
                sequence=row.sequence,
                new_status=row.new_status,
                payload_hash=row.payload_hash,
                prev_hash=row.prev_hash,
            )
            if recomputed != row.entry_hash:
                self._broken(request_id, row.sequence, recomputed, row.entry_hash)

            expected_prev = row.entry_hash

        logger.info(
            "status_log_chain_valid",
            extra={"request_id": str(request_id), "entry_count": len(rows)},
        )
        return True

    @staticmethod
    def _broken(request_id: UUID, sequence: int, expected: str, actual: str) -> None:
        logger.critical(
            "status_log_chain_broken",
            extra={
                "request_id": str(request_id),
                "sequence": sequence,
                "expected": expected,
                "actual": actual,
            },
        )
        raise StatusLogChainBrokenError(str(request_id), sequence, expected, actual)
