"""
Module: commission_kernel.models.status_log
Responsibility: ORM persistence for the per-request, hash-chained status log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE through the ORM (``__append_only__``).
    - (request_id, sequence) is unique, so two writers cannot both append
      entry N for the same request.
    - entry_hash = H(request_id | sequence | new_status | payload_hash |
      prev_hash).  Validated by StatusLogService.verify_chain.

Failure modes:
    - IntegrityError on a duplicate (request_id, sequence).
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.

Audit relevance:
    This table is the compliance trail for every commission: who moved it,
    from which state, to which state, when, and with what note.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commission_kernel.db.base import Base, UTCDateTime, UUIDString


class CommissionStatusLogModel(Base):
    """
    One status change of one commission request.

    Contract:
        Rows are written by StatusLogService in the same transaction as the
        transition they describe.  The first entry of a request has
        ``previous_status`` None and ``prev_hash`` None.

    Non-goals:
        - The model does not check hash correctness at INSERT time.
    """

    __tablename__ = "commission_status_log"
    __append_only__ = True

    __table_args__ = (
        UniqueConstraint("request_id", "sequence", name="uq_status_log_request_sequence"),
        Index("idx_status_log_request", "request_id"),
        Index("idx_status_log_occurred", "occurred_at"),
    )

    request_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # 1-based position within the request's history
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    previous_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    new_status: Mapped[str] = mapped_column(String(50), nullable=False)
    previous_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    new_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)

    changed_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entry_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<CommissionStatusLog {self.request_id}#{self.sequence} "
            f"{self.previous_status}->{self.new_status}>"
        )

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
