"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session-handling contract for services that
    write inside a caller's transaction.  They use ``session.flush()``,
    never ``session.commit()``.

Architecture position:
    Kernel > Services.  StatusLogService and OutboxService extend this; the
    module-level workflow services own commit/rollback and call into them.

Invariants enforced:
    - Transaction boundaries belong to the caller.  A status-log row and an
      outbox row commit or roll back together with the transition that
      produced them.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for flush-only kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-only query methods; those live in
          selectors.
    """

    def __init__(self, session: Session):
        self.session = session
