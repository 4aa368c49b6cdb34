"""
Value objects shared by every layer of the commission workflow.

Responsibility:
    The actor fact supplied by the identity provider, the closed set of
    roles the workflow understands, and the field-level validation issue
    reported back to submitters.

Architecture position:
    Kernel > Domain -- pure values, zero I/O.  Imported by engines,
    modules, and services alike.

Invariants enforced:
    - Actor identity is trusted as given; no authentication happens here.
    - Role values are the fixed vocabulary of the identity provider.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Roles supplied by the identity/role provider."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ACCOUNTING = "accounting"
    ADMIN = "admin"
    SALES_REP = "sales_rep"
    SALES_MANAGER = "sales_manager"


@dataclass(frozen=True)
class Actor:
    """The current actor and the role they act under."""

    actor_id: UUID
    role: Role

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))


@dataclass(frozen=True)
class ValidationIssue:
    """One field-level problem with submitted input."""

    field: str
    message: str
