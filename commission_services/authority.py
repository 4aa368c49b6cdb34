"""
commission_services.authority -- role/capability enforcement at the workflow boundary.

Responsibility:
    Decide whether an actor, acting under one role, may perform an action.
    The role -> capability matrix comes from ``commission_config``; this
    module owns the capability vocabulary and the stage -> reviewer
    mapping.

Architecture position:
    Services layer.  Called by the commission and draw workflow services
    before any guard is evaluated or any row is written.

Invariants:
    - Authorization precedes mutation: a denied check raises before the
      caller touches the database.
    - The kernel stays actor-agnostic; callers supply the acting role.
    - A capability string not in ``Capability`` is a configuration error.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from commission_config.schema import CommissionSettings
from commission_kernel.domain.values import Actor, Role
from commission_kernel.exceptions import CapabilityDeniedError
from commission_kernel.logging_config import get_logger

logger = get_logger("services.authority")


class Capability(str, Enum):
    SUBMIT_COMMISSION = "submit_commission"
    MANAGER_APPROVE = "manager_approve"
    ACCOUNTING_APPROVE = "accounting_approve"
    ADMIN_APPROVE = "admin_approve"
    MARK_PAID = "mark_paid"
    REQUEST_DRAW = "request_draw"
    APPROVE_DRAW = "approve_draw"
    APPROVE_LARGE_DRAW = "approve_large_draw"
    DISBURSE_DRAW = "disburse_draw"


# approval_stage -> capability of the reviewer who acts at that stage
STAGE_REVIEW_CAPABILITY: dict[str, Capability] = {
    "pending_manager": Capability.MANAGER_APPROVE,
    "pending_accounting": Capability.ACCOUNTING_APPROVE,
    "pending_admin": Capability.ADMIN_APPROVE,
}


class RoleAuthority:
    """
    Role -> capability lookup built from settings.

    Contract:
        ``check`` returns ``(allowed, reason)`` in the same shape as the
        other boundary checks; ``require`` raises CapabilityDeniedError.
    """

    def __init__(self, role_capabilities: Mapping[str, frozenset[Capability]]):
        self._role_capabilities = dict(role_capabilities)

    @classmethod
    def from_settings(cls, settings: CommissionSettings) -> RoleAuthority:
        matrix: dict[str, frozenset[Capability]] = {}
        for role, names in settings.role_capabilities:
            try:
                matrix[role] = frozenset(Capability(name) for name in names)
            except ValueError as exc:
                raise ValueError(f"Unknown capability for role '{role}': {exc}") from exc
        return cls(matrix)

    def capabilities(self, role: Role | str) -> frozenset[Capability]:
        return self._role_capabilities.get(Role(role).value, frozenset())

    def check(self, actor: Actor, capability: Capability) -> tuple[bool, str]:
        if capability in self.capabilities(actor.role):
            return (True, "")
        return (False, f"role '{actor.role.value}' lacks capability '{capability.value}'")

    def require(self, actor: Actor, capability: Capability) -> None:
        allowed, reason = self.check(actor, capability)
        if allowed:
            return
        logger.warning(
            "capability_denied",
            extra={
                "actor_id": str(actor.actor_id),
                "role": actor.role.value,
                "capability": capability.value,
                "reason": reason,
            },
        )
        raise CapabilityDeniedError(str(actor.actor_id), actor.role.value, capability.value)

    def require_stage_reviewer(self, actor: Actor, approval_stage: str | None) -> Capability:
        """The actor must hold the reviewer capability for ``approval_stage``."""
        capability = STAGE_REVIEW_CAPABILITY.get(approval_stage or "")
        if capability is None:
            raise ValueError(f"No reviewer is defined for stage '{approval_stage}'")
        self.require(actor, capability)
        return capability
