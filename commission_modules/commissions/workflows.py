"""
Commission Workflows (``commission_modules.commissions.workflows``).

Responsibility
--------------
Declares the approval state machine over the composite state
``(status, approval_stage)``.  Guards name the conditions the service
evaluates before a transition is selected; the service owns authorization
and the conditional write.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports Guard,
Transition, Workflow from ``commission_kernel.domain.workflow``.

Invariants enforced
-------------------
* ``completed`` is reached only from ``pending_accounting`` or
  ``pending_admin``, which are reached only from ``pending_manager``.
* ``pending_admin`` is reached only when the submitter acted as a manager.
* Every revision lands on ``(revision_required, pending_manager)``.
* ``denied`` and ``paid`` are terminal: no transition leaves them.
"""

from commission_kernel.domain.workflow import Guard, Transition, Workflow
from commission_kernel.logging_config import get_logger
from commission_modules.commissions.models import ApprovalStage, CommissionStatus

logger = get_logger("modules.commissions.workflows")

S = CommissionStatus
A = ApprovalStage

# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

MANAGER_SUBMISSION = Guard(
    name="manager_submission",
    description="Submitter acted as a manager; final review goes to admin",
)

REP_SUBMISSION = Guard(
    name="rep_submission",
    description="Submitter is not a manager; final review goes to accounting",
)

# -----------------------------------------------------------------------------
# States
# -----------------------------------------------------------------------------

PENDING_MANAGER = (S.PENDING_REVIEW, A.PENDING_MANAGER)
PENDING_ACCOUNTING = (S.PENDING_REVIEW, A.PENDING_ACCOUNTING)
PENDING_ADMIN = (S.PENDING_REVIEW, A.PENDING_ADMIN)
APPROVED = (S.APPROVED, A.COMPLETED)
PAID = (S.PAID, A.COMPLETED)
REVISION_REQUIRED = (S.REVISION_REQUIRED, A.PENDING_MANAGER)
DENIED_AT_MANAGER = (S.DENIED, A.PENDING_MANAGER)
DENIED_AT_ACCOUNTING = (S.DENIED, A.PENDING_ACCOUNTING)
DENIED_AT_ADMIN = (S.DENIED, A.PENDING_ADMIN)

REVIEW_STATES = (PENDING_MANAGER, PENDING_ACCOUNTING, PENDING_ADMIN)
TERMINAL_STATES = (PAID, DENIED_AT_MANAGER, DENIED_AT_ACCOUNTING, DENIED_AT_ADMIN)
TERMINAL_STATUSES = frozenset({S.DENIED, S.PAID})

_DENIED_BY_STAGE = {
    PENDING_MANAGER: DENIED_AT_MANAGER,
    PENDING_ACCOUNTING: DENIED_AT_ACCOUNTING,
    PENDING_ADMIN: DENIED_AT_ADMIN,
}

# -----------------------------------------------------------------------------
# Workflow
# -----------------------------------------------------------------------------

COMMISSION_WORKFLOW = Workflow(
    name="commission_request",
    description="Commission request review, approval and payment",
    initial_state=PENDING_MANAGER,
    states=(
        PENDING_MANAGER,
        PENDING_ACCOUNTING,
        PENDING_ADMIN,
        APPROVED,
        PAID,
        REVISION_REQUIRED,
        DENIED_AT_MANAGER,
        DENIED_AT_ACCOUNTING,
        DENIED_AT_ADMIN,
    ),
    terminal_states=TERMINAL_STATES,
    transitions=(
        Transition(PENDING_MANAGER, PENDING_ACCOUNTING, action="manager_approve", guard=REP_SUBMISSION),
        Transition(PENDING_MANAGER, PENDING_ADMIN, action="manager_approve", guard=MANAGER_SUBMISSION),
        Transition(PENDING_ACCOUNTING, APPROVED, action="final_approve"),
        Transition(PENDING_ADMIN, APPROVED, action="final_approve"),
        Transition(APPROVED, PAID, action="mark_paid"),
        *(
            Transition(stage, REVISION_REQUIRED, action="request_revision")
            for stage in REVIEW_STATES
        ),
        *(
            Transition(stage, _DENIED_BY_STAGE[stage], action="deny")
            for stage in REVIEW_STATES
        ),
        Transition(REVISION_REQUIRED, PENDING_MANAGER, action="resubmit"),
    ),
)

# action -> every composite state it may start from
TRANSITIONS: dict[str, frozenset] = {
    action: frozenset(
        t.from_state for t in COMMISSION_WORKFLOW.transitions if t.action == action
    )
    for action in sorted(COMMISSION_WORKFLOW.actions)
}

logger.info(
    "commission_workflow_registered",
    extra={
        "workflow": COMMISSION_WORKFLOW.name,
        "state_count": len(COMMISSION_WORKFLOW.states),
        "transition_count": len(COMMISSION_WORKFLOW.transitions),
    },
)
