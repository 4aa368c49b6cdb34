"""
Typed Exception Hierarchy for the Commission Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure in the commission workflow is attributable to one request
attempt, and the caller (a form, a queue view, an API handler) has to react
differently to each kind: show field messages, send the user to get a
manager assigned, hide a button, or re-fetch and retry.  Matching on
message text is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way:
    try:
        service.create_request(actor, draft)
    except Exception as e:
        if "manager" in str(e):          # FRAGILE
            redirect_to_team_setup()

Example - RIGHT way:
    try:
        service.create_request(actor, draft)
    except ManagerRequiredError as e:    # Typed catch
        redirect_to_team_setup(e.submitter_id)
    except ValidationError as e:
        show_field_errors(e.issues)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CommissionKernelError (base)
    |
    +-- ValidationError
    |   +-- JobNumberLockedError
    |
    +-- PreconditionError
    |   +-- ManagerRequiredError
    |
    +-- AuthorizationError
    |   +-- CapabilityDeniedError
    |   +-- SelfApprovalError
    |   +-- NotSubmitterError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- TerminalStateError
    |   +-- ReasonRequiredError
    |   +-- ApprovedAmountNotesRequiredError
    |
    +-- ConcurrencyError
    |   +-- StaleStateError
    |
    +-- NotFoundError
    |   +-- CommissionRequestNotFoundError
    |   +-- DrawRequestNotFoundError
    |
    +-- DrawError
    |   +-- DrawLimitExceededError
    |   +-- DrawEstimateRequiredError
    |
    +-- AuditError
        +-- StatusLogChainBrokenError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Validation      | VALIDATION_FAILED             | Field-level input problems
                | JOB_NUMBER_LOCKED             | Job number belongs to a denied request
----------------|-------------------------------|---------------------------------------
Precondition    | MANAGER_REQUIRED              | Submitter has no manager assignment
----------------|-------------------------------|---------------------------------------
Authorization   | CAPABILITY_DENIED             | Role lacks the capability
                | SELF_APPROVAL_FORBIDDEN       | Actor reviewing their own request
                | NOT_SUBMITTER                 | Resubmit by someone else
----------------|-------------------------------|---------------------------------------
Workflow        | INVALID_TRANSITION            | Action not allowed from this state
                | TERMINAL_STATE                | Request is denied or paid
                | REASON_REQUIRED               | Revision/denial without a reason
                | APPROVED_AMOUNT_NOTES_REQUIRED| Changed amount without notes
----------------|-------------------------------|---------------------------------------
Concurrency     | STALE_STATE                   | Stored state moved on (retryable)
----------------|-------------------------------|---------------------------------------
Not found       | COMMISSION_REQUEST_NOT_FOUND  | Unknown request id
                | DRAW_REQUEST_NOT_FOUND        | Unknown draw id
----------------|-------------------------------|---------------------------------------
Draw            | DRAW_LIMIT_EXCEEDED           | Request over cap or max outstanding
                | DRAW_ESTIMATE_REQUIRED        | Large draw without commission estimate
----------------|-------------------------------|---------------------------------------
Audit           | STATUS_LOG_CHAIN_BROKEN       | Hash chain verification failed
                | IMMUTABILITY_VIOLATION        | UPDATE or DELETE of an append-only row

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION and AUTHORIZATION errors are raised before any write; the
   caller shows them and nothing needs undoing.

2. STALE STATE is retryable:

    except StaleStateError as e:
        fresh = selector.get(e.request_id)
        ask_user_to_review(fresh)

3. NOTIFICATION failures never surface here; the outbox relay logs them.

===============================================================================
"""

from decimal import Decimal

from commission_kernel.domain.values import ValidationIssue


class CommissionKernelError(Exception):
    """
    Base exception for all commission kernel errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COMMISSION_KERNEL_ERROR"


# Validation exceptions


class ValidationError(CommissionKernelError):
    """Client-correctable input problems, reported field by field."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, issues):
        # issues: sequence of ValidationIssue(field, message)
        self.issues = tuple(issues)
        messages = "; ".join(issue.message for issue in self.issues)
        super().__init__(f"Validation failed: {messages}")

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(issue.message for issue in self.issues)


class JobNumberLockedError(ValidationError):
    """The job number was used on a request that was denied."""

    code: str = "JOB_NUMBER_LOCKED"

    def __init__(self, job_number: str):
        self.job_number = job_number
        super().__init__([
            ValidationIssue(
                "job_number",
                f"Job number {job_number} was denied and cannot be resubmitted",
            )
        ])


# Precondition exceptions


class PreconditionError(CommissionKernelError):
    """Base exception for named, user-remediable preconditions."""

    code: str = "PRECONDITION_FAILED"


class ManagerRequiredError(PreconditionError):
    """Submitter has no resolvable manager (direct or team assignment)."""

    code: str = "MANAGER_REQUIRED"

    def __init__(self, submitter_id: str):
        self.submitter_id = submitter_id
        super().__init__(
            "MANAGER_REQUIRED: You must have a manager assigned before "
            "submitting commissions. Please contact your administrator."
        )


# Authorization exceptions


class AuthorizationError(CommissionKernelError):
    """Base exception for actors lacking the right to act."""

    code: str = "AUTHORIZATION_ERROR"


class CapabilityDeniedError(AuthorizationError):
    """Actor's role does not grant the capability the action needs."""

    code: str = "CAPABILITY_DENIED"

    def __init__(self, actor_id: str, role: str, capability: str):
        self.actor_id = actor_id
        self.role = role
        self.capability = capability
        super().__init__(
            f"Role '{role}' does not grant '{capability}' (actor {actor_id})"
        )


class SelfApprovalError(AuthorizationError):
    """Actor attempted to review a request or draw they submitted."""

    code: str = "SELF_APPROVAL_FORBIDDEN"

    def __init__(self, actor_id: str, entity_id: str):
        self.actor_id = actor_id
        self.entity_id = entity_id
        super().__init__(f"Actor {actor_id} cannot review their own request {entity_id}")


class NotSubmitterError(AuthorizationError):
    """Only the original submitter may perform this action."""

    code: str = "NOT_SUBMITTER"

    def __init__(self, actor_id: str, request_id: str):
        self.actor_id = actor_id
        self.request_id = request_id
        super().__init__("You can only edit your own submissions")


# Workflow exceptions


class WorkflowError(CommissionKernelError):
    """Base exception for state machine guard failures."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Action is not allowed from the request's current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, request_id: str, action: str, status: str, stage: str | None):
        self.request_id = request_id
        self.action = action
        self.status = status
        self.stage = stage
        super().__init__(
            f"Cannot {action} request {request_id} in state ({status}, {stage})"
        )


class TerminalStateError(WorkflowError):
    """Request is denied or paid; nothing may move it."""

    code: str = "TERMINAL_STATE"

    def __init__(self, request_id: str, status: str, action: str):
        self.request_id = request_id
        self.status = status
        self.action = action
        super().__init__(
            f"Request {request_id} is {status}; '{action}' is not permitted"
        )


class ReasonRequiredError(WorkflowError):
    """Revision and denial require a non-blank reason."""

    code: str = "REASON_REQUIRED"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"A reason is required to {action}")


class ApprovedAmountNotesRequiredError(WorkflowError):
    """Approved amount differs from the requested amount without notes."""

    code: str = "APPROVED_AMOUNT_NOTES_REQUIRED"

    def __init__(self, requested_amount: Decimal, approved_amount: Decimal):
        self.requested_amount = requested_amount
        self.approved_amount = approved_amount
        super().__init__("Notes are required when modifying the approved amount")


# Concurrency exceptions


class ConcurrencyError(CommissionKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleStateError(ConcurrencyError):
    """Stored state no longer matches what the actor observed."""

    code: str = "STALE_STATE"

    def __init__(self, entity_type: str, entity_id: str, expected_version: int | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{entity_type} {entity_id} was modified by another actor; "
            "re-fetch and retry"
        )


# Not-found exceptions


class NotFoundError(CommissionKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class CommissionRequestNotFoundError(NotFoundError):
    """Commission request with given ID was not found."""

    code: str = "COMMISSION_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Commission not found: {request_id}")


class DrawRequestNotFoundError(NotFoundError):
    """Draw request with given ID was not found."""

    code: str = "DRAW_REQUEST_NOT_FOUND"

    def __init__(self, draw_id: str):
        self.draw_id = draw_id
        super().__init__(f"Draw request not found: {draw_id}")


# Draw exceptions


class DrawError(CommissionKernelError):
    """Base exception for draw (advance) errors."""

    code: str = "DRAW_ERROR"


class DrawLimitExceededError(DrawError):
    """Draw would exceed the per-request cap or the outstanding maximum."""

    code: str = "DRAW_LIMIT_EXCEEDED"

    def __init__(self, requested_amount: Decimal, limit: Decimal, limit_name: str):
        self.requested_amount = requested_amount
        self.limit = limit
        self.limit_name = limit_name
        super().__init__(
            f"Draw of {requested_amount} exceeds {limit_name} ({limit})"
        )


class DrawEstimateRequiredError(DrawError):
    """Draws above the small-draw limit need a commission estimate."""

    code: str = "DRAW_ESTIMATE_REQUIRED"

    def __init__(self, requested_amount: Decimal, threshold: Decimal):
        self.requested_amount = requested_amount
        self.threshold = threshold
        super().__init__(
            f"Draws over {threshold} require an estimated commission"
        )


# Audit exceptions


class AuditError(CommissionKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class StatusLogChainBrokenError(AuditError):
    """Status-log hash chain validation failed."""

    code: str = "STATUS_LOG_CHAIN_BROKEN"

    def __init__(self, request_id: str, sequence: int, expected_hash: str, actual_hash: str):
        self.request_id = request_id
        self.sequence = sequence
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Status log chain broken for {request_id} at entry {sequence}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


class ImmutabilityViolationError(AuditError):
    """Attempt to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
