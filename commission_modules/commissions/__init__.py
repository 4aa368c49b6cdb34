"""Commissions: request submission and the approval state machine."""

from commission_modules.commissions.models import (
    ApprovalStage,
    CommissionDraft,
    CommissionRequest,
    CommissionStatus,
    RepRole,
    RevisionRecord,
    TransitionResult,
)
from commission_modules.commissions.selector import CommissionSelector
from commission_modules.commissions.service import (
    CommissionWorkflowService,
    ManagerAssignmentLookup,
    StaticManagerAssignments,
)
from commission_modules.commissions.workflows import COMMISSION_WORKFLOW, TRANSITIONS

__all__ = [
    "COMMISSION_WORKFLOW",
    "TRANSITIONS",
    "ApprovalStage",
    "CommissionDraft",
    "CommissionRequest",
    "CommissionSelector",
    "CommissionStatus",
    "CommissionWorkflowService",
    "ManagerAssignmentLookup",
    "RepRole",
    "RevisionRecord",
    "StaticManagerAssignments",
    "TransitionResult",
]
