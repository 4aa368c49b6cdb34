"""
Draw Workflows (``commission_modules.draws.workflows``).

The draw gate is a two-state decision: a request is approved or denied
once.  Disbursement is not a state; it is a one-time stamp on an approved
draw.
"""

from commission_kernel.domain.workflow import Transition, Workflow
from commission_modules.draws.models import DrawStatus

DRAW_WORKFLOW = Workflow(
    name="draw_request",
    description="Commission advance approval gate",
    initial_state=DrawStatus.REQUESTED,
    states=(DrawStatus.REQUESTED, DrawStatus.APPROVED, DrawStatus.DENIED),
    terminal_states=(DrawStatus.DENIED,),
    transitions=(
        Transition(DrawStatus.REQUESTED, DrawStatus.APPROVED, action="approve"),
        Transition(DrawStatus.REQUESTED, DrawStatus.DENIED, action="deny"),
    ),
)
