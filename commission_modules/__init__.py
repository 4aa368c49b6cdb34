"""
Commission Modules.

Thin orchestration layers over the Commission Kernel and Engines.
Each module contains:
- Domain models (the nouns)
- ORM models (persistence)
- Workflows (state machines)
- A service that owns the transaction for every command

Modules:
- Commissions: submission, review, approval, payment, revision, denial
- Draws: advances against future commissions and the draw ledger
- Overrides: manager override awards over a rep's first approved commissions

Actual arithmetic lives in the engines; persistence primitives in the kernel.
"""

from commission_modules import (
    commissions,
    draws,
    overrides,
)

__all__ = [
    "commissions",
    "draws",
    "overrides",
]
