"""Override ledger: manager override awards for a rep's first approved commissions."""

from commission_modules.overrides.models import OverrideLedgerEntry, OverrideTotals
from commission_modules.overrides.service import OverrideService

__all__ = [
    "OverrideLedgerEntry",
    "OverrideService",
    "OverrideTotals",
]
