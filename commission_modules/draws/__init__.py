"""Draws: commission advances, their approval gate, and the draw ledger."""

from commission_modules.draws.models import DrawLedgerEntry, DrawRequest, DrawStatus, DrawSummary
from commission_modules.draws.service import DrawService
from commission_modules.draws.workflows import DRAW_WORKFLOW

__all__ = [
    "DRAW_WORKFLOW",
    "DrawLedgerEntry",
    "DrawRequest",
    "DrawService",
    "DrawStatus",
    "DrawSummary",
]
