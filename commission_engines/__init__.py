"""
Module: commission_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    higher layers (commission_modules, commission_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import commission_kernel value types, exceptions and the
    Decimal helpers in ``commission_kernel.domain.money`` (plus sibling engine
    modules).  MUST NOT import commission_modules or commission_services.

Invariants enforced:
    - Purity: engines never read the clock.  Instants and dates are passed
      in by the caller.
    - Decimal-only arithmetic: floats are rejected at every entry point.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - ValueError / TypeError propagated from individual engines on invalid
      input.

Audit relevance:
    The two calculators are traced via ``@traced_engine`` (see
    ``commission_engines.tracer``), emitting COMMISSION_ENGINE_TRACE log
    records carrying engine name, version and an input fingerprint.

Usage:
    from commission_engines import DocumentInputs, calculate_document
    from commission_engines import scheduled_pay_date
    from commission_engines import evaluate_draw_request, compute_override
"""

from commission_kernel.logging_config import get_logger

logger = get_logger("engines")

from commission_engines.calculation import (
    MAX_EXPENSE_LINES,
    DocumentFinancials,
    DocumentInputs,
    SubmitterKind,
    WorksheetFinancials,
    WorksheetInputs,
    WorksheetKind,
    calculate_document,
    calculate_worksheet,
    company_profit,
    contract_net,
    gross_commission,
    net_commission_owed,
    net_profit,
    op_amount,
    payable_amount,
    rep_commission,
    total_job_revenue,
)
from commission_engines.draws import (
    DrawBalance,
    DrawDecision,
    DrawLedgerEntryType,
    DrawLedgerLine,
    DrawLimits,
    draw_balance,
    evaluate_draw_request,
    repayment_amount,
    summarize_ledger,
)
from commission_engines.formatting import (
    format_currency,
    format_pay_date,
    format_pay_date_short,
    format_percent,
    format_tier_percent,
    parse_currency_input,
)
from commission_engines.overrides import (
    OverrideAward,
    OverridePhaseStatus,
    OverridePolicy,
    compute_override,
    override_phase,
)
from commission_engines.pay_run import (
    DEFAULT_CUTOFF,
    PayRunCutoff,
    is_before_cutoff,
    parse_pay_date_string,
    scheduled_pay_date,
    scheduled_pay_date_string,
    scheduled_pay_datetime,
)
from commission_engines.profit_split import (
    CommissionTier,
    ProfitSplit,
    filter_op_percent_options,
    generate_profit_split_options,
    make_label,
    parse_profit_split_label,
    resolve_rep_percent,
    split_for_tier,
)
from commission_engines.tracer import compute_input_fingerprint, traced_engine
from commission_engines.validation import (
    ValidationResult,
    validate_document_fields,
    validate_job_number,
    validate_worksheet_fields,
)

__all__ = [
    "MAX_EXPENSE_LINES",
    "DocumentFinancials",
    "DocumentInputs",
    "SubmitterKind",
    "WorksheetFinancials",
    "WorksheetInputs",
    "WorksheetKind",
    "calculate_document",
    "calculate_worksheet",
    "company_profit",
    "contract_net",
    "gross_commission",
    "net_commission_owed",
    "net_profit",
    "op_amount",
    "payable_amount",
    "rep_commission",
    "total_job_revenue",
    "DrawBalance",
    "DrawDecision",
    "DrawLedgerEntryType",
    "DrawLedgerLine",
    "DrawLimits",
    "draw_balance",
    "evaluate_draw_request",
    "repayment_amount",
    "summarize_ledger",
    "format_currency",
    "format_pay_date",
    "format_pay_date_short",
    "format_percent",
    "format_tier_percent",
    "parse_currency_input",
    "OverrideAward",
    "OverridePhaseStatus",
    "OverridePolicy",
    "compute_override",
    "override_phase",
    "DEFAULT_CUTOFF",
    "PayRunCutoff",
    "is_before_cutoff",
    "parse_pay_date_string",
    "scheduled_pay_date",
    "scheduled_pay_date_string",
    "scheduled_pay_datetime",
    "CommissionTier",
    "ProfitSplit",
    "filter_op_percent_options",
    "generate_profit_split_options",
    "make_label",
    "parse_profit_split_label",
    "resolve_rep_percent",
    "split_for_tier",
    "compute_input_fingerprint",
    "traced_engine",
    "ValidationResult",
    "validate_document_fields",
    "validate_job_number",
    "validate_worksheet_fields",
]
