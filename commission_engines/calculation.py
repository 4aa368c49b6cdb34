"""
Module: commission_engines.calculation
Responsibility:
    Turn raw job financials into the derived amounts on a commission
    request.  Two worksheet models share one lifecycle:

    * Document (O&P) worksheet -- gross contract, overhead-and-profit,
      direct costs and expense lines, split between rep and company.
    * Submission worksheet -- contract plus approved supplements times a
      commission rate (or a flat fee for subcontractors), less advances.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import commission_kernel domain values and money helpers.

Invariants enforced:
    - Decimal-only arithmetic; floats are rejected at construction.
    - Every derived monetary value is rounded to cents once, where it is
      produced, and later values are computed from the rounded ones.  Hence
      for every input:
          op_amount + contract_total_net == gross_contract_total
          rep_commission + company_profit == op_amount + net_profit
      hold exactly, including when net profit is negative.
    - No function reads or writes workflow state.

Failure modes:
    - TypeError when a float is passed for a monetary field.
    - ValueError when more than four expense lines are given on one side.

Audit relevance:
    These numbers are printed on compliance documents that reps sign.
    ``calculate_document`` and ``calculate_worksheet`` are traced so any
    stored amount can be tied to its inputs.

Usage:
    from commission_engines.calculation import DocumentInputs, calculate_document

    result = calculate_document(inputs=DocumentInputs(
        gross_contract_total=Decimal("25000"),
        op_percent=Decimal("0.15"),
        material_cost=Decimal("5000"),
        labor_cost=Decimal("4000"),
        negative_expenses=(Decimal("500"), Decimal("300"), Decimal("0"), Decimal("200")),
        positive_expenses=(Decimal("100"),),
        rep_profit_percent=Decimal("0.40"),
    ))
    result.rep_commission  # Decimal("4540.00")
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
from typing import Iterable

from commission_engines.tracer import traced_engine
from commission_kernel.domain.money import ZERO, round_money, to_decimal
from commission_kernel.logging_config import get_logger

logger = get_logger("engines.calculation")

MAX_EXPENSE_LINES = 4
HUNDRED = Decimal("100")


class WorksheetKind(str, Enum):
    """Which worksheet model a commission request carries."""

    SUBMISSION = "submission"
    DOCUMENT = "document"


class SubmitterKind(str, Enum):
    """Who the commission is paid to."""

    EMPLOYEE = "employee"
    SUBCONTRACTOR = "subcontractor"


def _coerce_lines(lines: Iterable[Decimal | int | str], side: str) -> tuple[Decimal, ...]:
    coerced = tuple(to_decimal(v) for v in lines)
    if len(coerced) > MAX_EXPENSE_LINES:
        raise ValueError(
            f"At most {MAX_EXPENSE_LINES} {side} expense lines are allowed, got {len(coerced)}"
        )
    return coerced


# ---------------------------------------------------------------------------
# Document (O&P) worksheet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentInputs:
    """
    Financial inputs of the O&P document worksheet.

    Guarantees:
        - All amounts are Decimal.
        - At most four negative and four positive expense lines.
    """

    gross_contract_total: Decimal
    op_percent: Decimal
    material_cost: Decimal = ZERO
    labor_cost: Decimal = ZERO
    negative_expenses: tuple[Decimal, ...] = ()
    positive_expenses: tuple[Decimal, ...] = ()
    rep_profit_percent: Decimal = ZERO

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "negative_expenses":
                object.__setattr__(self, f.name, _coerce_lines(value, "negative"))
            elif f.name == "positive_expenses":
                object.__setattr__(self, f.name, _coerce_lines(value, "positive"))
            else:
                object.__setattr__(self, f.name, to_decimal(value))


@dataclass(frozen=True)
class DocumentFinancials:
    """Derived amounts of the document worksheet."""

    op_amount: Decimal
    contract_total_net: Decimal
    net_profit: Decimal
    rep_commission: Decimal
    company_profit: Decimal


def op_amount(gross: Decimal, op_percent: Decimal) -> Decimal:
    """O&P amount = gross x O&P percent."""
    return round_money(to_decimal(gross) * to_decimal(op_percent))


def contract_net(gross: Decimal, op_percent: Decimal) -> Decimal:
    """Contract total (net) = gross - O&P amount."""
    return to_decimal(gross) - op_amount(gross, op_percent)


def net_profit(
    contract_total_net: Decimal,
    material_cost: Decimal,
    labor_cost: Decimal,
    negative_expenses: Iterable[Decimal] = (),
    positive_expenses: Iterable[Decimal] = (),
) -> Decimal:
    """Net profit = contract net - material - labor - sum(neg) + sum(pos).

    May be negative; a negative value is valid and propagates.
    """
    neg = _coerce_lines(negative_expenses, "negative")
    pos = _coerce_lines(positive_expenses, "positive")
    return (
        to_decimal(contract_total_net)
        - to_decimal(material_cost)
        - to_decimal(labor_cost)
        - sum(neg, ZERO)
        + sum(pos, ZERO)
    )


def rep_commission(net_profit_amount: Decimal, rep_percent: Decimal) -> Decimal:
    """Rep commission = net profit x rep percent (sign follows net profit)."""
    return round_money(to_decimal(net_profit_amount) * to_decimal(rep_percent))


def company_profit(
    op_amount_value: Decimal,
    net_profit_amount: Decimal,
    rep_commission_amount: Decimal,
) -> Decimal:
    """Company profit = O&P amount + (net profit - rep commission)."""
    return to_decimal(op_amount_value) + (
        to_decimal(net_profit_amount) - to_decimal(rep_commission_amount)
    )


@traced_engine("document_worksheet", "1.0", fingerprint_fields=("inputs",))
def calculate_document(*, inputs: DocumentInputs) -> DocumentFinancials:
    """Compute every derived field of the document worksheet."""
    op = op_amount(inputs.gross_contract_total, inputs.op_percent)
    net_contract = inputs.gross_contract_total - op
    profit = net_profit(
        net_contract,
        inputs.material_cost,
        inputs.labor_cost,
        inputs.negative_expenses,
        inputs.positive_expenses,
    )
    rep = rep_commission(profit, inputs.rep_profit_percent)
    company = company_profit(op, profit, rep)
    return DocumentFinancials(
        op_amount=op,
        contract_total_net=net_contract,
        net_profit=profit,
        rep_commission=rep,
        company_profit=company,
    )


# ---------------------------------------------------------------------------
# Submission worksheet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorksheetInputs:
    """
    Financial inputs of the submission worksheet.

    ``commission_percent`` is a whole-number percentage (15 means 15%).
    ``flat_fee_amount`` is only read when ``is_flat_fee`` is set.
    """

    contract_amount: Decimal
    supplements_approved: Decimal = ZERO
    commission_percent: Decimal = ZERO
    advances_paid: Decimal = ZERO
    is_flat_fee: bool = False
    flat_fee_amount: Decimal | None = None

    def __post_init__(self) -> None:
        for name in ("contract_amount", "supplements_approved", "commission_percent", "advances_paid"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        if self.flat_fee_amount is not None:
            object.__setattr__(self, "flat_fee_amount", to_decimal(self.flat_fee_amount))


@dataclass(frozen=True)
class WorksheetFinancials:
    """Derived amounts of the submission worksheet."""

    total_job_revenue: Decimal
    gross_commission: Decimal
    net_commission_owed: Decimal


def total_job_revenue(contract_amount: Decimal, supplements_approved: Decimal) -> Decimal:
    return to_decimal(contract_amount) + to_decimal(supplements_approved)


def gross_commission(
    total_revenue: Decimal,
    commission_percent: Decimal,
    is_flat_fee: bool = False,
    flat_fee_amount: Decimal | None = None,
) -> Decimal:
    """Flat fee when set (the percentage is ignored), else revenue x percent / 100."""
    if is_flat_fee:
        return round_money(to_decimal(flat_fee_amount if flat_fee_amount is not None else ZERO))
    return round_money(to_decimal(total_revenue) * to_decimal(commission_percent) / HUNDRED)


def net_commission_owed(gross: Decimal, advances_paid: Decimal) -> Decimal:
    """Gross commission less advances; negative when draws exceed earnings."""
    return to_decimal(gross) - to_decimal(advances_paid)


@traced_engine("submission_worksheet", "1.0", fingerprint_fields=("inputs",))
def calculate_worksheet(*, inputs: WorksheetInputs) -> WorksheetFinancials:
    """Compute every derived field of the submission worksheet."""
    revenue = total_job_revenue(inputs.contract_amount, inputs.supplements_approved)
    gross = gross_commission(
        revenue,
        inputs.commission_percent,
        inputs.is_flat_fee,
        inputs.flat_fee_amount,
    )
    net = net_commission_owed(gross, inputs.advances_paid)
    return WorksheetFinancials(
        total_job_revenue=revenue,
        gross_commission=gross,
        net_commission_owed=net,
    )


def payable_amount(financials: DocumentFinancials | WorksheetFinancials) -> Decimal:
    """The amount a request asks to be paid: net owed, or the rep's commission."""
    if isinstance(financials, WorksheetFinancials):
        return financials.net_commission_owed
    return financials.rep_commission
