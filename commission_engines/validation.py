"""
Module: commission_engines.validation
Responsibility:
    Field-level validation of commission worksheet input before anything is
    computed or stored.  Returns every problem at once so a submitter can
    fix the whole form in one pass.

Architecture position:
    Engines -- pure, zero I/O.  Operates on a mapping of raw field values
    (as a form or API payload supplies them), so missing fields are
    reported rather than crashing dataclass construction.

Invariants enforced:
    - Never raises for expected bad input; always returns a
      ``ValidationResult``.
    - Floats are reported as invalid amounts, never silently coerced.
    - Percent ranges: O&P and rep share in [0, 1]; worksheet commission
      rate in [0, 100].
    - A recognized profit-split label is mandatory on the document
      worksheet.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from commission_engines.calculation import MAX_EXPENSE_LINES
from commission_engines.profit_split import parse_profit_split_label
from commission_kernel.domain.money import to_decimal
from commission_kernel.domain.values import ValidationIssue

_JOB_NUMBER = re.compile(r"^\d{4}$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one worksheet."""

    issues: tuple[ValidationIssue, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.issues

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(issue.message for issue in self.issues)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _amount(value: Any) -> Decimal | None:
    """Decimal for a well-formed amount, None for anything else."""
    if value is None:
        return None
    try:
        return to_decimal(value)
    except (TypeError, InvalidOperation, ValueError):
        return None


class _Collector:
    def __init__(self, data: Mapping[str, Any]):
        self.data = data
        self.issues: list[ValidationIssue] = []

    def add(self, field: str, message: str) -> None:
        self.issues.append(ValidationIssue(field, message))

    def required_text(self, field: str, label: str) -> None:
        if _blank(self.data.get(field)):
            self.add(field, f"{label} is required")

    def non_negative(self, field: str, label: str, required: bool = True) -> Decimal | None:
        raw = self.data.get(field)
        if raw is None and not required:
            return None
        value = _amount(raw)
        if value is None or not value.is_finite() or value < 0:
            self.add(field, f"{label} must be >= 0")
            return None
        return value

    def fraction(self, field: str, label: str) -> Decimal | None:
        value = _amount(self.data.get(field))
        if value is None or not value.is_finite() or value < 0 or value > 1:
            self.add(field, f"{label} must be between 0 and 1")
            return None
        return value

    def expense_lines(self, field: str, label: str) -> None:
        lines = self.data.get(field) or ()
        if len(lines) > MAX_EXPENSE_LINES:
            self.add(field, f"At most {MAX_EXPENSE_LINES} {label} lines are allowed")
            return
        for index, raw in enumerate(lines, start=1):
            value = _amount(raw)
            if value is None or not value.is_finite() or value < 0:
                self.add(f"{field}[{index}]", f"{label} {index} must be >= 0")

    def result(self) -> ValidationResult:
        return ValidationResult(tuple(self.issues))


def validate_job_number(job_number: str | None) -> ValidationIssue | None:
    """A supplied external job number must be exactly four digits."""
    if job_number is None or _JOB_NUMBER.match(job_number.strip()):
        return None
    return ValidationIssue("job_number", "Job number must be exactly 4 digits")


def validate_document_fields(data: Mapping[str, Any]) -> ValidationResult:
    """
    Validate the O&P document worksheet.

    Expected keys: job_name, job_date, sales_rep_name, gross_contract_total,
    op_percent, material_cost, labor_cost, negative_expenses,
    positive_expenses, rep_profit_percent, profit_split_label, job_number.
    """
    c = _Collector(data)
    c.required_text("job_name", "Job Name & ID")
    if data.get("job_date") is None:
        c.add("job_date", "Job Date is required")
    c.required_text("sales_rep_name", "Sales Rep")
    c.non_negative("gross_contract_total", "Gross Contract Total")
    op_value = _amount(data.get("op_percent"))
    if op_value is None or not op_value.is_finite() or op_value < 0 or op_value > 1:
        c.add("op_percent", "O&P must be between 0 and 1")
    c.non_negative("material_cost", "Material cost")
    c.non_negative("labor_cost", "Labor cost")
    c.expense_lines("negative_expenses", "Negative expense")
    c.expense_lines("positive_expenses", "Positive expense")
    c.fraction("rep_profit_percent", "Rep profit percent")

    label = data.get("profit_split_label")
    if _blank(label):
        c.add("profit_split_label", "Profit split is required")
    elif parse_profit_split_label(label) is None:
        c.add("profit_split_label", f"Unrecognized profit split '{label}'")

    job_number_issue = validate_job_number(data.get("job_number"))
    if job_number_issue is not None:
        c.issues.append(job_number_issue)
    return c.result()


def validate_worksheet_fields(data: Mapping[str, Any]) -> ValidationResult:
    """
    Validate the submission worksheet.

    Expected keys: job_name, sales_rep_name, contract_amount,
    supplements_approved, commission_percent, advances_paid, is_flat_fee,
    flat_fee_amount, job_number.
    """
    c = _Collector(data)
    c.required_text("job_name", "Job name")
    c.required_text("sales_rep_name", "Sales Rep")
    c.non_negative("contract_amount", "Contract amount")
    c.non_negative("supplements_approved", "Supplements approved", required=False)
    c.non_negative("advances_paid", "Advances paid", required=False)

    if data.get("is_flat_fee"):
        if data.get("flat_fee_amount") is None:
            c.add("flat_fee_amount", "Flat fee amount is required")
        else:
            c.non_negative("flat_fee_amount", "Flat fee amount")
    else:
        rate = _amount(data.get("commission_percent"))
        if rate is None or not rate.is_finite() or rate < 0 or rate > 100:
            c.add("commission_percent", "Commission percent must be between 0 and 100")

    job_number_issue = validate_job_number(data.get("job_number"))
    if job_number_issue is not None:
        c.issues.append(job_number_issue)
    return c.result()
