"""Field validation for both worksheets."""

from datetime import date
from decimal import Decimal

from commission_engines.validation import (
    validate_document_fields,
    validate_job_number,
    validate_worksheet_fields,
)


def _document(**overrides):
    data = {
        "job_name": "Birchwood HOA",
        "job_date": date(2026, 2, 2),
        "sales_rep_name": "Riley Moreno",
        "gross_contract_total": Decimal("25000"),
        "op_percent": Decimal("0.15"),
        "material_cost": Decimal("5000"),
        "labor_cost": Decimal("4000"),
        "negative_expenses": (Decimal("500"),),
        "positive_expenses": (),
        "rep_profit_percent": Decimal("0.40"),
        "profit_split_label": "15/40/60",
        "job_number": "4821",
    }
    data.update(overrides)
    return data


def _worksheet(**overrides):
    data = {
        "job_name": "Alvarez Residence",
        "sales_rep_name": "Riley Moreno",
        "contract_amount": Decimal("18000"),
        "supplements_approved": Decimal("2000"),
        "commission_percent": Decimal("15"),
        "advances_paid": None,
        "is_flat_fee": False,
        "flat_fee_amount": None,
        "job_number": None,
    }
    data.update(overrides)
    return data


def _fields(result):
    return {issue.field for issue in result.issues}


class TestDocumentValidation:
    def test_complete_document_is_valid(self):
        result = validate_document_fields(_document())
        assert result.valid
        assert result.errors == ()

    def test_required_fields(self):
        result = validate_document_fields(
            _document(job_name="  ", job_date=None, sales_rep_name=None, profit_split_label="")
        )
        assert not result.valid
        assert {"job_name", "job_date", "sales_rep_name", "profit_split_label"} <= _fields(result)
        assert "Job Name & ID is required" in result.errors

    def test_negative_amounts(self):
        result = validate_document_fields(
            _document(gross_contract_total=Decimal("-1"), labor_cost=Decimal("-5"))
        )
        assert {"gross_contract_total", "labor_cost"} <= _fields(result)

    def test_op_percent_range(self):
        assert "op_percent" in _fields(validate_document_fields(_document(op_percent=Decimal("1.5"))))
        assert "op_percent" in _fields(validate_document_fields(_document(op_percent=None)))

    def test_expense_lines(self):
        too_many = tuple(Decimal("1") for _ in range(5))
        assert "negative_expenses" in _fields(validate_document_fields(_document(negative_expenses=too_many)))
        result = validate_document_fields(_document(positive_expenses=(Decimal("5"), Decimal("-2"))))
        assert "positive_expenses[2]" in _fields(result)

    def test_unrecognized_split(self):
        result = validate_document_fields(_document(profit_split_label="15/40/50"))
        assert "Unrecognized profit split '15/40/50'" in result.errors

    def test_rep_percent_must_be_fraction(self):
        result = validate_document_fields(_document(rep_profit_percent=Decimal("40")))
        assert "rep_profit_percent" in _fields(result)


class TestWorksheetValidation:
    def test_complete_worksheet_is_valid(self):
        assert validate_worksheet_fields(_worksheet()).valid

    def test_missing_contract_amount(self):
        result = validate_worksheet_fields(_worksheet(contract_amount=None))
        assert "contract_amount" in _fields(result)

    def test_optional_amounts_may_be_absent_but_not_negative(self):
        assert validate_worksheet_fields(_worksheet(supplements_approved=None)).valid
        result = validate_worksheet_fields(_worksheet(advances_paid=Decimal("-10")))
        assert "advances_paid" in _fields(result)

    def test_commission_percent_range(self):
        result = validate_worksheet_fields(_worksheet(commission_percent=Decimal("101")))
        assert "commission_percent" in _fields(result)

    def test_flat_fee_requires_amount_and_skips_percent(self):
        result = validate_worksheet_fields(
            _worksheet(is_flat_fee=True, commission_percent=None, flat_fee_amount=None)
        )
        assert _fields(result) == {"flat_fee_amount"}
        ok = validate_worksheet_fields(
            _worksheet(is_flat_fee=True, commission_percent=None, flat_fee_amount=Decimal("750"))
        )
        assert ok.valid


class TestJobNumber:
    def test_four_digits(self):
        assert validate_job_number("0042") is None
        assert validate_job_number(None) is None

    def test_wrong_shape(self):
        for bad in ("42", "12345", "12a4", ""):
            issue = validate_job_number(bad)
            assert issue is not None
            assert issue.field == "job_number"

    def test_worksheet_reports_job_number(self):
        result = validate_worksheet_fields(_worksheet(job_number="99"))
        assert "Job number must be exactly 4 digits" in result.errors
