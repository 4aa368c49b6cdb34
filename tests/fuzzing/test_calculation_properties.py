"""
Property-based tests for the pure engines.

Boundaries fuzzed here:
- Document worksheet: the two reconciliation identities hold for any
  inputs, derived amounts are whole cents, the rep commission follows the
  sign of net profit.
- Submission worksheet: net owed is always gross less advances; a flat fee
  ignores the percentage.
- Pay run: the date is a Friday 3 to 10 days after the local date, and a
  later instant never gets an earlier pay run.
- Override phase: numbering and completion across the whole phase.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from commission_engines.calculation import (
    DocumentInputs,
    WorksheetInputs,
    calculate_document,
    calculate_worksheet,
)
from commission_engines.overrides import OverridePolicy, compute_override, override_phase
from commission_engines.pay_run import FRIDAY, PayRunCutoff, scheduled_pay_date

CENT = Decimal("0.01")

amounts = st.decimals(min_value=Decimal("0"), max_value=Decimal("500000"), places=2)
expense_lines = st.lists(
    st.decimals(min_value=Decimal("0"), max_value=Decimal("20000"), places=2), max_size=4,
).map(tuple)
op_percents = st.sampled_from([Decimal("0.10"), Decimal("0.125"), Decimal("0.15")])
rep_percents = st.sampled_from([Decimal("0.35"), Decimal("0.40"), Decimal("0.45"), Decimal("0.50")])

instants = st.datetimes(
    min_value=datetime(2020, 1, 1),
    max_value=datetime(2035, 12, 31),
    timezones=st.just(timezone.utc),
)


@st.composite
def document_inputs(draw) -> DocumentInputs:
    return DocumentInputs(
        gross_contract_total=draw(amounts),
        op_percent=draw(op_percents),
        material_cost=draw(amounts),
        labor_cost=draw(amounts),
        negative_expenses=draw(expense_lines),
        positive_expenses=draw(expense_lines),
        rep_profit_percent=draw(rep_percents),
    )


class TestDocumentProperties:
    @given(inputs=document_inputs())
    @settings(max_examples=300)
    def test_identities_hold(self, inputs):
        result = calculate_document(inputs=inputs)
        assert result.op_amount + result.contract_total_net == inputs.gross_contract_total
        assert result.rep_commission + result.company_profit == result.op_amount + result.net_profit

    @given(inputs=document_inputs())
    def test_derived_amounts_are_cents(self, inputs):
        result = calculate_document(inputs=inputs)
        for value in (result.op_amount, result.contract_total_net, result.net_profit, result.rep_commission):
            assert value == value.quantize(CENT)

    @given(inputs=document_inputs())
    def test_rep_commission_follows_net_profit(self, inputs):
        result = calculate_document(inputs=inputs)
        if result.net_profit < 0:
            assert result.rep_commission <= 0
        else:
            assert 0 <= result.rep_commission <= result.net_profit


class TestWorksheetProperties:
    @given(
        contract=amounts,
        supplements=amounts,
        percent=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2),
        advances=amounts,
    )
    def test_net_is_gross_less_advances(self, contract, supplements, percent, advances):
        result = calculate_worksheet(inputs=WorksheetInputs(
            contract_amount=contract,
            supplements_approved=supplements,
            commission_percent=percent,
            advances_paid=advances,
        ))
        assert result.total_job_revenue == contract + supplements
        assert result.net_commission_owed == result.gross_commission - advances
        assert result.gross_commission <= result.total_job_revenue

    @given(contract=amounts, percent=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2),
           fee=amounts)
    def test_flat_fee_ignores_percent(self, contract, percent, fee):
        result = calculate_worksheet(inputs=WorksheetInputs(
            contract_amount=contract, commission_percent=percent, is_flat_fee=True, flat_fee_amount=fee,
        ))
        assert result.gross_commission == fee


class TestPayRunProperties:
    CUTOFF = PayRunCutoff()

    @given(instant=instants)
    @settings(max_examples=500)
    def test_always_a_friday_within_ten_days(self, instant):
        pay_date = scheduled_pay_date(instant, self.CUTOFF)
        local_day = instant.astimezone(self.CUTOFF.tz).date()
        assert pay_date.weekday() == FRIDAY
        assert 3 <= (pay_date - local_day).days <= 10

    @given(instant=instants, delay=st.timedeltas(min_value=timedelta(0), max_value=timedelta(days=30)))
    def test_later_never_pays_earlier(self, instant, delay):
        assert scheduled_pay_date(instant + delay, self.CUTOFF) >= scheduled_pay_date(instant, self.CUTOFF)

    @given(
        instant=instants,
        weekday=st.integers(min_value=0, max_value=6),
        offset=st.integers(min_value=-12, max_value=12),
    )
    def test_any_cutoff_pays_on_friday(self, instant, weekday, offset):
        cutoff = PayRunCutoff(weekday=weekday, utc_offset_hours=offset)
        assert scheduled_pay_date(instant, cutoff).weekday() == FRIDAY


class TestOverrideProperties:
    @given(limit=st.integers(min_value=0, max_value=25), approved=st.integers(min_value=0, max_value=40))
    def test_awards_stop_at_limit(self, limit, approved):
        policy = OverridePolicy(limit=limit)
        award = compute_override(Decimal("1000"), override_phase(approved, policy), policy)
        if approved >= limit:
            assert award is None
        else:
            assert award.commission_number == approved + 1
            assert award.completes_phase == (approved + 1 == limit)
