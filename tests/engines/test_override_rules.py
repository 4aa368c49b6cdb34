"""Manager override phase arithmetic."""

from decimal import Decimal

import pytest

from commission_engines.overrides import OverridePolicy, compute_override, override_phase

POLICY = OverridePolicy(limit=10, rate=Decimal("0.10"))


class TestPhase:
    def test_phase_counts(self):
        phase = override_phase(3, POLICY)
        assert not phase.is_complete
        assert phase.remaining == 7

    def test_phase_complete_at_limit(self):
        phase = override_phase(10, POLICY)
        assert phase.is_complete
        assert phase.remaining == 0

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            override_phase(-1, POLICY)


class TestAward:
    def test_first_award(self):
        award = compute_override(Decimal("3000"), override_phase(0, POLICY), POLICY)
        assert award.commission_number == 1
        assert award.override_amount == Decimal("300.00")
        assert award.override_percentage == Decimal("0.10")
        assert not award.completes_phase

    def test_tenth_award_completes_phase(self):
        award = compute_override(Decimal("1234.56"), override_phase(9, POLICY), POLICY)
        assert award.commission_number == 10
        assert award.override_amount == Decimal("123.46")
        assert award.completes_phase

    def test_no_award_after_phase(self):
        assert compute_override(Decimal("5000"), override_phase(10, POLICY), POLICY) is None

    def test_negative_net_counts_and_claws_back(self):
        award = compute_override(Decimal("-500"), override_phase(2, POLICY), POLICY)
        assert award.commission_number == 3
        assert award.net_amount == Decimal("-500")
        assert award.override_amount == Decimal("-50.00")

    def test_zero_limit_never_awards(self):
        policy = OverridePolicy(limit=0)
        assert compute_override(Decimal("100"), override_phase(0, policy), policy) is None
