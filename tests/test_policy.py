"""
Tests for the carry-over policy.

CRITICAL: The carried amount must never exceed the unspent amount nor the
cap derived from the original limit.
"""

from decimal import Decimal

import pytest

from budget_rollover.models.budget import SkipReason
from budget_rollover.rollover.calculator import compute_unspent
from budget_rollover.rollover.policy import (
    carry_over_amount,
    carry_over_cap,
    skip_reason,
)


def _record(limit: str, spent: str, category: str = "Shopping"):
    return compute_unspent(category, Decimal(limit), Decimal(spent))


class TestCarryOverAmount:
    """Carried amount for the documented scenarios."""

    def test_cap_binds_when_unspent_exceeds_it(self):
        record = _record("100", "40")
        assert record.unspent_amount == Decimal("60")
        assert record.eligible_for_carryover is True
        assert carry_over_amount(record, True, Decimal("50")) == Decimal("50")

    def test_overspent_category_carries_nothing(self):
        record = _record("100", "110")
        assert record.spent_percentage == Decimal("110.0")
        assert carry_over_amount(record, True, Decimal("50")) == Decimal("0")
        assert skip_reason(record, True, Decimal("50")) == SkipReason.NO_UNSPENT_AMOUNT

    def test_not_opted_in_carries_nothing(self):
        record = _record("100", "30")
        assert record.unspent_amount == Decimal("70")
        assert carry_over_amount(record, False, Decimal("50")) == Decimal("0")
        assert skip_reason(record, False, Decimal("50")) == SkipReason.NOT_SELECTED

    def test_zero_cap_carries_nothing(self):
        for spent in ["0", "30", "99"]:
            record = _record("100", spent)
            assert carry_over_amount(record, True, Decimal("0")) == Decimal("0")
            assert skip_reason(record, True, Decimal("0")) == SkipReason.CARRY_OVER_DISABLED

    def test_unspent_binds_when_below_cap(self):
        record = _record("100", "80")
        assert carry_over_amount(record, True, Decimal("50")) == Decimal("20")
        assert skip_reason(record, True, Decimal("50")) is None

    def test_full_cap_carries_everything_unspent(self):
        record = _record("250", "0")
        assert carry_over_amount(record, True, Decimal("100")) == Decimal("250")

    def test_fractional_cap_is_not_rounded(self):
        record = _record("33.33", "0")
        assert carry_over_amount(record, True, Decimal("50")) == Decimal("16.665")
        assert carry_over_amount(record, True, Decimal("33")) == Decimal("10.9989")

    def test_sub_cent_cap_still_carries(self):
        record = _record("0.01", "0")
        assert carry_over_amount(record, True, Decimal("50")) == Decimal("0.005")
        assert skip_reason(record, True, Decimal("50")) is None

    def test_never_exceeds_either_bound(self):
        limits = ["0", "0.5", "10", "99.99", "100", "1234.56"]
        spends = ["0", "0.01", "5", "50", "99.98", "150"]
        percentages = ["0", "1", "12.5", "50", "75", "100"]

        for limit in limits:
            for spent in spends:
                record = _record(limit, spent)
                for pct in percentages:
                    carried = carry_over_amount(record, True, Decimal(pct))
                    assert carried >= 0
                    assert carried <= record.unspent_amount
                    assert carried <= carry_over_cap(record.budget_limit, Decimal(pct))


class TestPercentageValidation:

    @pytest.mark.parametrize("pct", ["-1", "100.01", "150"])
    def test_out_of_range_percentage_raises(self, pct):
        record = _record("100", "0")
        with pytest.raises(ValueError, match="between 0 and 100"):
            carry_over_amount(record, True, Decimal(pct))
        with pytest.raises(ValueError):
            skip_reason(record, True, Decimal(pct))
        with pytest.raises(ValueError):
            carry_over_cap(Decimal("100"), Decimal(pct))

    def test_cap_is_relative_to_original_limit(self):
        assert carry_over_cap(Decimal("200"), Decimal("25")) == Decimal("50")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
