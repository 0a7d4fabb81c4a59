"""
Tests for helper payout fee calculation.
"""

from decimal import Decimal

import pytest

from settlement.exceptions import FeeComputationError
from settlement.fees import PayoutTerms, compute_fee, format_fee_explanation, validate_fee
from settlement.state_machines import PayoutMode


class TestComputeFee:
    def test_percentage_of_price(self):
        fee = compute_fee(Decimal("150"), PayoutTerms(PayoutMode.PERCENTAGE, Decimal("20")))

        assert fee == Decimal("30.00")

    def test_fixed_amount(self):
        fee = compute_fee(Decimal("150"), PayoutTerms(PayoutMode.FIXED, Decimal("40")))

        assert fee == Decimal("40.00")

    def test_rounds_half_up_to_cents(self):
        # 33.335 -> 33.34
        fee = compute_fee(Decimal("66.67"), PayoutTerms(PayoutMode.PERCENTAGE, Decimal("50")))

        assert fee == Decimal("33.34")

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-10"), "Infinity", "NaN"])
    def test_non_positive_or_non_finite_price_is_zero(self, price):
        fee = compute_fee(price, PayoutTerms(PayoutMode.FIXED, Decimal("40")))

        assert fee == Decimal("0.00")

    def test_negative_result_is_floored_at_zero(self):
        fee = compute_fee(Decimal("100"), PayoutTerms(PayoutMode.FIXED, Decimal("-5")))

        assert fee == Decimal("0.00")

    def test_accepts_float_and_int_inputs(self):
        fee = compute_fee(150, PayoutTerms(PayoutMode.PERCENTAGE, 12.5))

        assert fee == Decimal("18.75")

    def test_deterministic(self):
        terms = PayoutTerms(PayoutMode.PERCENTAGE, Decimal("17"))

        assert compute_fee(Decimal("99.99"), terms) == compute_fee(Decimal("99.99"), terms)

    def test_nan_value_raises(self):
        with pytest.raises(FeeComputationError):
            compute_fee(Decimal("150"), PayoutTerms(PayoutMode.FIXED, Decimal("NaN")))

    def test_non_numeric_raises(self):
        with pytest.raises(FeeComputationError):
            compute_fee("abc", PayoutTerms(PayoutMode.FIXED, Decimal("40")))

    def test_bool_raises(self):
        with pytest.raises(FeeComputationError):
            compute_fee(True, PayoutTerms(PayoutMode.FIXED, Decimal("40")))

    def test_unknown_mode_raises(self):
        with pytest.raises(FeeComputationError) as exc_info:
            compute_fee(Decimal("150"), PayoutTerms("hourly", Decimal("40")))

        assert exc_info.value.details["mode"] == "hourly"


class TestValidateFee:
    def test_fee_within_cap_is_valid(self):
        result = validate_fee(Decimal("40"), Decimal("150"))

        assert result
        assert result.error is None

    def test_fee_equal_to_price_is_valid_at_default_cap(self):
        assert validate_fee(Decimal("150"), Decimal("150"))

    def test_fee_above_cap(self):
        result = validate_fee(Decimal("80"), Decimal("150"), max_percentage=50)

        assert not result
        assert result.error == "Helper fee cannot exceed 50% of appointment price"

    def test_negative_fee(self):
        result = validate_fee(Decimal("-1"), Decimal("150"))

        assert not result
        assert result.error == "Helper fee must be a non-negative number"

    def test_non_positive_price(self):
        result = validate_fee(Decimal("10"), Decimal("0"))

        assert not result
        assert result.error == "Invalid appointment price"

    def test_infinite_fee_is_invalid_not_raised(self):
        assert not validate_fee("Infinity", Decimal("150"))

    def test_nan_raises(self):
        with pytest.raises(FeeComputationError):
            validate_fee(Decimal("NaN"), Decimal("150"))


class TestFormatFeeExplanation:
    def test_percentage(self):
        text = format_fee_explanation(
            Decimal("30"), Decimal("150"), PayoutMode.PERCENTAGE, Decimal("20.00")
        )

        assert text == "20% of $150.00 = $30.00"

    def test_fixed(self):
        text = format_fee_explanation(Decimal("40"), Decimal("150"), PayoutMode.FIXED, Decimal("40"))

        assert text == "Fixed fee: $40.00"
