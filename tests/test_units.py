from __future__ import annotations

from decimal import Decimal

import pytest

from lp_staking.errors import DivisionByZero
from lp_staking.units import (
    amount_to_units,
    format_units,
    ratio,
    rescale,
    sanitize_numerical_string,
    scale_to_18,
    units_to_decimal,
)


def test_scale_to_18_same_decimals():
    assert scale_to_18(123, 18) == 123


def test_scale_to_18_scale_up():
    assert scale_to_18(1, 6) == 10**12
    assert scale_to_18(10**8, 8) == 10**18


def test_scale_to_18_scale_down():
    assert scale_to_18(10**20, 20) == 10**18
    assert scale_to_18(100, 20) == 1


def test_rescale_between_arbitrary_precisions():
    assert rescale(1_500_000, 6, 18) == 15 * 10**17
    assert rescale(15 * 10**17, 18, 6) == 1_500_000
    assert rescale(42, 8, 8) == 42


def test_rescale_down_truncates_toward_zero():
    assert rescale(1_999_999, 6, 0) == 1
    assert rescale(-1_999_999, 6, 0) == -1


@pytest.mark.parametrize(
    "from_decimals, to_decimals", [(0, 18), (6, 8), (6, 18), (8, 18), (18, 18)]
)
@pytest.mark.parametrize("amount", [0, 1, 123_456_789, 10**40])
def test_rescale_up_then_down_recovers_the_amount(amount, from_decimals, to_decimals):
    up = rescale(amount, from_decimals, to_decimals)
    assert rescale(up, to_decimals, from_decimals) == amount


def test_rescale_down_then_up_loses_the_truncated_digits():
    amount = 1_234_567_891_234_567_891
    rounded = rescale(rescale(amount, 18, 6), 6, 18)
    assert rounded == 1_234_567_000_000_000_000
    assert rounded <= amount


def test_rescale_rejects_negative_decimals():
    with pytest.raises(ValueError):
        rescale(1, -1, 18)


def test_ratio_is_fixed_point_at_requested_precision():
    assert ratio(1, 4) == 25 * 10**16
    assert ratio(2, 3, precision=6) == 666_666


def test_ratio_truncates_toward_zero_for_negatives():
    assert ratio(-2, 3, precision=6) == -666_666
    assert ratio(2, -3, precision=6) == -666_666


def test_ratio_zero_denominator_raises():
    with pytest.raises(DivisionByZero):
        ratio(1, 0)


def test_sanitize_keeps_digits_and_first_point():
    assert sanitize_numerical_string("1,234.5.6 LP") == "1234.56"
    assert sanitize_numerical_string("abc") == ""
    assert sanitize_numerical_string(".5") == ".5"


def test_amount_to_units_parses_exactly():
    assert amount_to_units("1.5", 18) == 15 * 10**17
    assert amount_to_units("0.000001", 6) == 1
    assert amount_to_units("100", 0) == 100


def test_amount_to_units_truncates_extra_fraction():
    assert amount_to_units("1.1234567", 6) == 1_123_456


def test_amount_to_units_rejects_garbage():
    with pytest.raises(ValueError):
        amount_to_units("one", 18)
    with pytest.raises(ValueError):
        amount_to_units("Infinity", 18)


def test_format_units_strips_trailing_zeros():
    assert format_units(15 * 10**17, 18) == "1.5"
    assert format_units(10**18, 18) == "1"
    assert format_units(1, 6) == "0.000001"
    assert format_units(-25, 1) == "-2.5"
    assert format_units(7, 0) == "7"


def test_units_to_decimal_is_exact():
    assert units_to_decimal(123_456, 3) == Decimal("123.456")
