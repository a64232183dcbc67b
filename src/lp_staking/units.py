from __future__ import annotations

import re
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from .errors import DivisionByZero

WORKING_DECIMALS = 18

_NON_NUMERIC = re.compile(r"[^0-9.]")


def _truncating_div(value: int, divisor: int) -> int:
    """Integer division rounding toward zero (``//`` floors negatives)."""
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


def shift_decimals(value: int, shift: int) -> int:
    """Shift ``value`` by ``shift`` powers of ten.

    A positive shift pads zeros, a negative shift truncates toward zero.
    """
    if shift >= 0:
        return value * (10**shift)
    return _truncating_div(value, 10**-shift)


def rescale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Re-express an integer amount at a different decimal precision.

    Args:
        amount: Integer amount expressed with ``from_decimals`` decimal places.
        from_decimals: Current decimal precision of ``amount``.
        to_decimals: Target decimal precision.

    Returns:
        The amount at ``to_decimals`` precision.

    Notes:
        - Scaling up multiplies by 10**(to - from); no precision is invented.
        - Scaling down truncates toward zero, for negative amounts as well.
    """
    if from_decimals < 0 or to_decimals < 0:
        raise ValueError(
            f"Decimals must be non-negative, got {from_decimals} -> {to_decimals}"
        )
    return shift_decimals(amount, to_decimals - from_decimals)


def scale_to_18(value: int, decimals: int) -> int:
    """Scale an integer amount to 18 decimals."""
    return rescale(value, decimals, WORKING_DECIMALS)


def ratio(numerator: int, denominator: int, precision: int = WORKING_DECIMALS) -> int:
    """Return ``numerator / denominator`` as a fixed-point int at ``precision``.

    Raises:
        DivisionByZero: If ``denominator`` is zero.
    """
    if denominator == 0:
        raise DivisionByZero(f"ratio({numerator}, 0) is undefined")
    scaled = numerator * (10**precision)
    quotient = _truncating_div(abs(scaled), abs(denominator))
    return quotient if (scaled >= 0) == (denominator > 0) else -quotient


def sanitize_numerical_string(text: str) -> str:
    """Keep digits and the first decimal point of a user-typed amount."""
    cleaned = _NON_NUMERIC.sub("", text)
    head, dot, tail = cleaned.partition(".")
    return head + dot + tail.replace(".", "")


def amount_to_units(text: str, decimals: int) -> int:
    """Parse a human decimal string into integer base units.

    Fractional digits beyond ``decimals`` are truncated toward zero.

    Raises:
        ValueError: If ``text`` is not a decimal number.
    """
    try:
        value = Decimal(text.strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {text!r}") from e
    if not value.is_finite():
        raise ValueError(f"Not a finite amount: {text!r}")
    scaled = value.scaleb(decimals).to_integral_value(ROUND_DOWN)
    return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Render integer base units as an exact decimal string."""
    if decimals == 0:
        return str(value)
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"


def units_to_decimal(value: int, decimals: int) -> Decimal:
    """Exact ``Decimal`` view of an integer amount, for display only."""
    return Decimal(value).scaleb(-decimals)
