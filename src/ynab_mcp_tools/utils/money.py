"""Milliunit currency conversion.

YNAB reports every amount as an integer number of milliunits (1/1000 of the
currency unit), e.g. ``-12340`` for -12.34. How many of those digits a budget
displays comes from its ``currency_format.decimal_digits`` (2 for USD, 0 for
JPY, 3 for BHD).
"""

from decimal import ROUND_HALF_UP, Decimal

DEFAULT_DECIMAL_DIGITS = 2


def milliunits_to_currency(milliunits: int | None) -> Decimal | None:
    """Convert milliunits to a Decimal currency amount. None passes through."""
    if milliunits is None:
        return None
    return Decimal(milliunits) / Decimal(1000)


def format_currency(milliunits: int | None, decimal_digits: int = DEFAULT_DECIMAL_DIGITS) -> str | None:
    """Render milliunits with the budget's number of decimal digits.

    Rounds half away from zero and never renders a negative zero.
    """
    amount = milliunits_to_currency(milliunits)
    if amount is None:
        return None

    rounded = amount.quantize(Decimal(1).scaleb(-decimal_digits), rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        rounded = rounded.copy_abs()
    return f"{rounded:f}"
