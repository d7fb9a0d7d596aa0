"""Strict money parsing applied once at the API boundary."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from studio.errors import ValidationError

_DIGITS = re.compile(r"^\d+$")


def parse_money(value: Any, field: str = "amount") -> int:
    """
    Parse a non-negative integer amount (smallest display unit).

    Accepts ints, integral Decimals/floats and digit-only strings
    (surrounding whitespace allowed). Rejects bools, negatives, fractions
    and anything non-numeric.

    Examples:
        >>> parse_money(30000)
        30000
        >>> parse_money(" 1500 ")
        1500
        >>> parse_money("12.50")
        Traceback (most recent call last):
        ...
        studio.errors.ValidationError: amount must be a whole non-negative number
    """
    message = f"{field} must be a whole non-negative number"

    if isinstance(value, bool) or value is None:
        raise ValidationError(message, field=field)

    if isinstance(value, int):
        amount = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not _DIGITS.match(stripped):
            raise ValidationError(message, field=field)
        amount = int(stripped)
    elif isinstance(value, (float, Decimal)):
        try:
            as_decimal = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(message, field=field)
        if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
            raise ValidationError(message, field=field)
        amount = int(as_decimal)
    else:
        raise ValidationError(message, field=field)

    if amount < 0:
        raise ValidationError(message, field=field)
    return amount


def parse_positive_money(value: Any, field: str = "amount") -> int:
    """Like ``parse_money`` but zero is rejected too."""
    amount = parse_money(value, field=field)
    if amount == 0:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    return amount
