"""
Money and rate primitives.

Every calculator goes through these helpers so that missing values count as
zero and currency amounts are rounded the same way everywhere.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a possibly-missing numeric value to Decimal.

    None, empty strings, non-numeric text and non-finite numbers all become 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(str(value).strip()) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return result if result.is_finite() else ZERO


def round_currency(value: Any, quantum: Decimal = CENT) -> Decimal:
    """Round to the currency quantum (cents by default), half up."""
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Any], quantum: Decimal = CENT) -> Decimal:
    """Null-coalescing sum of currency amounts."""
    total = sum((to_decimal(v) for v in values), ZERO)
    return round_currency(total, quantum)


def multiply(quantity: Any, rate: Any, quantum: Decimal = CENT) -> Decimal:
    """quantity x rate, rounded; a missing side contributes zero."""
    return round_currency(to_decimal(quantity) * to_decimal(rate), quantum)


def percent_of(amount: Any, percent: Any, quantum: Decimal = CENT) -> Decimal:
    """percent% of amount, rounded."""
    return round_currency(to_decimal(amount) * to_decimal(percent) / HUNDRED, quantum)


def first_positive(*values: Any) -> Decimal:
    """First value that is greater than zero, else 0."""
    for value in values:
        number = to_decimal(value)
        if number > 0:
            return number
    return ZERO
