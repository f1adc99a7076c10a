"""Numeric policy - arbitrary precision decimals truncated after every division.

Quotients are cut (ROUND_DOWN, i.e. toward zero) to a fixed number of
fractional digits, never rounded. Working precision is wide enough that
token amounts in base units (1e18 per token) keep all of their digits.
"""

from decimal import Decimal, ROUND_DOWN, localcontext
from typing import Union

DEFAULT_PRECISION = 18
WORKING_DIGITS = 120
ID_SEPARATOR = "-"

ZERO = Decimal("0")

Number = Union[Decimal, int, str]


def to_decimal(value: Number) -> Decimal:
    """Convert an int, str or Decimal into a Decimal without going through float."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("floats are not accepted for ledger amounts, pass str or Decimal")
    return Decimal(value)


def truncate(value: Decimal, digits: int = DEFAULT_PRECISION) -> Decimal:
    """Truncate value to `digits` fractional digits."""
    quantum = Decimal(1).scaleb(-digits)
    with localcontext() as ctx:
        ctx.prec = WORKING_DIGITS
        return value.quantize(quantum, rounding=ROUND_DOWN)


def divide(numerator: Decimal, denominator: Decimal, digits: int = DEFAULT_PRECISION) -> Decimal:
    """numerator / denominator truncated to `digits` fractional digits."""
    with localcontext() as ctx:
        ctx.prec = WORKING_DIGITS
        return truncate(numerator / denominator, digits)


def multiply(left: Decimal, right: Decimal, digits: int = DEFAULT_PRECISION) -> Decimal:
    """left * right truncated to `digits` fractional digits."""
    with localcontext() as ctx:
        ctx.prec = WORKING_DIGITS
        return truncate(left * right, digits)


def add(left: Decimal, right: Decimal) -> Decimal:
    """Exact sum of two decimals."""
    with localcontext() as ctx:
        ctx.prec = WORKING_DIGITS
        return left + right


def subtract(left: Decimal, right: Decimal) -> Decimal:
    """Exact difference of two decimals."""
    with localcontext() as ctx:
        ctx.prec = WORKING_DIGITS
        return left - right


def make_id(*parts: str, separator: str = ID_SEPARATOR) -> str:
    """Join id components with the record key separator.

    The separator is part of the persisted key format; other tooling splits
    keys on it.
    """
    return separator.join(str(part) for part in parts)
