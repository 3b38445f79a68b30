"""
Fixed-point helpers for season ranks.

Ranks come out of the database as Decimal (Numeric(4, 2)), out of request
bodies as float/int, and occasionally as strings from CSV uploads. Everything
is converted once to integer hundredths so sums and means are exact; values
are turned back into floats only when they leave the stats functions.
"""

import math
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Iterable, Optional, Union

RankValue = Union[int, float, Decimal, str]

HUNDRED = 100


def to_decimal(value: RankValue) -> Decimal:
    """
    Convert a rank-like value to Decimal using its shortest text form.

    Floats go through str() so 5.12 becomes Decimal("5.12") rather than the
    binary expansion. Raises ValueError for non-numeric or non-finite input.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid rank value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Invalid rank value: {value!r}")
    else:
        raise ValueError(f"Invalid rank value: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Invalid rank value: {value!r}")
    return result


def decimal_places(value: RankValue) -> int:
    """Number of fractional digits in the value's decimal representation."""
    dec = to_decimal(value).normalize()
    exponent = dec.as_tuple().exponent
    return -exponent if exponent < 0 else 0


def rank_to_hundredths(value: RankValue) -> Fraction:
    """
    Rank scaled by 100.

    Stored ranks always have at most 2 decimals so the result is an integer
    valued Fraction; unvalidated input keeps its extra precision instead of
    being silently rounded.
    """
    return Fraction(to_decimal(value)) * HUNDRED


def round_hundredths(value: Fraction) -> int:
    """
    Round a value already scaled by 100 to the nearest integer.

    Exact halves round toward positive infinity (-12.5 -> -12, 12.5 -> 13).
    """
    return math.floor(value + Fraction(1, 2))


def to_display(hundredths: int) -> float:
    """Integer hundredths to a float with at most 2 decimals."""
    return hundredths / HUNDRED


def mean(values: Iterable[Fraction]) -> Optional[Fraction]:
    """Exact arithmetic mean, or None for an empty iterable."""
    items = list(values)
    if not items:
        return None
    return sum(items, Fraction(0)) / len(items)
