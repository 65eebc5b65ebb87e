from collections.abc import Iterable
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal
from typing import Union


def to_decimal(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """Coerce a DB/aggregate value to Decimal without going through binary float math."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """
    Round monetary value to 2 decimal places using ROUND_HALF_UP.

    Examples:
        >>> round_money(10.125)
        Decimal('10.13')
        >>> round_money("1000")
        Decimal('1000.00')
    """
    value = to_decimal(value)
    if value < 0:
        return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_DOWN)
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Union[Decimal, float, int, str, None]]) -> Decimal:
    """Sum amounts exactly; an empty iterable sums to 0.00."""
    total = Decimal("0")
    for value in values:
        total += to_decimal(value)
    return round_money(total)


def clamp_non_negative(value: Decimal) -> Decimal:
    """Outstanding figures are never reported below zero."""
    return round_money(max(Decimal("0"), to_decimal(value)))


def percent_of(part: Decimal, whole: Decimal) -> float:
    """part / whole * 100 rounded to 2 decimals; 0 when whole is 0."""
    part = to_decimal(part)
    whole = to_decimal(whole)
    if whole <= 0:
        return 0.0
    return round(float(part / whole * 100), 2)


def variation_percent(
    current: Union[Decimal, float], previous: Union[Decimal, float]
) -> float | None:
    """Relative change from previous to current in percent; None without a baseline."""
    current = to_decimal(current)
    previous = to_decimal(previous)
    if previous == 0:
        return None
    return round(float((current - previous) / previous * 100), 2)


def points_difference(current: float, previous: float) -> float | None:
    """current - previous in percentage points; None when previous is 0."""
    if previous == 0:
        return None
    return round(current - previous, 2)
