"""Utility functions for the EMI calculator.

This module converts loosely typed user input (form fields, JSON numbers,
command-line strings) into ``Decimal`` and ``int`` values. The ``to_*``
helpers never raise: anything that is not a finite number comes back as
``None`` so that callers can fall back to their degenerate-input behavior.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, getcontext
from typing import Any, Optional

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

MAX_WHOLE_DIGITS = 18


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas, so Indian-grouped figures such as
    ``"1,00,000"`` are accepted. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.strip().replace(",", "")
        return Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Any) -> Optional[Decimal]:
    """Return ``value`` as a finite ``Decimal`` or ``None``.

    Floats go through ``repr`` so that ``8.5`` becomes ``Decimal("8.5")``
    rather than its binary expansion. Booleans are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, int):
            number = Decimal(value)
        elif isinstance(value, float):
            number = Decimal(repr(value))
        elif isinstance(value, str):
            number = decimal_from_str(value)
        else:
            number = Decimal(str(value))
    except (ValueError, InvalidOperation):
        return None
    if not number.is_finite():
        return None
    return number


def to_whole_months(value: Any) -> Optional[int]:
    """Return ``value`` as an ``int`` when it is a whole number, else ``None``.

    ``36``, ``36.0`` and ``"36"`` all give ``36``; ``36.5`` gives ``None``.
    Magnitudes beyond ``MAX_WHOLE_DIGITS`` digits are also ``None``.
    """
    number = to_decimal(value)
    if number is None or number.adjusted() >= MAX_WHOLE_DIGITS:
        return None
    if number != number.to_integral_value():
        return None
    return int(number)
