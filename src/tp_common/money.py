"""Decimal arithmetic utilities for portfolio balances.

Balances are NUMERIC(24, 8) in PostgreSQL and ``decimal.Decimal`` in Python.
Floats only appear at the JSON edge (request parsing, response rendering).
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

MONEY_SCALE = 8
MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_SCALE)  # 0.00000001
ZERO = Decimal(0)
_NAN = Decimal("NaN")
_DISPLAY_QUANTUM = Decimal("0.01")


def to_decimal(value: object) -> Decimal:
    """Coerce a submitted JSON value to Decimal.

    Only int, float and Decimal count as numbers. Anything else (strings,
    booleans, lists, ...) becomes NaN so it fails the finiteness check in
    the balance computation instead of being reinterpreted.
    """
    if isinstance(value, bool):
        return _NAN
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr() keeps the shortest round-trip form: 0.1 -> Decimal("0.1")
        return Decimal(repr(value))
    return _NAN


def quantize_money(value: Decimal) -> Decimal:
    """Round to MONEY_SCALE places (banker's rounding).

    Raises decimal.InvalidOperation for non-finite values or values too large
    for the decimal context.
    """
    if not value.is_finite():
        raise InvalidOperation(f"non-finite amount: {value}")
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)


def money_to_display(value: Decimal) -> str:
    """Format for humans: Decimal("6500.5") -> '$6,500.50', Decimal("-12") -> '-$12.00'."""
    rounded = value.quantize(_DISPLAY_QUANTUM, rounding=ROUND_HALF_EVEN)
    if rounded < 0:
        return f"-${-rounded:,.2f}"
    return f"${rounded:,.2f}"
