"""Balance computation for administrative adjustments: pure, no I/O.

delta:    new = current + requested   (omitted field adds nothing)
absolute: new = requested             (omitted field keeps current)

total_value is never computed from the request: it is always
cash_balance + invested_amount of the result.
"""

from collections.abc import Callable
from decimal import Decimal, InvalidOperation

from src.tp_common.enums import BalanceUpdateMode
from src.tp_common.errors import ComputationError
from src.tp_common.money import quantize_money, to_decimal
from src.tp_portfolio.domain.models import BALANCE_FIELDS, BalanceSnapshot, BalanceUpdates

FieldRule = Callable[[Decimal, object], Decimal]


def _apply_delta(current: Decimal, requested: object) -> Decimal:
    if requested is None:
        return current
    return current + to_decimal(requested)


def _apply_absolute(current: Decimal, requested: object) -> Decimal:
    if requested is None:
        return current
    return to_decimal(requested)


_FIELD_RULES: dict[BalanceUpdateMode, FieldRule] = {
    BalanceUpdateMode.DELTA: _apply_delta,
    BalanceUpdateMode.ABSOLUTE: _apply_absolute,
}


def compute_new_balances(
    current: BalanceSnapshot,
    updates: BalanceUpdates,
    mode: BalanceUpdateMode,
) -> BalanceSnapshot:
    """Apply ``updates`` to ``current`` under ``mode``.

    Raises:
        ComputationError: any resulting field (or the derived total) is not a
            finite number, e.g. a non-numeric value was submitted.
    """
    rule = _FIELD_RULES[mode]
    try:
        new_values = {
            field: quantize_money(rule(getattr(current, field), getattr(updates, field)))
            for field in BALANCE_FIELDS.values()
        }
    except InvalidOperation:
        raise ComputationError() from None

    result = BalanceSnapshot(**new_values)
    if not result.total_value.is_finite():
        raise ComputationError()
    return result
