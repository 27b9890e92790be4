"""Server-side validation of balance adjustment payloads.

The client validates too, but the service never trusts it: every rule is
checked again here and all violations are reported together.
"""

from collections.abc import Mapping
from typing import Any

from src.tp_admin.domain.models import BalanceAdjustmentRequest
from src.tp_common.enums import BalanceUpdateMode
from src.tp_common.errors import PayloadValidationError
from src.tp_portfolio.domain.models import BALANCE_FIELDS, BalanceUpdates

USER_ID_MAX_LENGTH = 64  # portfolio_balances.user_id is VARCHAR(64)
REASON_MAX_LENGTH = 1000

_MODES = {mode.value for mode in BalanceUpdateMode}


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_adjustment_payload(body: Any) -> list[str]:
    """Return every violated rule; an empty list means the payload is usable."""
    if not isinstance(body, Mapping):
        return ["Request body must be a JSON object"]

    errors: list[str] = []

    user_id = body.get("userId")
    if _is_blank(user_id):
        errors.append("userId is required and must be a string")
    elif len(user_id) > USER_ID_MAX_LENGTH:
        errors.append(f"userId must be at most {USER_ID_MAX_LENGTH} characters")

    reason = body.get("reason")
    if _is_blank(reason):
        errors.append("reason is required and cannot be empty")
    elif len(reason.strip()) > REASON_MAX_LENGTH:
        errors.append(f"reason must be at most {REASON_MAX_LENGTH} characters")

    mode = body.get("mode")
    if not isinstance(mode, str) or mode not in _MODES:
        errors.append('mode must be either "delta" or "absolute"')

    if all(body.get(wire) is None for wire in BALANCE_FIELDS):
        errors.append(
            "At least one balance field (cashBalance, investedAmount, freeMargin) "
            "must be provided"
        )

    return errors


def parse_adjustment_request(body: Any) -> BalanceAdjustmentRequest:
    """Validate and convert a decoded JSON body.

    Raises:
        PayloadValidationError: with the full list of violations.
    """
    errors = validate_adjustment_payload(body)
    if errors:
        raise PayloadValidationError(errors)

    return BalanceAdjustmentRequest(
        user_id=body["userId"].strip(),
        mode=BalanceUpdateMode(body["mode"]),
        updates=BalanceUpdates(
            **{field: body.get(wire) for wire, field in BALANCE_FIELDS.items()}
        ),
        reason=body["reason"].strip(),
    )
