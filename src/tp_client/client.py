"""Async client for the admin balance adjustment endpoint.

Usage:
    async with BalanceUpdateClient("https://api.example.com", token=access_token) as client:
        balance = await client.update_balance(
            "user-123",
            {"cash_balance": 500},
            BalanceUpdateMode.DELTA,
            "Manual deposit correction",
        )

The client validates locally, sends exactly one POST (no retry), turns every
outcome into either a PortfolioBalanceData or a BalanceUpdateError subclass,
and emits exactly one notification per call.
"""

import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

import httpx
import pydantic

from src.tp_client.exceptions import (
    ApplicationError,
    BalanceUpdateError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from src.tp_client.notifications import LoggingNotifier, Notifier
from src.tp_common.enums import BalanceUpdateMode, NotificationKind
from src.tp_portfolio.application.schemas import PortfolioBalanceData
from src.tp_portfolio.domain.models import BALANCE_FIELDS

BALANCE_UPDATE_PATH = "/api/v1/admin/balance-update"

SUCCESS_MESSAGE = "User balance updated successfully"
DEFAULT_FAILURE_MESSAGE = "Failed to update balance"

_MODES = {mode.value for mode in BalanceUpdateMode}


def _is_number(value: object) -> bool:
    """A finite int, float or Decimal that also survives the float conversion."""
    if isinstance(value, bool) or not isinstance(value, int | float | Decimal):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, Decimal) and not value.is_finite():
        return False
    return math.isfinite(float(value))


def _wire_amount(value: object) -> object:
    return float(value) if isinstance(value, Decimal) else value


def build_request_body(
    user_id: str,
    updates: Mapping[str, object],
    mode: BalanceUpdateMode | str,
    reason: str,
) -> dict[str, Any]:
    """Validate inputs and build the camelCase JSON body.

    ``updates`` is keyed by field name (``cash_balance``, ``invested_amount``,
    ``free_margin``); fields set to None are left out of the body. Every other
    value must be a finite number so the body always encodes as strict JSON.

    Raises:
        ValidationError: on the first violated rule.
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("User ID is required")
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("Reason is required and cannot be empty")
    mode_value = mode.value if isinstance(mode, BalanceUpdateMode) else mode
    if not isinstance(mode_value, str) or mode_value not in _MODES:
        raise ValidationError('Mode must be either "delta" or "absolute"')

    provided = {
        wire: updates.get(field)
        for wire, field in BALANCE_FIELDS.items()
        if updates.get(field) is not None
    }
    if not provided:
        raise ValidationError("At least one balance field must be provided")
    if not all(_is_number(value) for value in provided.values()):
        raise ValidationError("Balance amounts must be finite numbers")

    body: dict[str, Any] = {"userId": user_id}
    body.update({wire: _wire_amount(value) for wire, value in provided.items()})
    body["mode"] = mode_value
    body["reason"] = reason.strip()
    return body


def _failure_message(error: object, details: object) -> str:
    message = error if isinstance(error, str) else ""
    if isinstance(details, list) and details:
        return f"{message}: {', '.join(str(d) for d in details)}"
    if isinstance(details, str) and details:
        return f"{message}: {details}"
    return message


class BalanceUpdateClient:
    """Issues balance adjustments on behalf of an authenticated admin."""

    _client: httpx.AsyncClient
    _notifier: Notifier

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        notifier: Notifier | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self._notifier = notifier or LoggingNotifier()

    async def __aenter__(self) -> "BalanceUpdateClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def update_balance(
        self,
        user_id: str,
        updates: Mapping[str, object],
        mode: BalanceUpdateMode | str,
        reason: str,
    ) -> PortfolioBalanceData:
        """Apply one balance adjustment and return the stored result.

        Raises:
            ValidationError: inputs rejected locally, nothing sent.
            TransportError: the request did not complete.
            ProtocolError: the response was empty or malformed.
            ApplicationError: the service rejected the adjustment.
        """
        try:
            result = await self._send(user_id, updates, mode, reason)
        except BalanceUpdateError as exc:
            self._notifier.notify(NotificationKind.ERROR, exc.message or DEFAULT_FAILURE_MESSAGE)
            raise
        self._notifier.notify(NotificationKind.SUCCESS, SUCCESS_MESSAGE)
        return result

    async def _send(
        self,
        user_id: str,
        updates: Mapping[str, object],
        mode: BalanceUpdateMode | str,
        reason: str,
    ) -> PortfolioBalanceData:
        body = build_request_body(user_id, updates, mode, reason)

        try:
            response = await self._client.post(BALANCE_UPDATE_PATH, json=body)
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__) from exc

        envelope = self._decode(response)

        if envelope.get("success") is not True:
            details = envelope.get("details")
            raise ApplicationError(
                _failure_message(envelope.get("error"), details) or DEFAULT_FAILURE_MESSAGE,
                status_code=response.status_code,
                details=details,
            )

        try:
            return PortfolioBalanceData.model_validate(envelope.get("data"))
        except pydantic.ValidationError as exc:
            raise ProtocolError("Response data is not a portfolio balance") from exc

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        if not response.content.strip():
            raise ProtocolError("No response received")
        try:
            # Decimal keeps totalValue == cashBalance + investedAmount exact
            envelope = response.json(parse_float=Decimal)
        except ValueError as exc:
            if response.status_code >= 400:
                raise TransportError(
                    f"HTTP {response.status_code}: {response.reason_phrase}"
                ) from exc
            raise ProtocolError("Invalid JSON in response") from exc
        if not isinstance(envelope, dict):
            raise ProtocolError("Unexpected response format")
        return envelope
