"""Errors raised by BalanceUpdateClient.

Every failure path of ``update_balance`` ends in exactly one of these, and
``str(exc)`` is the message shown to the operator.
"""


class BalanceUpdateError(Exception):
    """Base exception for balance update failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(BalanceUpdateError):
    """Rejected locally before any request was sent."""


class TransportError(BalanceUpdateError):
    """The request did not complete (connect error, timeout, non-JSON error status)."""


class ProtocolError(BalanceUpdateError):
    """A response arrived but was empty or not the expected JSON envelope."""


class ApplicationError(BalanceUpdateError):
    """The service answered with ``success: false``."""

    def __init__(
        self,
        message: str,
        status_code: int,
        details: list[str] | str | None = None,
    ) -> None:
        self.status_code = status_code
        self.details = details
        super().__init__(message)
