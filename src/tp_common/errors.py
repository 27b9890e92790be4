"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Admin
  2xxx: Balance adjustment
  9xxx: System / storage
"""


class AppError(Exception):
    """Base application error.

    ``details`` carries the individual rule violations or the underlying
    storage message; it is rendered as the ``details`` array of the error
    envelope.
    """

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        details: list[str] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details
        super().__init__(message)


# --- 1xxx: Auth/Admin ---

class MissingAuthorizationError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Missing authorization header", 401)


class InvalidTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Invalid token", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Account is disabled", 403)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Access denied - admin privileges required", 403)


# --- 2xxx: Balance adjustment ---

class PayloadValidationError(AppError):
    def __init__(self, violations: list[str], message: str = "Validation failed") -> None:
        super().__init__(2001, message, 400, details=violations)


class InvalidJsonError(AppError):
    def __init__(self) -> None:
        super().__init__(2002, "Invalid JSON in request body", 400)


class ComputationError(AppError):
    def __init__(self) -> None:
        super().__init__(2003, "Invalid numeric values in balance calculation", 500)


# --- 9xxx: System ---

class StorageError(AppError):
    def __init__(self, message: str, cause: str | None = None) -> None:
        super().__init__(9001, message, 500, details=[cause] if cause else None)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
