"""Global enums: values are persisted in admin_audits and sent on the wire."""

from enum import Enum


class BalanceUpdateMode(str, Enum):
    """How submitted balance fields combine with the stored ones."""
    DELTA = "delta"         # add to the current value (negative subtracts)
    ABSOLUTE = "absolute"   # replace the current value


class AuditAction(str, Enum):
    BALANCE_UPDATE = "balance_update"


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
