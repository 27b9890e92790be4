"""Domain models for tp_portfolio: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.tp_common.money import ZERO

# Wire (camelCase) name -> domain field name, in display order.
BALANCE_FIELDS: dict[str, str] = {
    "cashBalance": "cash_balance",
    "investedAmount": "invested_amount",
    "freeMargin": "free_margin",
}


@dataclass(frozen=True)
class BalanceSnapshot:
    """The three independently settable balance fields."""

    cash_balance: Decimal = ZERO
    invested_amount: Decimal = ZERO
    free_margin: Decimal = ZERO

    @property
    def total_value(self) -> Decimal:
        return self.cash_balance + self.invested_amount


@dataclass
class PortfolioBalance:
    user_id: str
    cash_balance: Decimal
    invested_amount: Decimal
    free_margin: Decimal
    total_value: Decimal        # always cash_balance + invested_amount after an admin write
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def snapshot(self) -> BalanceSnapshot:
        return BalanceSnapshot(
            cash_balance=self.cash_balance,
            invested_amount=self.invested_amount,
            free_margin=self.free_margin,
        )

    def to_audit_dict(self) -> dict[str, object]:
        """JSON-safe form for admin_audits.meta (amounts as exact strings)."""
        return {
            "user_id": self.user_id,
            "cash_balance": str(self.cash_balance),
            "invested_amount": str(self.invested_amount),
            "free_margin": str(self.free_margin),
            "total_value": str(self.total_value),
            "version": self.version,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class BalanceUpdates:
    """Raw submitted values; None means "not provided".

    Values are kept exactly as they arrived (numbers, or whatever else the
    caller sent) and only coerced inside the balance computation.
    """

    cash_balance: object = None
    invested_amount: object = None
    free_margin: object = None

    def is_empty(self) -> bool:
        return all(getattr(self, field) is None for field in BALANCE_FIELDS.values())

    def provided(self) -> dict[str, object]:
        """Submitted fields keyed by wire name, omitted ones left out."""
        return {
            wire: getattr(self, field)
            for wire, field in BALANCE_FIELDS.items()
            if getattr(self, field) is not None
        }
