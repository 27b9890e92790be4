"""Wire schemas for portfolio balances, shared by the service and the client.

Keys on the wire are camelCase (``userId``, ``cashBalance`` ...). Amounts are
Decimal on both ends and JSON numbers in between; readers that need
``totalValue == cashBalance + investedAmount`` to hold exactly decode JSON
floats as Decimal (``json.loads(..., parse_float=Decimal)``).
"""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from src.tp_common.datetime_utils import to_iso
from src.tp_portfolio.domain.models import PortfolioBalance

# JSON output is a number, not pydantic's default decimal string
WireAmount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class PortfolioBalanceData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    cash_balance: WireAmount
    invested_amount: WireAmount
    free_margin: WireAmount
    total_value: WireAmount
    version: int | None = None
    updated_at: str | None = None  # ISO8601 string

    @classmethod
    def from_domain(cls, balance: PortfolioBalance) -> "PortfolioBalanceData":
        return cls(
            user_id=balance.user_id,
            cash_balance=balance.cash_balance,
            invested_amount=balance.invested_amount,
            free_margin=balance.free_margin,
            total_value=balance.total_value,
            version=balance.version,
            updated_at=to_iso(balance.updated_at),
        )

    def to_wire(self) -> dict[str, Any]:
        """camelCase dict with amounts as floats, ready for JSON."""
        return self.model_dump(mode="json", by_alias=True)
