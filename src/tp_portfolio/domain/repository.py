"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_portfolio.domain.models import BalanceSnapshot, PortfolioBalance


class PortfolioRepositoryProtocol(Protocol):
    async def get_balance(
        self, db: AsyncSession, user_id: str
    ) -> PortfolioBalance | None: ...

    async def lock_balance(
        self, db: AsyncSession, user_id: str
    ) -> tuple[PortfolioBalance, bool]: ...

    async def upsert_balance(
        self, db: AsyncSession, user_id: str, balances: BalanceSnapshot
    ) -> PortfolioBalance: ...


class BalanceChangePublisherProtocol(Protocol):
    async def publish(self, balance: PortfolioBalance) -> None: ...
