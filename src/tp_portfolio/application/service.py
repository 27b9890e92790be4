"""PortfolioApplicationService: read side for a user's own balance.

Read-only, runs without an explicit transaction. Writes happen only through
the admin balance adjustment path (src/tp_admin).
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_portfolio.application.schemas import PortfolioBalanceData
from src.tp_portfolio.domain.repository import PortfolioRepositoryProtocol
from src.tp_portfolio.infrastructure.persistence import PortfolioRepository


class PortfolioApplicationService:
    def __init__(self, repo: PortfolioRepositoryProtocol | None = None) -> None:
        self._repo: PortfolioRepositoryProtocol = repo or PortfolioRepository()

    async def get_balance(
        self, db: AsyncSession, user_id: str
    ) -> PortfolioBalanceData | None:
        """None until the first write creates the row."""
        balance = await self._repo.get_balance(db, user_id)
        if balance is None:
            return None
        return PortfolioBalanceData.from_domain(balance)
