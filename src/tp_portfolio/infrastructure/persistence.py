"""PortfolioRepository: concrete implementation of PortfolioRepositoryProtocol.

Admin adjustments run read-compute-write under a row lock:
``lock_balance`` makes sure the row exists (INSERT ... ON CONFLICT DO NOTHING)
and takes ``SELECT ... FOR UPDATE`` on it, so two adjustments for the same
user serialize instead of losing an update. The lock is held until the
caller commits or rolls back.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.errors import InternalError
from src.tp_portfolio.domain.models import BalanceSnapshot, PortfolioBalance

_COLUMNS = (
    "user_id, cash_balance, invested_amount, free_margin, total_value, "
    "version, created_at, updated_at"
)

_GET_BALANCE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM portfolio_balances
    WHERE user_id = :user_id
""")

_ENSURE_ROW_SQL = text("""
    INSERT INTO portfolio_balances (user_id)
    VALUES (:user_id)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING user_id
""")

_LOCK_BALANCE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM portfolio_balances
    WHERE user_id = :user_id
    FOR UPDATE
""")

_UPSERT_BALANCE_SQL = text(f"""
    INSERT INTO portfolio_balances
        (user_id, cash_balance, invested_amount, free_margin, total_value)
    VALUES
        (:user_id, :cash_balance, :invested_amount, :free_margin, :total_value)
    ON CONFLICT (user_id) DO UPDATE
        SET cash_balance    = EXCLUDED.cash_balance,
            invested_amount = EXCLUDED.invested_amount,
            free_margin     = EXCLUDED.free_margin,
            total_value     = EXCLUDED.total_value,
            version         = portfolio_balances.version + 1,
            updated_at      = NOW()
    RETURNING {_COLUMNS}
""")


def _row_to_balance(row: object) -> PortfolioBalance:
    return PortfolioBalance(
        user_id=row.user_id,  # type: ignore[attr-defined]
        cash_balance=row.cash_balance,  # type: ignore[attr-defined]
        invested_amount=row.invested_amount,  # type: ignore[attr-defined]
        free_margin=row.free_margin,  # type: ignore[attr-defined]
        total_value=row.total_value,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class PortfolioRepository:
    """Concrete repository: raw SQL, atomic at the row level."""

    async def get_balance(
        self, db: AsyncSession, user_id: str
    ) -> PortfolioBalance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def lock_balance(
        self, db: AsyncSession, user_id: str
    ) -> tuple[PortfolioBalance, bool]:
        """Lock the user's row, creating an all-zero row first if absent.

        Returns (balance, created) where ``created`` is True when this call
        inserted the row.
        """
        inserted = await db.execute(_ENSURE_ROW_SQL, {"user_id": user_id})
        created = inserted.fetchone() is not None

        result = await db.execute(_LOCK_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Balance row vanished after insert for user {user_id}")
        return _row_to_balance(row), created

    async def upsert_balance(
        self, db: AsyncSession, user_id: str, balances: BalanceSnapshot
    ) -> PortfolioBalance:
        result = await db.execute(
            _UPSERT_BALANCE_SQL,
            {
                "user_id": user_id,
                "cash_balance": balances.cash_balance,
                "invested_amount": balances.invested_amount,
                "free_margin": balances.free_margin,
                "total_value": balances.total_value,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Balance upsert returned no rows, this should never happen")
        return _row_to_balance(row)
