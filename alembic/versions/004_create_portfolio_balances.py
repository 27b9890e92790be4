"""004: create portfolio_balances table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE portfolio_balances (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            cash_balance    NUMERIC(24, 8)  NOT NULL DEFAULT 0,
            invested_amount NUMERIC(24, 8)  NOT NULL DEFAULT 0,
            free_margin     NUMERIC(24, 8)  NOT NULL DEFAULT 0,
            total_value     NUMERIC(24, 8)  NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_portfolio_balances_user_id UNIQUE (user_id)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_portfolio_balances_updated_at
            BEFORE UPDATE ON portfolio_balances
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE portfolio_balances IS "
        "'One row per user; total_value = cash_balance + invested_amount after admin writes';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS portfolio_balances CASCADE;")
