"""003: create admin_users table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE admin_users (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         UUID            REFERENCES users(id) ON DELETE SET NULL,
            email           VARCHAR(255)    NOT NULL,
            role            VARCHAR(32)     NOT NULL DEFAULT 'admin',
            meta            JSONB,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_admin_users_user_id UNIQUE (user_id),
            CONSTRAINT uq_admin_users_email   UNIQUE (email)
        );
    """)
    op.execute("CREATE INDEX idx_admin_users_email_lower ON admin_users (LOWER(email));")
    op.execute("""
        CREATE TRIGGER trg_admin_users_updated_at
            BEFORE UPDATE ON admin_users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE admin_users IS "
        "'Admin directory; user_id NULL until the account is linked';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS admin_users CASCADE;")
