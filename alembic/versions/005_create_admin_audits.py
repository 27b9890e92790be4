"""005: create admin_audits table

Revision ID: 005
Revises: 004
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE admin_audits (
            id              BIGSERIAL       PRIMARY KEY,
            admin_user_id   UUID            NOT NULL REFERENCES admin_users(id),
            action          VARCHAR(64)     NOT NULL,
            target_table    VARCHAR(64)     NOT NULL,
            target_id       VARCHAR(64)     NOT NULL,
            meta            JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_admin_audits_target ON admin_audits (target_id, id DESC);")
    op.execute("CREATE INDEX idx_admin_audits_admin ON admin_audits (admin_user_id, created_at DESC);")
    op.execute("COMMENT ON TABLE admin_audits IS 'Append-only admin action log';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS admin_audits CASCADE;")
