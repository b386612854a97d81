"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            username            VARCHAR(64)     NOT NULL,
            role                VARCHAR(20)     NOT NULL DEFAULT 'USER',
            positive_ratings    INTEGER         NOT NULL DEFAULT 0,
            negative_ratings    INTEGER         NOT NULL DEFAULT 0,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username    UNIQUE (username),
            CONSTRAINT ck_users_role        CHECK (role IN ('USER', 'MODERATOR')),
            CONSTRAINT ck_users_ratings     CHECK (positive_ratings >= 0 AND negative_ratings >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Bidders, sellers and moderators; rating counters feed bidder eligibility';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
