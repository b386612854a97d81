"""003: create auction_items table

Revision ID: 003
Revises: 002
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE auction_items (
            id                              VARCHAR(64)     PRIMARY KEY,
            seller_id                       UUID            NOT NULL REFERENCES users(id),
            title                           VARCHAR(500)    NOT NULL,
            starting_price                  BIGINT          NOT NULL,
            current_price                   BIGINT          NOT NULL,
            bid_step                        BIGINT          NOT NULL,
            bid_count                       INTEGER         NOT NULL DEFAULT 0,
            end_at                          TIMESTAMPTZ     NOT NULL,
            auto_extend_enabled             BOOLEAN         NOT NULL DEFAULT FALSE,
            auto_extend_threshold_minutes   INTEGER,
            auto_extend_duration_minutes    INTEGER,
            allows_unrated_bidders          BOOLEAN         NOT NULL DEFAULT TRUE,
            status                          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at                      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_items_starting_price  CHECK (starting_price > 0),
            CONSTRAINT ck_items_current_price   CHECK (current_price >= starting_price),
            CONSTRAINT ck_items_bid_step        CHECK (bid_step > 0),
            CONSTRAINT ck_items_bid_count       CHECK (bid_count >= 0),
            CONSTRAINT ck_items_status          CHECK (status IN ('ACTIVE', 'ENDED', 'CANCELLED')),
            CONSTRAINT ck_items_extend_minutes  CHECK (
                (auto_extend_threshold_minutes IS NULL OR auto_extend_threshold_minutes >= 0)
                AND (auto_extend_duration_minutes IS NULL OR auto_extend_duration_minutes >= 0)
            )
        );
    """)
    # Sweeper scan: ACTIVE AND end_at <= now
    op.execute("""
        CREATE INDEX idx_items_active_end_at ON auction_items (end_at)
            WHERE status = 'ACTIVE';
    """)
    op.execute("CREATE INDEX idx_items_seller ON auction_items (seller_id);")
    op.execute("""
        CREATE TRIGGER trg_auction_items_updated_at
            BEFORE UPDATE ON auction_items
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS auction_items CASCADE;")
