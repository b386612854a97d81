"""004: create bids table

Revision ID: 004
Revises: 003
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bids (
            id                  BIGSERIAL       PRIMARY KEY,
            auction_item_id     VARCHAR(64)     NOT NULL REFERENCES auction_items(id),
            bidder_id           UUID            NOT NULL REFERENCES users(id),
            amount              BIGINT          NOT NULL,
            limit_amount        BIGINT          NOT NULL,
            is_auto_bid         BOOLEAN         NOT NULL DEFAULT FALSE,
            is_rejected         BOOLEAN         NOT NULL DEFAULT FALSE,
            rejected_at         TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bids_amount   CHECK (amount > 0),
            CONSTRAINT ck_bids_limit    CHECK (limit_amount >= amount)
        );
    """)
    op.execute("CREATE INDEX idx_bids_item_created ON bids (auction_item_id, created_at, id);")
    op.execute("CREATE INDEX idx_bids_item_bidder ON bids (auction_item_id, bidder_id);")
    op.execute("COMMENT ON COLUMN bids.amount IS 'Visible price this bid caused when placed';")
    op.execute("COMMENT ON COLUMN bids.limit_amount IS 'Proxy ceiling the bidder authorized';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bids CASCADE;")
