"""005: create settlements table

Revision ID: 005
Revises: 004
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE settlements (
            id                  BIGSERIAL       PRIMARY KEY,
            auction_item_id     VARCHAR(64)     NOT NULL REFERENCES auction_items(id),
            seller_id           UUID            NOT NULL REFERENCES users(id),
            winning_bidder_id   UUID            NOT NULL REFERENCES users(id),
            final_price         BIGINT          NOT NULL,
            status              VARCHAR(30)     NOT NULL DEFAULT 'PENDING_PAYMENT',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_settlements_item      UNIQUE (auction_item_id),
            CONSTRAINT ck_settlements_price     CHECK (final_price > 0),
            CONSTRAINT ck_settlements_status    CHECK (
                status IN ('PENDING_PAYMENT', 'PENDING_SHIPPING', 'COMPLETED', 'CANCELLED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_settlements_buyer ON settlements (winning_bidder_id);")
    op.execute("""
        CREATE TRIGGER trg_settlements_updated_at
            BEFORE UPDATE ON settlements
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settlements CASCADE;")
