"""006: create app_settings table

Revision ID: 006
Revises: 005
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE app_settings (
            key             VARCHAR(100)    PRIMARY KEY,
            value           TEXT            NOT NULL,
            description     TEXT
        );
    """)
    op.execute("""
        INSERT INTO app_settings (key, value, description) VALUES
            ('AUTO_EXTEND_THRESHOLD_MINUTES', '5',
             'Bids this close to end_at extend auctions that enable auto-extend'),
            ('AUTO_EXTEND_DURATION_MINUTES', '10',
             'Minutes from the triggering bid to the new end_at');
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS app_settings CASCADE;")
