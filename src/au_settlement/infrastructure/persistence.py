"""SettlementRepository — raw SQL over the settlements table.

UNIQUE(auction_item_id) backs the at-most-one-settlement rule; the insert
uses ON CONFLICT DO NOTHING so a racing second writer gets None back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.au_auction.domain.models import Settlement

_GET_BY_ITEM_SQL = text("""
    SELECT id, auction_item_id, seller_id, winning_bidder_id, final_price,
           status, created_at
    FROM settlements
    WHERE auction_item_id = :item_id
""")

_INSERT_SQL = text("""
    INSERT INTO settlements (
        auction_item_id, seller_id, winning_bidder_id, final_price, status
    ) VALUES (
        :auction_item_id, :seller_id, :winning_bidder_id, :final_price, :status
    )
    ON CONFLICT (auction_item_id) DO NOTHING
    RETURNING id, created_at
""")


def _row_to_settlement(row: object) -> Settlement:
    return Settlement(
        id=row.id,  # type: ignore[attr-defined]
        auction_item_id=row.auction_item_id,  # type: ignore[attr-defined]
        seller_id=str(row.seller_id),  # type: ignore[attr-defined]
        winning_bidder_id=str(row.winning_bidder_id),  # type: ignore[attr-defined]
        final_price=row.final_price,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class SettlementRepository:
    async def get_by_item(self, db: AsyncSession, item_id: str) -> Settlement | None:
        row = (await db.execute(_GET_BY_ITEM_SQL, {"item_id": item_id})).fetchone()
        return _row_to_settlement(row) if row else None

    async def insert(self, db: AsyncSession, settlement: Settlement) -> Settlement | None:
        row = (
            await db.execute(
                _INSERT_SQL,
                {
                    "auction_item_id": settlement.auction_item_id,
                    "seller_id": settlement.seller_id,
                    "winning_bidder_id": settlement.winning_bidder_id,
                    "final_price": settlement.final_price,
                    "status": settlement.status,
                },
            )
        ).fetchone()
        if row is None:
            return None
        settlement.id = row.id
        settlement.created_at = row.created_at
        return settlement
