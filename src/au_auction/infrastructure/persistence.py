"""AuctionRepository — concrete implementation of AuctionRepositoryProtocol.

All queries use raw text() SQL (no ORM).
The bid ceiling column is named limit_amount since LIMIT is reserved.
"""

from datetime import datetime

from sqlalchemy import bindparam, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.au_auction.domain.models import AuctionItem, Bid
from src.au_common.errors import ConcurrencyTimeoutError

LOCK_NOT_AVAILABLE = "55P03"

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_ITEM_COLUMNS = """
    id, seller_id, title, starting_price, current_price, bid_step, bid_count,
    end_at, auto_extend_enabled, auto_extend_threshold_minutes,
    auto_extend_duration_minutes, allows_unrated_bidders, status,
    created_at, updated_at
"""

_BID_COLUMNS = """
    id, auction_item_id, bidder_id, amount, limit_amount,
    is_auto_bid, is_rejected, created_at
"""

_GET_ITEM_SQL = text(f"SELECT {_ITEM_COLUMNS} FROM auction_items WHERE id = :item_id")

_LOCK_ITEM_SQL = text(
    f"SELECT {_ITEM_COLUMNS} FROM auction_items WHERE id = :item_id FOR UPDATE"
)

# set_config(..., true) is SET LOCAL with a bindable value
_SET_LOCK_TIMEOUT_SQL = text("SELECT set_config('lock_timeout', :timeout, true)")

_UPDATE_ITEM_STATE_SQL = text("""
    UPDATE auction_items
    SET current_price = :current_price,
        bid_count = :bid_count,
        end_at = :end_at,
        status = :status,
        updated_at = NOW()
    WHERE id = :id
""")

_LIST_BIDS_SQL = text(f"""
    SELECT {_BID_COLUMNS}
    FROM bids
    WHERE auction_item_id = :item_id
    ORDER BY created_at ASC, id ASC
""")

_GET_BID_SQL = text(f"SELECT {_BID_COLUMNS} FROM bids WHERE id = :bid_id")

_INSERT_BID_SQL = text("""
    INSERT INTO bids (
        auction_item_id, bidder_id, amount, limit_amount,
        is_auto_bid, is_rejected, created_at
    ) VALUES (
        :auction_item_id, :bidder_id, :amount, :limit_amount,
        :is_auto_bid, FALSE, :created_at
    )
    RETURNING id
""")

_REJECT_BIDDER_SQL = text("""
    UPDATE bids
    SET is_rejected = TRUE,
        rejected_at = NOW()
    WHERE auction_item_id = :item_id
      AND bidder_id = :bidder_id
      AND NOT is_rejected
""")

_LIST_EXPIRED_SQL = text("""
    SELECT id
    FROM auction_items
    WHERE status = 'ACTIVE' AND end_at <= :now
    ORDER BY end_at ASC, id ASC
    LIMIT :limit
""")

_GET_APP_SETTINGS_SQL = text(
    "SELECT key, value FROM app_settings WHERE key IN :keys"
).bindparams(bindparam("keys", expanding=True))

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def _row_to_item(row: object) -> AuctionItem:
    return AuctionItem(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=str(row.seller_id),  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        starting_price=row.starting_price,  # type: ignore[attr-defined]
        current_price=row.current_price,  # type: ignore[attr-defined]
        bid_step=row.bid_step,  # type: ignore[attr-defined]
        bid_count=row.bid_count,  # type: ignore[attr-defined]
        end_at=row.end_at,  # type: ignore[attr-defined]
        auto_extend_enabled=row.auto_extend_enabled,  # type: ignore[attr-defined]
        auto_extend_threshold_minutes=row.auto_extend_threshold_minutes,  # type: ignore[attr-defined]
        auto_extend_duration_minutes=row.auto_extend_duration_minutes,  # type: ignore[attr-defined]
        allows_unrated_bidders=row.allows_unrated_bidders,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_bid(row: object) -> Bid:
    return Bid(
        id=row.id,  # type: ignore[attr-defined]
        auction_item_id=row.auction_item_id,  # type: ignore[attr-defined]
        bidder_id=str(row.bidder_id),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        limit=row.limit_amount,  # type: ignore[attr-defined]
        is_auto_bid=row.is_auto_bid,  # type: ignore[attr-defined]
        is_rejected=row.is_rejected,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def is_lock_timeout(exc: DBAPIError) -> bool:
    return getattr(exc.orig, "sqlstate", None) == LOCK_NOT_AVAILABLE


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class AuctionRepository:
    """Item, bid and settings access. Callers own the transaction."""

    async def get_item(self, db: AsyncSession, item_id: str) -> AuctionItem | None:
        row = (await db.execute(_GET_ITEM_SQL, {"item_id": item_id})).fetchone()
        return _row_to_item(row) if row else None

    async def lock_item(
        self, db: AsyncSession, item_id: str, timeout_ms: int
    ) -> AuctionItem | None:
        await db.execute(_SET_LOCK_TIMEOUT_SQL, {"timeout": f"{int(timeout_ms)}ms"})
        try:
            row = (await db.execute(_LOCK_ITEM_SQL, {"item_id": item_id})).fetchone()
        except DBAPIError as exc:
            if is_lock_timeout(exc):
                raise ConcurrencyTimeoutError(item_id) from exc
            raise
        return _row_to_item(row) if row else None

    async def update_item_state(self, db: AsyncSession, item: AuctionItem) -> None:
        await db.execute(
            _UPDATE_ITEM_STATE_SQL,
            {
                "id": item.id,
                "current_price": item.current_price,
                "bid_count": item.bid_count,
                "end_at": item.end_at,
                "status": item.status,
            },
        )

    async def list_bids(self, db: AsyncSession, item_id: str) -> list[Bid]:
        rows = (await db.execute(_LIST_BIDS_SQL, {"item_id": item_id})).fetchall()
        return [_row_to_bid(row) for row in rows]

    async def get_bid(self, db: AsyncSession, bid_id: int) -> Bid | None:
        row = (await db.execute(_GET_BID_SQL, {"bid_id": bid_id})).fetchone()
        return _row_to_bid(row) if row else None

    async def insert_bid(self, db: AsyncSession, bid: Bid) -> Bid:
        result = await db.execute(
            _INSERT_BID_SQL,
            {
                "auction_item_id": bid.auction_item_id,
                "bidder_id": bid.bidder_id,
                "amount": bid.amount,
                "limit_amount": bid.limit,
                "is_auto_bid": bid.is_auto_bid,
                "created_at": bid.created_at,
            },
        )
        bid.id = result.scalar_one()
        return bid

    async def reject_bidder_bids(
        self, db: AsyncSession, item_id: str, bidder_id: str
    ) -> int:
        result = await db.execute(
            _REJECT_BIDDER_SQL, {"item_id": item_id, "bidder_id": bidder_id}
        )
        return result.rowcount  # type: ignore[attr-defined]

    async def list_expired_item_ids(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[str]:
        rows = (await db.execute(_LIST_EXPIRED_SQL, {"now": now, "limit": limit})).fetchall()
        return [row.id for row in rows]

    async def get_app_settings(
        self, db: AsyncSession, keys: list[str]
    ) -> dict[str, str]:
        if not keys:
            return {}
        rows = (await db.execute(_GET_APP_SETTINGS_SQL, {"keys": keys})).fetchall()
        return {row.key: row.value for row in rows}
