from datetime import datetime

from src.au_auction.domain.models import AuctionItem
from src.au_common.errors import AuctionClosedError, AuctionNotFoundError


def check_auction_open(item: AuctionItem | None, item_id: str, now: datetime) -> AuctionItem:
    """Open means ACTIVE and strictly before end_at, whether or not the sweeper ran."""
    if item is None:
        raise AuctionNotFoundError(item_id)
    if not item.is_active:
        raise AuctionClosedError(item_id, f"status is {item.status}")
    if now >= item.end_at:
        raise AuctionClosedError(item_id, "auction has ended")
    return item
