from src.au_auction.domain.models import Bid
from src.au_common.errors import BidderBannedError


def is_banned(bids: list[Bid], bidder_id: str) -> bool:
    """Any rejected row by this bidder bans them from the item."""
    return any(b.is_rejected and b.bidder_id == bidder_id for b in bids)


def check_not_banned(bids: list[Bid], bidder_id: str, item_id: str) -> None:
    if is_banned(bids, bidder_id):
        raise BidderBannedError(item_id)
