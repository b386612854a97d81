from src.au_auction.domain.models import AuctionItem
from src.au_common.errors import BidTooLowError


def check_minimum_entry(item: AuctionItem, limit: int) -> None:
    """starting_price for the first bid, current_price + bid_step afterwards."""
    minimum = item.minimum_entry
    if limit < minimum:
        raise BidTooLowError(minimum=minimum, submitted=limit)
