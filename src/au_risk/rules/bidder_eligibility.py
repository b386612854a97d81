"""Seller-configured bidder policy.

A bidder with no rating history may bid only where the seller allows unrated
bidders. Once rated, the favourable share must reach min_percent. Integer
comparison: positive * 100 >= min_percent * total.
"""
from src.au_auction.domain.models import AuctionItem, BidderRating
from src.au_common.errors import BidderNotEligibleError


def check_bidder_eligible(
    item: AuctionItem,
    bidder_id: str,
    rating: BidderRating | None,
    min_percent: int,
) -> None:
    if str(bidder_id) == str(item.seller_id):
        raise BidderNotEligibleError("sellers cannot bid on their own auction")
    if rating is None:
        raise BidderNotEligibleError("unknown or inactive bidder")
    if rating.total == 0:
        if not item.allows_unrated_bidders:
            raise BidderNotEligibleError("seller does not allow unrated bidders")
        return
    if rating.positive * 100 < min_percent * rating.total:
        raise BidderNotEligibleError(f"rating is below {min_percent}%")
