"""Pydantic schemas for au_auction requests and responses.

Money is integer cents on the wire; *_display fields are for humans only.
Bidder ids shown to anyone but the seller (or the bidder themselves) are
masked to "****" + the last BID_HISTORY_MASK_CHARS characters.
"""

from datetime import datetime

from pydantic import BaseModel

from config.settings import settings
from src.au_auction.domain.models import (
    AuctionItem,
    Bid,
    PlaceBidOutcome,
    RejectBidderOutcome,
)
from src.au_common.cents import cents_to_display


def mask_bidder_id(bidder_id: str, chars: int | None = None) -> str:
    keep = settings.BID_HISTORY_MASK_CHARS if chars is None else chars
    tail = bidder_id[-keep:] if keep > 0 else ""
    return f"****{tail}"


def visible_bidder_id(bidder_id: str, viewer_id: str | None, seller_id: str) -> str:
    if viewer_id is not None and str(viewer_id) in (str(seller_id), bidder_id):
        return bidder_id
    return mask_bidder_id(bidder_id)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PlaceBidRequest(BaseModel):
    limit_cents: int
    is_auto_bid: bool = False


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PlaceBidResponse(BaseModel):
    item_id: str
    bid_id: int | None
    current_price_cents: int
    current_price_display: str
    is_winning: bool
    bid_count: int
    end_at: datetime
    extended: bool

    @classmethod
    def from_outcome(cls, outcome: PlaceBidOutcome) -> "PlaceBidResponse":
        return cls(
            item_id=outcome.item_id,
            bid_id=outcome.bid_id,
            current_price_cents=outcome.resulting_price,
            current_price_display=cents_to_display(outcome.resulting_price),
            is_winning=outcome.is_caller_winning,
            bid_count=outcome.bid_count,
            end_at=outcome.end_at,
            extended=outcome.extended,
        )


class RejectBidderResponse(BaseModel):
    item_id: str
    bidder_id: str
    rejected_bids: int
    current_price_cents: int
    bid_count: int

    @classmethod
    def from_outcome(cls, outcome: RejectBidderOutcome) -> "RejectBidderResponse":
        return cls(
            item_id=outcome.item_id,
            bidder_id=outcome.bidder_id,
            rejected_bids=outcome.rejected_bids,
            current_price_cents=outcome.current_price,
            bid_count=outcome.bid_count,
        )


class AuctionStateResponse(BaseModel):
    item_id: str
    title: str
    status: str
    starting_price_cents: int
    current_price_cents: int
    current_price_display: str
    bid_step_cents: int
    minimum_next_bid_cents: int
    bid_count: int
    end_at: datetime
    auto_extend_enabled: bool
    leading_bidder_id: str | None

    @classmethod
    def from_domain(
        cls, item: AuctionItem, leader: Bid | None, viewer_id: str | None
    ) -> "AuctionStateResponse":
        return cls(
            item_id=item.id,
            title=item.title,
            status=item.status,
            starting_price_cents=item.starting_price,
            current_price_cents=item.current_price,
            current_price_display=cents_to_display(item.current_price),
            bid_step_cents=item.bid_step,
            minimum_next_bid_cents=item.minimum_entry,
            bid_count=item.bid_count,
            end_at=item.end_at,
            auto_extend_enabled=item.auto_extend_enabled,
            leading_bidder_id=(
                visible_bidder_id(leader.bidder_id, viewer_id, item.seller_id)
                if leader
                else None
            ),
        )


class BidHistoryItem(BaseModel):
    bid_id: int | None
    bidder_id: str
    amount_cents: int
    amount_display: str
    is_auto_bid: bool
    is_rejected: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, bid: Bid, bidder_id: str) -> "BidHistoryItem":
        return cls(
            bid_id=bid.id,
            bidder_id=bidder_id,
            amount_cents=bid.amount,
            amount_display=cents_to_display(bid.amount),
            is_auto_bid=bid.is_auto_bid,
            is_rejected=bid.is_rejected,
            created_at=bid.created_at,
        )


class BidHistoryResponse(BaseModel):
    item_id: str
    bids: list[BidHistoryItem]
