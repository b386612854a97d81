"""Domain models for au_auction — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.au_common.enums import AuctionStatus, SettlementStatus


@dataclass
class AuctionItem:
    id: str
    seller_id: str
    title: str
    starting_price: int  # cents
    current_price: int  # cents, >= starting_price
    bid_step: int  # cents, > 0
    bid_count: int
    end_at: datetime
    auto_extend_enabled: bool
    allows_unrated_bidders: bool
    status: str  # ACTIVE / ENDED / CANCELLED
    # Per-item auto-extend override; None falls back to deployment policy
    auto_extend_threshold_minutes: int | None = None
    auto_extend_duration_minutes: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == AuctionStatus.ACTIVE.value

    @property
    def minimum_entry(self) -> int:
        """Lowest ceiling the next bid may carry."""
        if self.bid_count == 0:
            return self.starting_price
        return self.current_price + self.bid_step


@dataclass
class Bid:
    id: int | None
    auction_item_id: str
    bidder_id: str
    amount: int  # visible price this bid caused when placed
    limit: int  # ceiling the bidder authorized, >= amount
    is_auto_bid: bool
    created_at: datetime
    is_rejected: bool = False


@dataclass
class Settlement:
    id: int | None
    auction_item_id: str
    seller_id: str
    winning_bidder_id: str
    final_price: int
    status: str = SettlementStatus.PENDING_PAYMENT.value
    created_at: datetime | None = None


@dataclass(frozen=True)
class AutoExtendPolicy:
    threshold_minutes: int
    extension_minutes: int


@dataclass(frozen=True)
class BidderRating:
    positive: int
    negative: int

    @property
    def total(self) -> int:
        return self.positive + self.negative


@dataclass
class PlaceBidOutcome:
    """What PlaceBid reports back to its caller."""

    item_id: str
    bid_id: int | None
    resulting_price: int
    is_caller_winning: bool
    bid_count: int
    end_at: datetime
    extended: bool


@dataclass
class RejectBidderOutcome:
    item_id: str
    bidder_id: str
    rejected_bids: int
    current_price: int
    bid_count: int
