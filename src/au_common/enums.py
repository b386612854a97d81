"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class AuctionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class SettlementStatus(str, Enum):
    """Only the initial state is written by this service; the rest belong to fulfilment."""
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PENDING_SHIPPING = "PENDING_SHIPPING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class UserRole(str, Enum):
    USER = "USER"
    MODERATOR = "MODERATOR"


class NotificationEvent(str, Enum):
    # Bidder side
    BID_WINNING = "BID_WINNING"
    BID_OUTBID = "BID_OUTBID"
    BID_DEFENDED = "BID_DEFENDED"
    BIDS_REJECTED = "BIDS_REJECTED"
    AUCTION_WON = "AUCTION_WON"
    # Seller side
    NEW_BID = "NEW_BID"
    AUCTION_SOLD = "AUCTION_SOLD"
    AUCTION_ENDED_NO_WINNER = "AUCTION_ENDED_NO_WINNER"


class ResolutionKind(str, Enum):
    """Which proxy-bidding branch admitted an incoming bid."""
    FIRST_BID = "FIRST_BID"
    SELF_RAISE = "SELF_RAISE"
    TAKEOVER = "TAKEOVER"
    DEFENDED = "DEFENDED"


class SettleResult(str, Enum):
    SETTLED = "SETTLED"
    UNSOLD = "UNSOLD"
    SKIPPED = "SKIPPED"
