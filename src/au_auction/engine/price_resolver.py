"""Proxy-bidding (English auction) price resolution.

Pure functions over domain objects: no I/O, no locking. The engine calls these
while holding the item lock, with the item's full bid list already loaded.

Champion ordering everywhere: limit DESC, created_at ASC, id ASC.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.au_auction.domain.models import AuctionItem, AutoExtendPolicy, Bid
from src.au_common.enums import ResolutionKind

_TICK = timedelta(microseconds=1)


@dataclass
class Resolution:
    kind: ResolutionKind
    amount: int  # recorded on the incoming bid row
    limit: int
    resulting_price: int
    caller_winning: bool
    previous_champion: Bid | None


def champion_sort_key(bid: Bid) -> tuple[int, datetime, int]:
    return (-bid.limit, bid.created_at, bid.id or 0)


def valid_bids(bids: list[Bid]) -> list[Bid]:
    return [b for b in bids if not b.is_rejected]


def find_champion(bids: list[Bid]) -> Bid | None:
    """Non-rejected bid with the greatest limit; earliest wins ties."""
    candidates = valid_bids(bids)
    if not candidates:
        return None
    return min(candidates, key=champion_sort_key)


def resolve_incoming_bid(
    item: AuctionItem, champion: Bid | None, bidder_id: str, incoming_limit: int
) -> Resolution:
    """Decide price, winner and the row to record for one admitted bid.

    Caller has already checked incoming_limit >= item.minimum_entry.
    """
    if champion is None:
        return Resolution(
            kind=ResolutionKind.FIRST_BID,
            amount=item.starting_price,
            limit=incoming_limit,
            resulting_price=item.starting_price,
            caller_winning=True,
            previous_champion=None,
        )

    if champion.bidder_id == bidder_id:
        # Raising one's own ceiling never moves the price
        return Resolution(
            kind=ResolutionKind.SELF_RAISE,
            amount=item.current_price,
            limit=incoming_limit,
            resulting_price=item.current_price,
            caller_winning=True,
            previous_champion=champion,
        )

    if incoming_limit > champion.limit:
        price = min(incoming_limit, champion.limit + item.bid_step)
        return Resolution(
            kind=ResolutionKind.TAKEOVER,
            amount=price,
            limit=incoming_limit,
            resulting_price=price,
            caller_winning=True,
            previous_champion=champion,
        )

    # Champion's proxy matches the challenger's ceiling. Only the challenger's
    # exhausted attempt is recorded; the champion's rows stay untouched.
    return Resolution(
        kind=ResolutionKind.DEFENDED,
        amount=incoming_limit,
        limit=incoming_limit,
        resulting_price=incoming_limit,
        caller_winning=False,
        previous_champion=champion,
    )


def reresolve(item: AuctionItem, bids: list[Bid]) -> tuple[int, int]:
    """Recompute (current_price, bid_count) from the bids that survive a rejection.

    bid_count becomes the number of surviving rows, not a replay of bid events.
    Winner and runner-up are the first two rows in champion order, even when
    both belong to the same bidder.
    """
    remaining = sorted(valid_bids(bids), key=champion_sort_key)
    if not remaining:
        return item.starting_price, 0
    if len(remaining) == 1:
        return item.starting_price, 1

    winner, runner_up = remaining[0], remaining[1]

    if winner.created_at < runner_up.created_at:
        # Winner was already leading when the runner-up bid: a defense
        price = runner_up.limit
    else:
        price = min(winner.limit, runner_up.limit + item.bid_step)
    return max(price, item.starting_price), len(remaining)


def pick_winning_bid(bids: list[Bid]) -> Bid | None:
    """Settlement winner: highest visible amount among non-rejected bids.

    Ordered by amount (what the buyer owes), not limit; earliest wins ties.
    """
    candidates = valid_bids(bids)
    if not candidates:
        return None
    return min(candidates, key=lambda b: (-b.amount, b.created_at, b.id or 0))


def next_bid_timestamp(now: datetime, bids: list[Bid]) -> datetime:
    """created_at for a new row: never earlier than, nor equal to, the item's last bid."""
    if not bids:
        return now
    latest = max(b.created_at for b in bids)
    return now if now > latest else latest + _TICK


def extended_end_at(
    item: AuctionItem, policy: AutoExtendPolicy, now: datetime
) -> datetime | None:
    """New end time if this bid lands inside the trailing window, else None."""
    if not item.auto_extend_enabled:
        return None
    if item.end_at - now > timedelta(minutes=policy.threshold_minutes):
        return None
    return now + timedelta(minutes=policy.extension_minutes)
