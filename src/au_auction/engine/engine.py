"""AuctionEngine — stateful orchestrator for per-item bid admission and settlement.

Every mutation of one item runs under that item's asyncio.Lock and, inside
it, one database transaction that also holds the item's row lock. The
in-process lock keeps same-item callers of this process in FIFO order; the
row lock covers other processes. Different items never share a lock.

Notifications are collected while the unit runs and handed to the notifier
only after the transaction committed and the lock was released.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.au_auction.domain.models import (
    AuctionItem,
    AutoExtendPolicy,
    Bid,
    PlaceBidOutcome,
    RejectBidderOutcome,
    Settlement,
)
from src.au_auction.domain.repository import AuctionRepositoryProtocol
from src.au_auction.engine.price_resolver import (
    Resolution,
    extended_end_at,
    find_champion,
    next_bid_timestamp,
    pick_winning_bid,
    reresolve,
    resolve_incoming_bid,
)
from src.au_common.datetime_utils import Clock, utc_now
from src.au_common.enums import (
    AuctionStatus,
    NotificationEvent,
    ResolutionKind,
    SettleResult,
)
from src.au_common.errors import (
    AuctionClosedError,
    AuctionNotFoundError,
    BidNotFoundError,
    ConcurrencyTimeoutError,
    NotAuthorizedError,
)
from src.au_gateway.user.identity import IdentityProtocol
from src.au_notify.events import Notification, NotifierProtocol
from src.au_risk.rules.auction_open import check_auction_open
from src.au_risk.rules.bid_amount import check_bid_amount
from src.au_risk.rules.bidder_banned import check_not_banned
from src.au_risk.rules.bidder_eligibility import check_bidder_eligible
from src.au_risk.rules.min_entry import check_minimum_entry
from src.au_settlement.domain.repository import SettlementRepositoryProtocol

logger = logging.getLogger(__name__)

THRESHOLD_SETTING_KEY = "AUTO_EXTEND_THRESHOLD_MINUTES"
DURATION_SETTING_KEY = "AUTO_EXTEND_DURATION_MINUTES"


class AuctionEngine:
    def __init__(
        self,
        repo: AuctionRepositoryProtocol,
        settlements: SettlementRepositoryProtocol,
        identity: IdentityProtocol,
        notifier: NotifierProtocol,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        lock_timeout: float | None = None,
        min_rating_percent: int | None = None,
        default_policy: AutoExtendPolicy | None = None,
    ) -> None:
        self._repo = repo
        self._settlements = settlements
        self._identity = identity
        self._notifier = notifier
        self._session_factory = session_factory
        self._clock = clock
        self._lock_timeout = (
            settings.ITEM_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
        )
        self._min_rating_percent = (
            settings.MIN_BIDDER_RATING_PERCENT
            if min_rating_percent is None
            else min_rating_percent
        )
        self._default_policy = default_policy or AutoExtendPolicy(
            threshold_minutes=settings.AUTO_EXTEND_THRESHOLD_MINUTES,
            extension_minutes=settings.AUTO_EXTEND_DURATION_MINUTES,
        )
        self._item_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def _db_lock_timeout_ms(self) -> int:
        return max(1, int(self._lock_timeout * 1000))

    @asynccontextmanager
    async def _item_lock(self, item_id: str) -> AsyncIterator[None]:
        lock = self._item_locks[item_id]
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self._lock_timeout)
        except TimeoutError:
            logger.warning(
                "Item lock wait exceeded %.1fs: item=%s", self._lock_timeout, item_id
            )
            raise ConcurrencyTimeoutError(item_id) from None
        try:
            yield
        finally:
            lock.release()

    # ------------------------------------------------------------------
    # PlaceBid
    # ------------------------------------------------------------------

    async def place_bid(
        self, item_id: str, bidder_id: str, limit: int, is_auto_bid: bool = False
    ) -> PlaceBidOutcome:
        """Admit one bid and resolve the item's visible price.

        Raises a typed AppError for every rejection; nothing is written then.
        """
        check_bid_amount(limit)
        async with self._item_lock(item_id):
            async with self._session_factory() as db, db.begin():
                item = await self._repo.lock_item(db, item_id, self._db_lock_timeout_ms)
                now = self._clock()
                item = check_auction_open(item, item_id, now)
                rating = await self._identity.get_rating(db, bidder_id)
                check_bidder_eligible(item, bidder_id, rating, self._min_rating_percent)
                bids = await self._repo.list_bids(db, item_id)
                check_not_banned(bids, bidder_id, item_id)
                check_minimum_entry(item, limit)

                new_end = None
                if item.auto_extend_enabled:
                    policy = await self._auto_extend_policy(db, item)
                    new_end = extended_end_at(item, policy, now)
                    if new_end is not None:
                        item.end_at = new_end

                champion = find_champion(bids)
                resolution = resolve_incoming_bid(item, champion, bidder_id, limit)
                bid = await self._repo.insert_bid(
                    db,
                    Bid(
                        id=None,
                        auction_item_id=item_id,
                        bidder_id=bidder_id,
                        amount=resolution.amount,
                        limit=resolution.limit,
                        is_auto_bid=is_auto_bid,
                        created_at=next_bid_timestamp(now, bids),
                    ),
                )
                item.current_price = resolution.resulting_price
                item.bid_count += 1
                await self._repo.update_item_state(db, item)

        logger.info(
            "Bid admitted: item=%s bidder=%s kind=%s price=%d winning=%s",
            item_id,
            bidder_id,
            resolution.kind.value,
            item.current_price,
            resolution.caller_winning,
        )
        self._notifier.notify_many(_bid_notifications(item, bidder_id, resolution))
        return PlaceBidOutcome(
            item_id=item_id,
            bid_id=bid.id,
            resulting_price=item.current_price,
            is_caller_winning=resolution.caller_winning,
            bid_count=item.bid_count,
            end_at=item.end_at,
            extended=new_end is not None,
        )

    async def _auto_extend_policy(
        self, db: AsyncSession, item: AuctionItem
    ) -> AutoExtendPolicy:
        """Per-item override, then app_settings, then deployment defaults."""
        threshold = item.auto_extend_threshold_minutes
        duration = item.auto_extend_duration_minutes
        if threshold is None or duration is None:
            stored = await self._repo.get_app_settings(
                db, [THRESHOLD_SETTING_KEY, DURATION_SETTING_KEY]
            )
            if threshold is None:
                threshold = _minutes_setting(
                    stored, THRESHOLD_SETTING_KEY, self._default_policy.threshold_minutes
                )
            if duration is None:
                duration = _minutes_setting(
                    stored, DURATION_SETTING_KEY, self._default_policy.extension_minutes
                )
        return AutoExtendPolicy(threshold_minutes=threshold, extension_minutes=duration)

    # ------------------------------------------------------------------
    # RejectBidder / RejectBid
    # ------------------------------------------------------------------

    async def reject_bidder(
        self, item_id: str, bidder_id: str, acting_user_id: str
    ) -> RejectBidderOutcome:
        """Strike every bid of one bidder on an item and re-resolve the price."""
        async with self._item_lock(item_id):
            async with self._session_factory() as db, db.begin():
                item = await self._repo.lock_item(db, item_id, self._db_lock_timeout_ms)
                if item is None:
                    raise AuctionNotFoundError(item_id)
                if str(acting_user_id) != str(item.seller_id) and not (
                    await self._identity.is_moderator(db, acting_user_id)
                ):
                    raise NotAuthorizedError()
                if not item.is_active:
                    raise AuctionClosedError(item_id, f"status is {item.status}")

                bids = await self._repo.list_bids(db, item_id)
                struck = [b for b in bids if b.bidder_id == bidder_id]
                if not struck:
                    raise BidNotFoundError(f"bidder {bidder_id} has no bids on {item_id}")

                rejected = await self._repo.reject_bidder_bids(db, item_id, bidder_id)
                for b in struck:
                    b.is_rejected = True
                item.current_price, item.bid_count = reresolve(item, bids)
                await self._repo.update_item_state(db, item)

        logger.info(
            "Bidder rejected: item=%s bidder=%s by=%s rows=%d price=%d count=%d",
            item_id,
            bidder_id,
            acting_user_id,
            rejected,
            item.current_price,
            item.bid_count,
        )
        self._notifier.notify_many(
            [
                Notification(
                    recipient_id=bidder_id,
                    event=NotificationEvent.BIDS_REJECTED,
                    payload={"item_id": item_id, "title": item.title},
                )
            ]
        )
        return RejectBidderOutcome(
            item_id=item_id,
            bidder_id=bidder_id,
            rejected_bids=rejected,
            current_price=item.current_price,
            bid_count=item.bid_count,
        )

    async def reject_bid(self, bid_id: int, acting_user_id: str) -> RejectBidderOutcome:
        """Reject the bidder behind one bid row, on that bid's item."""
        async with self._session_factory() as db:
            bid = await self._repo.get_bid(db, bid_id)
        if bid is None:
            raise BidNotFoundError(f"bid {bid_id}")
        return await self.reject_bidder(bid.auction_item_id, bid.bidder_id, acting_user_id)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def settle_item(self, item_id: str) -> SettleResult:
        """Close one expired item, creating its settlement if it has a winner.

        Safe to call repeatedly: items already ENDED, not yet expired, or
        already holding a settlement are skipped.
        """
        notifications: list[Notification] = []
        async with self._item_lock(item_id):
            async with self._session_factory() as db, db.begin():
                item = await self._repo.lock_item(db, item_id, self._db_lock_timeout_ms)
                now = self._clock()
                if item is None or not item.is_active or item.end_at > now:
                    return SettleResult.SKIPPED

                item.status = AuctionStatus.ENDED.value
                await self._repo.update_item_state(db, item)
                if await self._settlements.get_by_item(db, item_id) is not None:
                    logger.warning("Item %s already settled; marking ENDED only", item_id)
                    return SettleResult.SKIPPED

                winner = pick_winning_bid(await self._repo.list_bids(db, item_id))
                if winner is None:
                    result = SettleResult.UNSOLD
                    notifications.append(
                        Notification(
                            recipient_id=item.seller_id,
                            event=NotificationEvent.AUCTION_ENDED_NO_WINNER,
                            payload={"item_id": item_id, "title": item.title},
                        )
                    )
                else:
                    settlement = await self._settlements.insert(
                        db,
                        Settlement(
                            id=None,
                            auction_item_id=item_id,
                            seller_id=item.seller_id,
                            winning_bidder_id=winner.bidder_id,
                            final_price=winner.amount,
                        ),
                    )
                    if settlement is None:
                        return SettleResult.SKIPPED
                    result = SettleResult.SETTLED
                    payload: dict[str, Any] = {
                        "item_id": item_id,
                        "title": item.title,
                        "final_price": winner.amount,
                        "settlement_id": settlement.id,
                    }
                    notifications.append(
                        Notification(item.seller_id, NotificationEvent.AUCTION_SOLD, payload)
                    )
                    notifications.append(
                        Notification(winner.bidder_id, NotificationEvent.AUCTION_WON, payload)
                    )

        logger.info("Item settled: item=%s result=%s", item_id, result.value)
        self._notifier.notify_many(notifications)
        return result


def _minutes_setting(stored: dict[str, str], key: str, default: int) -> int:
    raw = stored.get(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer app setting %s=%r", key, raw)
        return default
    return value if value >= 0 else default


def _bid_notifications(
    item: AuctionItem, bidder_id: str, resolution: Resolution
) -> list[Notification]:
    base = {"item_id": item.id, "title": item.title, "current_price": item.current_price}
    previous = resolution.previous_champion
    out: list[Notification] = []

    if resolution.caller_winning:
        out.append(Notification(bidder_id, NotificationEvent.BID_WINNING, dict(base)))
    else:
        out.append(Notification(bidder_id, NotificationEvent.BID_OUTBID, dict(base)))

    if resolution.kind == ResolutionKind.TAKEOVER and previous is not None:
        out.append(Notification(previous.bidder_id, NotificationEvent.BID_OUTBID, dict(base)))
    elif resolution.kind == ResolutionKind.DEFENDED and previous is not None:
        out.append(
            Notification(previous.bidder_id, NotificationEvent.BID_DEFENDED, dict(base))
        )

    out.append(
        Notification(
            item.seller_id,
            NotificationEvent.NEW_BID,
            {**base, "bid_count": item.bid_count},
        )
    )
    return out
