"""In-memory collaborators for AuctionEngine / SettlementSweeper unit tests.

InMemoryAuctionRepository hands out copies, so state changes only become
visible through update_item_state / insert_bid, like the SQL repository.
Every method yields to the event loop once so concurrent tests interleave.
"""
import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from src.au_auction.domain.models import AuctionItem, AutoExtendPolicy, Bid, BidderRating, Settlement
from src.au_auction.engine.engine import AuctionEngine
from src.au_notify.events import Notification

SELLER = "seller-0001"
T0 = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False

    @asynccontextmanager
    async def begin(self) -> AsyncIterator["FakeSession"]:
        try:
            yield self
        except BaseException:
            self.rollbacks += 1
            raise
        self.commits += 1


class FakeSessionFactory:
    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []

    def __call__(self) -> FakeSession:
        session = FakeSession()
        self.sessions.append(session)
        return session

    @property
    def commits(self) -> int:
        return sum(s.commits for s in self.sessions)

    @property
    def rollbacks(self) -> int:
        return sum(s.rollbacks for s in self.sessions)


class InMemoryAuctionRepository:
    def __init__(self) -> None:
        self.items: dict[str, AuctionItem] = {}
        self.bids: list[Bid] = []
        self.app_settings: dict[str, str] = {}
        self._next_bid_id = 1

    def add_item(self, item: AuctionItem) -> AuctionItem:
        self.items[item.id] = replace(item)
        return item

    def bids_of(self, item_id: str) -> list[Bid]:
        return [b for b in self.bids if b.auction_item_id == item_id]

    async def get_item(self, db: Any, item_id: str) -> AuctionItem | None:
        await asyncio.sleep(0)
        item = self.items.get(item_id)
        return replace(item) if item else None

    async def lock_item(self, db: Any, item_id: str, timeout_ms: int) -> AuctionItem | None:
        return await self.get_item(db, item_id)

    async def update_item_state(self, db: Any, item: AuctionItem) -> None:
        await asyncio.sleep(0)
        self.items[item.id] = replace(item)

    async def list_bids(self, db: Any, item_id: str) -> list[Bid]:
        await asyncio.sleep(0)
        return [replace(b) for b in self.bids_of(item_id)]

    async def get_bid(self, db: Any, bid_id: int) -> Bid | None:
        await asyncio.sleep(0)
        found = next((b for b in self.bids if b.id == bid_id), None)
        return replace(found) if found else None

    async def insert_bid(self, db: Any, bid: Bid) -> Bid:
        await asyncio.sleep(0)
        bid.id = self._next_bid_id
        self._next_bid_id += 1
        self.bids.append(replace(bid))
        return bid

    async def reject_bidder_bids(self, db: Any, item_id: str, bidder_id: str) -> int:
        await asyncio.sleep(0)
        count = 0
        for b in self.bids_of(item_id):
            if b.bidder_id == bidder_id and not b.is_rejected:
                b.is_rejected = True
                count += 1
        return count

    async def list_expired_item_ids(self, db: Any, now: datetime, limit: int) -> list[str]:
        await asyncio.sleep(0)
        expired = sorted(
            (i for i in self.items.values() if i.status == "ACTIVE" and i.end_at <= now),
            key=lambda i: (i.end_at, i.id),
        )
        return [i.id for i in expired[:limit]]

    async def get_app_settings(self, db: Any, keys: list[str]) -> dict[str, str]:
        return {k: v for k, v in self.app_settings.items() if k in keys}


class InMemorySettlementRepository:
    def __init__(self) -> None:
        self.rows: dict[str, Settlement] = {}
        self._next_id = 1

    async def get_by_item(self, db: Any, item_id: str) -> Settlement | None:
        return self.rows.get(item_id)

    async def insert(self, db: Any, settlement: Settlement) -> Settlement | None:
        if settlement.auction_item_id in self.rows:
            return None
        settlement.id = self._next_id
        self._next_id += 1
        self.rows[settlement.auction_item_id] = settlement
        return settlement


class FakeIdentity:
    """Every bidder starts known and unrated; tests adjust ratings as needed."""

    def __init__(self) -> None:
        self.ratings: dict[str, BidderRating | None] = {}
        self.moderators: set[str] = set()

    async def get_rating(self, db: Any, user_id: str) -> BidderRating | None:
        return self.ratings.get(user_id, BidderRating(positive=0, negative=0))

    async def is_moderator(self, db: Any, user_id: str) -> bool:
        return user_id in self.moderators


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def notify_many(self, notifications: list[Notification]) -> None:
        self.sent.extend(notifications)

    def events_for(self, recipient_id: str) -> list[str]:
        return [n.event.value for n in self.sent if n.recipient_id == recipient_id]


def make_item(**kwargs: Any) -> AuctionItem:
    defaults: dict[str, Any] = {
        "id": "lot-1",
        "seller_id": SELLER,
        "title": "Vintage camera",
        "starting_price": 100,
        "current_price": 100,
        "bid_step": 10,
        "bid_count": 0,
        "end_at": T0 + timedelta(days=1),
        "auto_extend_enabled": False,
        "allows_unrated_bidders": True,
        "status": "ACTIVE",
    }
    defaults.update(kwargs)
    return AuctionItem(**defaults)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo() -> InMemoryAuctionRepository:
    return InMemoryAuctionRepository()


@pytest.fixture
def settlements() -> InMemorySettlementRepository:
    return InMemorySettlementRepository()


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def engine(
    repo: InMemoryAuctionRepository,
    settlements: InMemorySettlementRepository,
    identity: FakeIdentity,
    notifier: RecordingNotifier,
    session_factory: FakeSessionFactory,
    clock: FakeClock,
) -> AuctionEngine:
    return AuctionEngine(
        repo=repo,
        settlements=settlements,
        identity=identity,
        notifier=notifier,
        session_factory=session_factory,  # type: ignore[arg-type]
        clock=clock,
        lock_timeout=0.5,
        min_rating_percent=80,
        default_policy=AutoExtendPolicy(threshold_minutes=5, extension_minutes=10),
    )


@pytest.fixture
def item(repo: InMemoryAuctionRepository) -> AuctionItem:
    return repo.add_item(make_item())


@pytest.fixture
def add_item(repo: InMemoryAuctionRepository, clock: FakeClock):  # type: ignore[no-untyped-def]
    """Factory: add_item(id="lot-2", bid_step=5, ...) stores and returns an item."""

    def _add(**kwargs: Any) -> AuctionItem:
        kwargs.setdefault("end_at", clock.now + timedelta(days=1))
        return repo.add_item(make_item(**kwargs))

    return _add
