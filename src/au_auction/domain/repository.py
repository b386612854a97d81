# src/au_auction/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory implementation that conforms to this Protocol.
Infrastructure layer provides the PostgreSQL implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.au_auction.domain.models import AuctionItem, Bid


class AuctionRepositoryProtocol(Protocol):
    async def get_item(self, db: AsyncSession, item_id: str) -> AuctionItem | None: ...

    async def lock_item(
        self, db: AsyncSession, item_id: str, timeout_ms: int
    ) -> AuctionItem | None:
        """Load the item and hold its row lock until the transaction ends."""
        ...

    async def update_item_state(self, db: AsyncSession, item: AuctionItem) -> None: ...

    async def list_bids(self, db: AsyncSession, item_id: str) -> list[Bid]:
        """All bids of an item, rejected included, in admission order."""
        ...

    async def get_bid(self, db: AsyncSession, bid_id: int) -> Bid | None: ...

    async def insert_bid(self, db: AsyncSession, bid: Bid) -> Bid: ...

    async def reject_bidder_bids(
        self, db: AsyncSession, item_id: str, bidder_id: str
    ) -> int: ...

    async def list_expired_item_ids(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[str]: ...

    async def get_app_settings(
        self, db: AsyncSession, keys: list[str]
    ) -> dict[str, str]: ...
