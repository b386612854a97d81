# src/au_settlement/domain/repository.py
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.au_auction.domain.models import Settlement


class SettlementRepositoryProtocol(Protocol):
    async def get_by_item(self, db: AsyncSession, item_id: str) -> Settlement | None: ...

    async def insert(self, db: AsyncSession, settlement: Settlement) -> Settlement | None:
        """None when the item already has a settlement."""
        ...
