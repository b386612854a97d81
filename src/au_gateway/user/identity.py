"""Identity collaborator — the yes/no facts the auction engine needs about a user.

IdentityProtocol is what the engine depends on; IdentityService answers it from
the users table with raw SQL.
"""
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.au_auction.domain.models import BidderRating
from src.au_common.enums import UserRole

_GET_RATING_SQL = text("""
    SELECT positive_ratings, negative_ratings
    FROM users
    WHERE id = :user_id AND is_active
""")

_GET_ROLE_SQL = text("SELECT role FROM users WHERE id = :user_id AND is_active")


class IdentityProtocol(Protocol):
    async def get_rating(self, db: AsyncSession, user_id: str) -> BidderRating | None: ...

    async def is_moderator(self, db: AsyncSession, user_id: str) -> bool: ...


class IdentityService:
    async def get_rating(self, db: AsyncSession, user_id: str) -> BidderRating | None:
        """None for unknown or disabled users."""
        row = (await db.execute(_GET_RATING_SQL, {"user_id": user_id})).fetchone()
        if row is None:
            return None
        return BidderRating(positive=row.positive_ratings, negative=row.negative_ratings)

    async def is_moderator(self, db: AsyncSession, user_id: str) -> bool:
        role = (await db.execute(_GET_ROLE_SQL, {"user_id": user_id})).scalar_one_or_none()
        return role == UserRole.MODERATOR.value
