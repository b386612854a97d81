"""Integration-test fixtures (live PostgreSQL, migrated with `alembic upgrade head`).

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool remains valid across the whole session.
"""
import uuid
from datetime import UTC, datetime, timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.au_common.database import async_session_factory
from src.au_gateway.auth.jwt_handler import create_access_token
from src.main import app

_INSERT_USER_SQL = text("""
    INSERT INTO users (id, username, role, positive_ratings, negative_ratings)
    VALUES (:id, :username, :role, :positive, :negative)
""")

_INSERT_ITEM_SQL = text("""
    INSERT INTO auction_items (
        id, seller_id, title, starting_price, current_price, bid_step, end_at,
        auto_extend_enabled, allows_unrated_bidders
    ) VALUES (
        :id, :seller_id, :title, :starting_price, :starting_price, :bid_step, :end_at,
        :auto_extend_enabled, TRUE
    )
""")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_user(role: str = "USER", positive: int = 0, negative: int = 0) -> str:
    user_id = str(uuid.uuid4())
    async with async_session_factory() as db, db.begin():
        await db.execute(
            _INSERT_USER_SQL,
            {
                "id": user_id,
                "username": f"it_{user_id[:8]}",
                "role": role,
                "positive": positive,
                "negative": negative,
            },
        )
    return user_id


async def create_item(
    seller_id: str,
    starting_price: int = 100,
    bid_step: int = 10,
    ends_in: timedelta = timedelta(hours=1),
    auto_extend_enabled: bool = False,
) -> str:
    item_id = f"it-{uuid.uuid4().hex[:12]}"
    async with async_session_factory() as db, db.begin():
        await db.execute(
            _INSERT_ITEM_SQL,
            {
                "id": item_id,
                "seller_id": seller_id,
                "title": "Integration lot",
                "starting_price": starting_price,
                "bid_step": bid_step,
                "end_at": datetime.now(UTC) + ends_in,
                "auto_extend_enabled": auto_extend_enabled,
            },
        )
    return item_id


def auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest_asyncio.fixture(loop_scope="session")
async def seeded():  # type: ignore[no-untyped-def]
    """Seeding helpers: seeded.user(), seeded.item(seller_id), seeded.auth(user_id)."""

    class _Seed:
        user = staticmethod(create_user)
        item = staticmethod(create_item)
        auth = staticmethod(auth)

    return _Seed
