"""AuctionApplicationService — composition layer between routers and the engine.

Every method returns the ApiResponse envelope: code 0 on success, the
AppError's code, status and retryable flag otherwise. Expected business
failures never escape as exceptions; SQLAlchemyError does and is rendered
by the app-level handler.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.au_auction.application.schemas import (
    AuctionStateResponse,
    BidHistoryItem,
    BidHistoryResponse,
    PlaceBidResponse,
    RejectBidderResponse,
    visible_bidder_id,
)
from src.au_auction.domain.repository import AuctionRepositoryProtocol
from src.au_auction.engine.engine import AuctionEngine
from src.au_auction.engine.price_resolver import find_champion, valid_bids
from src.au_auction.infrastructure.persistence import AuctionRepository
from src.au_common.database import async_session_factory
from src.au_common.errors import AppError, AuctionNotFoundError
from src.au_common.response import ApiResponse, error_from, success_response
from src.au_gateway.user.identity import IdentityService
from src.au_notify.service import get_notification_dispatcher
from src.au_settlement.infrastructure.persistence import SettlementRepository

_engine: AuctionEngine | None = None
_service: "AuctionApplicationService | None" = None


def get_auction_engine() -> AuctionEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = AuctionEngine(
            repo=AuctionRepository(),
            settlements=SettlementRepository(),
            identity=IdentityService(),
            notifier=get_notification_dispatcher(),
            session_factory=async_session_factory,
        )
    return _engine


class AuctionApplicationService:
    def __init__(
        self,
        engine: AuctionEngine | None = None,
        repo: AuctionRepositoryProtocol | None = None,
    ) -> None:
        self._engine = engine
        self._repo: AuctionRepositoryProtocol = repo or AuctionRepository()

    @property
    def engine(self) -> AuctionEngine:
        return self._engine or get_auction_engine()

    async def place_bid(
        self, item_id: str, bidder_id: str, limit_cents: int, is_auto_bid: bool = False
    ) -> ApiResponse:
        try:
            outcome = await self.engine.place_bid(item_id, bidder_id, limit_cents, is_auto_bid)
        except AppError as exc:
            return error_from(exc)
        return success_response(PlaceBidResponse.from_outcome(outcome).model_dump(mode="json"))

    async def reject_bidder(
        self, item_id: str, bidder_id: str, acting_user_id: str
    ) -> ApiResponse:
        try:
            outcome = await self.engine.reject_bidder(item_id, bidder_id, acting_user_id)
        except AppError as exc:
            return error_from(exc)
        return success_response(RejectBidderResponse.from_outcome(outcome).model_dump())

    async def reject_bid(self, bid_id: int, acting_user_id: str) -> ApiResponse:
        try:
            outcome = await self.engine.reject_bid(bid_id, acting_user_id)
        except AppError as exc:
            return error_from(exc)
        return success_response(RejectBidderResponse.from_outcome(outcome).model_dump())

    async def get_auction_state(
        self, db: AsyncSession, item_id: str, viewer_id: str | None
    ) -> ApiResponse:
        item = await self._repo.get_item(db, item_id)
        if item is None:
            return error_from(AuctionNotFoundError(item_id))
        leader = find_champion(await self._repo.list_bids(db, item_id))
        state = AuctionStateResponse.from_domain(item, leader, viewer_id)
        return success_response(state.model_dump(mode="json"))

    async def get_bid_history(
        self, db: AsyncSession, item_id: str, viewer_id: str | None
    ) -> ApiResponse:
        """Seller sees every bid with real ids; others see surviving bids, masked.

        Ordered by amount DESC, then newest first.
        """
        item = await self._repo.get_item(db, item_id)
        if item is None:
            return error_from(AuctionNotFoundError(item_id))
        bids = await self._repo.list_bids(db, item_id)
        is_seller = viewer_id is not None and str(viewer_id) == str(item.seller_id)
        visible = bids if is_seller else valid_bids(bids)
        visible = sorted(visible, key=lambda b: (b.amount, b.created_at), reverse=True)
        rows = [
            BidHistoryItem.from_domain(b, visible_bidder_id(b.bidder_id, viewer_id, item.seller_id))
            for b in visible
        ]
        history = BidHistoryResponse(item_id=item_id, bids=rows)
        return success_response(history.model_dump(mode="json"))


def get_auction_service() -> AuctionApplicationService:
    """FastAPI dependency; overridden in router tests."""
    global _service  # noqa: PLW0603
    if _service is None:
        _service = AuctionApplicationService()
    return _service
