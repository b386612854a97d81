"""au_auction REST endpoints.

POST /auctions/{item_id}/bids                          — place (proxy) bid
POST /auctions/{item_id}/bidders/{bidder_id}/reject    — seller/moderator strikes a bidder
GET  /auctions/{item_id}                               — price, leader, minimum next bid
GET  /auctions/{item_id}/bids                          — bid history (masked for non-sellers)
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.au_auction.application.schemas import PlaceBidRequest
from src.au_auction.application.service import AuctionApplicationService, get_auction_service
from src.au_common.database import get_db_session
from src.au_common.response import to_json_response
from src.au_gateway.auth.dependencies import get_current_user
from src.au_gateway.user.db_models import UserModel

router = APIRouter(prefix="/auctions", tags=["auctions"])


@router.post("/{item_id}/bids")
async def place_bid(
    item_id: str,
    body: PlaceBidRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[AuctionApplicationService, Depends(get_auction_service)],
) -> JSONResponse:
    resp = await service.place_bid(
        item_id, str(current_user.id), body.limit_cents, body.is_auto_bid
    )
    return to_json_response(resp, getattr(request.state, "request_id", None))


@router.post("/{item_id}/bidders/{bidder_id}/reject")
async def reject_bidder(
    item_id: str,
    bidder_id: uuid.UUID,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[AuctionApplicationService, Depends(get_auction_service)],
) -> JSONResponse:
    resp = await service.reject_bidder(item_id, str(bidder_id), str(current_user.id))
    return to_json_response(resp, getattr(request.state, "request_id", None))


@router.get("/{item_id}")
async def get_auction(
    item_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AuctionApplicationService, Depends(get_auction_service)],
) -> JSONResponse:
    resp = await service.get_auction_state(db, item_id, str(current_user.id))
    return to_json_response(resp, getattr(request.state, "request_id", None))


@router.get("/{item_id}/bids")
async def get_bid_history(
    item_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AuctionApplicationService, Depends(get_auction_service)],
) -> JSONResponse:
    resp = await service.get_bid_history(db, item_id, str(current_user.id))
    return to_json_response(resp, getattr(request.state, "request_id", None))
