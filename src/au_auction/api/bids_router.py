"""POST /bids/{bid_id}/reject — strike the bidder behind one bid on its item."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.au_auction.application.service import AuctionApplicationService, get_auction_service
from src.au_common.response import to_json_response
from src.au_gateway.auth.dependencies import get_current_user
from src.au_gateway.user.db_models import UserModel

router = APIRouter(prefix="/bids", tags=["bids"])


@router.post("/{bid_id}/reject")
async def reject_bid(
    bid_id: int,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[AuctionApplicationService, Depends(get_auction_service)],
) -> JSONResponse:
    resp = await service.reject_bid(bid_id, str(current_user.id))
    return to_json_response(resp, getattr(request.state, "request_id", None))
