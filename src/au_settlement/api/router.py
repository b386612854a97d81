# src/au_settlement/api/router.py
"""Admin REST API: run a settlement sweep on demand (moderators only)."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.au_common.response import success_response, to_json_response
from src.au_gateway.auth.dependencies import require_moderator
from src.au_gateway.user.db_models import UserModel
from src.au_settlement.application.service import get_settlement_sweeper
from src.au_settlement.application.sweeper import SettlementSweeper

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/settlements/sweep")
async def run_settlement_sweep(
    request: Request,
    moderator: Annotated[UserModel, Depends(require_moderator)],
    sweeper: Annotated[SettlementSweeper, Depends(get_settlement_sweeper)],
) -> JSONResponse:
    report = await sweeper.run_once()
    return to_json_response(
        success_response(report.to_dict()), getattr(request.state, "request_id", None)
    )
