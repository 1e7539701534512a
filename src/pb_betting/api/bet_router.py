"""pb_betting bet endpoints.

GET  /bets/{bet_id}          — detail with options, wagers, pool, settlements
POST /bets/{bet_id}/close    — open -> closed (host PIN or creator)
POST /bets/{bet_id}/settle   — closed -> settled, writes settlements
POST /bets/{bet_id}/wagers   — place a wager on an open bet
GET  /bets/{bet_id}/wagers   — wagers on a bet
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pb_betting.application.schemas import (
    CloseBetRequest,
    PlaceWagerRequest,
    SettleBetRequest,
)
from src.pb_betting.application.service import BettingApplicationService
from src.pb_betting.domain.lifecycle import Caller
from src.pb_common.database import get_db_session
from src.pb_common.response import ApiResponse, respond

router = APIRouter(prefix="/bets", tags=["bets"])

_service = BettingApplicationService()


@router.get("/{bet_id}")
async def get_bet(
    bet_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_bet(db, bet_id)
    return respond(request, result.model_dump())


@router.post("/{bet_id}/close")
async def close_bet(
    bet_id: int,
    body: CloseBetRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    caller = Caller(host_pin=body.host_pin, created_by=body.created_by)
    result = await _service.close_bet(db, bet_id, caller)
    return respond(request, result.model_dump())


@router.post("/{bet_id}/settle")
async def settle_bet(
    bet_id: int,
    body: SettleBetRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    caller = Caller(host_pin=body.host_pin, created_by=body.created_by)
    result = await _service.settle_bet(db, bet_id, body.winning_option_id, caller)
    return respond(request, result.model_dump())


@router.post("/{bet_id}/wagers", status_code=201)
async def place_wager(
    bet_id: int,
    body: PlaceWagerRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.place_wager(
        db, bet_id, body.user_name, body.option_id, body.amount
    )
    return respond(request, result.model_dump())


@router.get("/{bet_id}/wagers")
async def list_wagers(
    bet_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_wagers(db, bet_id)
    return respond(request, [w.model_dump() for w in result])
