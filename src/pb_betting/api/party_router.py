"""pb_betting party endpoints — the party is the settlement scope.

POST  /parties                              — create (host PIN)
GET   /parties                              — list with bet count / total wagered
GET   /parties/{party_id}                   — detail
PATCH /parties/{party_id}/archive           — archive (host PIN)
GET   /parties/{party_id}/bets              — bets in party, optional status filter
POST  /parties/{party_id}/bets              — create bet
GET   /parties/{party_id}/settlement-summary — net position per user
GET   /parties/{party_id}/settle-up         — minimal payment instructions
GET   /parties/{party_id}/users/{user_name}/wagers — one user's wagers with bet and option
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pb_betting.application.schemas import (
    CreateBetRequest,
    CreatePartyRequest,
    HostPinRequest,
)
from src.pb_betting.application.service import BettingApplicationService
from src.pb_common.database import get_db_session
from src.pb_common.enums import BetStatus
from src.pb_common.response import ApiResponse, respond

router = APIRouter(prefix="/parties", tags=["parties"])

_service = BettingApplicationService()


@router.post("", status_code=201)
async def create_party(
    body: CreatePartyRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_party(
        db, body.host_pin, body.name, body.date, body.description
    )
    return respond(request, result.model_dump())


@router.get("")
async def list_parties(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_parties(db)
    return respond(request, [p.model_dump() for p in result])


@router.get("/{party_id}")
async def get_party(
    party_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_party(db, party_id)
    return respond(request, result.model_dump())


@router.patch("/{party_id}/archive")
async def archive_party(
    party_id: int,
    body: HostPinRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.archive_party(db, party_id, body.host_pin)
    return respond(request, result.model_dump())


@router.get("/{party_id}/bets")
async def list_bets(
    party_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: BetStatus | None = Query(None, description="open, closed or settled"),
) -> ApiResponse:
    result = await _service.list_bets(db, party_id, status.value if status else None)
    return respond(request, [b.model_dump() for b in result])


@router.post("/{party_id}/bets", status_code=201)
async def create_bet(
    party_id: int,
    body: CreateBetRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_bet(
        db, party_id, body.bet_type.value, body.question, body.created_by, body.options
    )
    return respond(request, result.model_dump())


@router.get("/{party_id}/users/{user_name}/wagers")
async def list_user_wagers(
    party_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    user_name: str = Path(..., min_length=1, max_length=50),
) -> ApiResponse:
    result = await _service.list_user_wagers(db, party_id, user_name)
    return respond(request, result.model_dump())


@router.get("/{party_id}/settlement-summary")
async def get_settlement_summary(
    party_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_settlement_summary(db, party_id)
    return respond(request, result.model_dump())


@router.get("/{party_id}/settle-up")
async def get_settle_up_plan(
    party_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_settle_up_plan(db, party_id)
    return respond(request, result.model_dump())
