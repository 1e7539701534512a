"""POST /host/verify-pin — lets a client check the host PIN before showing host controls."""

from fastapi import APIRouter, Request

from src.pb_betting.application.schemas import HostPinRequest, VerifyPinResponse
from src.pb_betting.application.service import BettingApplicationService
from src.pb_common.errors import InvalidHostPinError
from src.pb_common.response import ApiResponse, respond

router = APIRouter(prefix="/host", tags=["host"])

_service = BettingApplicationService()


@router.post("/verify-pin")
async def verify_pin(body: HostPinRequest, request: Request) -> ApiResponse:
    if not _service.verify_pin(body.host_pin):
        raise InvalidHostPinError()
    return respond(request, VerifyPinResponse(valid=True).model_dump())
