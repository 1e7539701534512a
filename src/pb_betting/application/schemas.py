"""Pydantic schemas for pb_betting API requests and responses.

Money goes out twice: exact int cents (`*_cents`) plus a display string.
Request-side validation happens here so the settlement core sees clean input.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from config.settings import settings
from src.pb_betting.domain.models import (
    Bet,
    NetPosition,
    Party,
    PayoutResult,
    Settlement,
    SettlementSummary,
    Transfer,
    UserWager,
    WagerRecord,
)
from src.pb_common.cents import cents_to_display
from src.pb_common.enums import BetType

_PIN_PATTERN = r"^\d{4}$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class HostPinRequest(BaseModel):
    host_pin: str = Field(..., pattern=_PIN_PATTERN, description="4-digit host PIN")


class CreatePartyRequest(HostPinRequest):
    name: str = Field(..., min_length=1, max_length=100)
    date: datetime
    description: str | None = Field(None, max_length=500)


class CreateBetRequest(BaseModel):
    bet_type: BetType
    question: str = Field(..., min_length=1, max_length=500)
    created_by: str = Field(..., min_length=1, max_length=50)
    options: list[str] = Field(..., min_length=2, max_length=10)

    @field_validator("options")
    @classmethod
    def _labels_not_blank(cls, v: list[str]) -> list[str]:
        for label in v:
            if not 1 <= len(label) <= 100:
                raise ValueError("Option labels must be 1-100 characters")
        return v


class CloseBetRequest(BaseModel):
    host_pin: str | None = Field(None, pattern=_PIN_PATTERN)
    created_by: str | None = Field(None, max_length=50)


class SettleBetRequest(CloseBetRequest):
    winning_option_id: int = Field(..., gt=0)


class PlaceWagerRequest(BaseModel):
    user_name: str = Field(..., min_length=1, max_length=50)
    option_id: int = Field(..., gt=0)
    amount: int = Field(
        ..., gt=0, le=settings.MAX_WAGER_AMOUNT, strict=True,
        description="Whole currency units, no cents",
    )


# ---------------------------------------------------------------------------
# Party
# ---------------------------------------------------------------------------


class PartyResponse(BaseModel):
    id: int
    name: str
    date: str
    description: str | None
    status: str
    bet_count: int
    total_wagered: int
    created_at: str

    @classmethod
    def from_domain(cls, p: Party) -> "PartyResponse":
        return cls(
            id=p.id,
            name=p.name,
            date=p.date.isoformat(),
            description=p.description,
            status=p.status,
            bet_count=p.bet_count,
            total_wagered=p.total_wagered,
            created_at=p.created_at.isoformat(),
        )


# ---------------------------------------------------------------------------
# Bet / wager / settlement
# ---------------------------------------------------------------------------


class OptionOut(BaseModel):
    id: int
    label: str


class WagerOut(BaseModel):
    id: int
    bet_id: int
    option_id: int
    user_name: str
    amount: int
    created_at: str

    @classmethod
    def from_domain(cls, w: WagerRecord) -> "WagerOut":
        return cls(
            id=w.id,
            bet_id=w.bet_id,
            option_id=w.option_id,
            user_name=w.user_name,
            amount=w.amount,
            created_at=w.created_at.isoformat(),
        )


class UserWagerOut(BaseModel):
    id: int
    bet_id: int
    option_id: int
    amount: int
    created_at: str
    bet_question: str
    bet_status: str
    option_label: str

    @classmethod
    def from_domain(cls, w: UserWager) -> "UserWagerOut":
        return cls(
            id=w.id,
            bet_id=w.bet_id,
            option_id=w.option_id,
            amount=w.amount,
            created_at=w.created_at.isoformat(),
            bet_question=w.bet_question,
            bet_status=w.bet_status,
            option_label=w.option_label,
        )


class UserWagersResponse(BaseModel):
    user_name: str
    party_id: int
    party_name: str
    wagers: list[UserWagerOut]


class SettlementOut(BaseModel):
    user_name: str
    total_wagered_cents: int
    payout_cents: int
    payout_display: str
    net_win_loss_cents: int
    net_win_loss_display: str

    @classmethod
    def from_domain(cls, s: Settlement | PayoutResult) -> "SettlementOut":
        return cls(
            user_name=s.user_name,
            total_wagered_cents=s.total_wagered_cents,
            payout_cents=s.payout_cents,
            payout_display=cents_to_display(s.payout_cents),
            net_win_loss_cents=s.net_win_loss_cents,
            net_win_loss_display=cents_to_display(s.net_win_loss_cents),
        )


class BetDetail(BaseModel):
    id: int
    party_id: int
    bet_type: str
    question: str
    created_by: str
    status: str
    winning_option_id: int | None
    options: list[OptionOut]
    wagers: list[WagerOut]
    total_pool: int
    settlements: list[SettlementOut]
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(
        cls,
        bet: Bet,
        wagers: list[WagerRecord] | None = None,
        settlements: list[Settlement] | list[PayoutResult] | None = None,
    ) -> "BetDetail":
        wagers = wagers or []
        return cls(
            id=bet.id,
            party_id=bet.party_id,
            bet_type=bet.bet_type,
            question=bet.question,
            created_by=bet.created_by,
            status=bet.status,
            winning_option_id=bet.winning_option_id,
            options=[OptionOut(id=o.id, label=o.label) for o in bet.options],
            wagers=[WagerOut.from_domain(w) for w in wagers],
            total_pool=sum(w.amount for w in wagers),
            settlements=[SettlementOut.from_domain(s) for s in settlements or []],
            created_at=bet.created_at.isoformat(),
            updated_at=bet.updated_at.isoformat(),
        )


# ---------------------------------------------------------------------------
# Party summary / settle-up
# ---------------------------------------------------------------------------


class NetPositionOut(BaseModel):
    user_name: str
    net_amount_cents: int
    net_amount_display: str

    @classmethod
    def from_domain(cls, p: NetPosition) -> "NetPositionOut":
        return cls(
            user_name=p.user_name,
            net_amount_cents=p.net_amount_cents,
            net_amount_display=cents_to_display(p.net_amount_cents),
        )


class SettlementSummaryResponse(BaseModel):
    party_id: int
    party_name: str
    users: list[NetPositionOut]
    total_pot_cents: int
    total_pot_display: str

    @classmethod
    def from_domain(cls, party: Party, summary: SettlementSummary) -> "SettlementSummaryResponse":
        return cls(
            party_id=party.id,
            party_name=party.name,
            users=[NetPositionOut.from_domain(p) for p in summary.users],
            total_pot_cents=summary.total_pot_cents,
            total_pot_display=cents_to_display(summary.total_pot_cents),
        )


class TransferOut(BaseModel):
    from_user: str
    to_user: str
    amount_cents: int
    amount_display: str

    @classmethod
    def from_domain(cls, t: Transfer) -> "TransferOut":
        return cls(
            from_user=t.from_user,
            to_user=t.to_user,
            amount_cents=t.amount_cents,
            amount_display=cents_to_display(t.amount_cents),
        )


class SettleUpResponse(BaseModel):
    party_id: int
    transfers: list[TransferOut]
    # stakes on bets nobody backed; owed to no one, so not in transfers
    forfeited_cents: int = 0
    forfeited_display: str = "$0.00"

    @classmethod
    def from_domain(
        cls, party_id: int, transfers: list[Transfer], forfeited_cents: int
    ) -> "SettleUpResponse":
        return cls(
            party_id=party_id,
            transfers=[TransferOut.from_domain(t) for t in transfers],
            forfeited_cents=forfeited_cents,
            forfeited_display=cents_to_display(forfeited_cents),
        )


class VerifyPinResponse(BaseModel):
    valid: bool
