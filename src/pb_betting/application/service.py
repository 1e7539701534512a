"""BettingApplicationService — composition layer over the settlement core.

Read paths run without an explicit transaction. Every write path commits on
success and rolls back on any exception. The close/settle paths lock the bet
row (SELECT ... FOR UPDATE), ask the lifecycle policy, then move status with a
conditional UPDATE so a lost race writes nothing.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pb_betting.application.schemas import (
    BetDetail,
    PartyResponse,
    SettlementSummaryResponse,
    SettleUpResponse,
    UserWagerOut,
    UserWagersResponse,
    WagerOut,
)
from src.pb_betting.domain.aggregator import aggregate_settlements, settle_up_basis
from src.pb_betting.domain.debts import minimize_transfers
from src.pb_betting.domain.lifecycle import Caller, evaluate_transition, next_status
from src.pb_betting.domain.models import Bet, Party, Settlement
from src.pb_betting.domain.payout import calculate_payouts
from src.pb_betting.domain.repository import BettingRepositoryProtocol
from src.pb_betting.infrastructure.persistence import BettingRepository
from src.pb_common.enums import BetAction, BetStatus, PartyStatus
from src.pb_common.errors import (
    BetNotAcceptingWagersError,
    BetNotFoundError,
    InvalidHostPinError,
    InvalidWagerOptionError,
    PartyAlreadyArchivedError,
    PartyArchivedError,
    PartyNotFoundError,
    SettlementConflictError,
)

logger = logging.getLogger(__name__)


class BettingApplicationService:
    def __init__(
        self,
        repo: BettingRepositoryProtocol | None = None,
        host_pin: str | None = None,
    ) -> None:
        self._repo: BettingRepositoryProtocol = repo or BettingRepository()
        self._host_pin = host_pin if host_pin is not None else settings.HOST_PIN

    # ------------------------------------------------------------------
    # Host
    # ------------------------------------------------------------------

    def verify_pin(self, pin: str | None) -> bool:
        return bool(pin) and bool(self._host_pin) and pin == self._host_pin

    def _require_host(self, pin: str | None) -> None:
        if not self.verify_pin(pin):
            raise InvalidHostPinError()

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    async def _get_party(self, db: AsyncSession, party_id: int) -> Party:
        party = await self._repo.get_party(db, party_id)
        if party is None:
            raise PartyNotFoundError(party_id)
        return party

    async def create_party(
        self,
        db: AsyncSession,
        host_pin: str,
        name: str,
        date: datetime,
        description: str | None,
    ) -> PartyResponse:
        self._require_host(host_pin)
        try:
            party = await self._repo.create_party(db, name, date, description)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Party created: id=%s name=%s", party.id, party.name)
        return PartyResponse.from_domain(party)

    async def get_party(self, db: AsyncSession, party_id: int) -> PartyResponse:
        return PartyResponse.from_domain(await self._get_party(db, party_id))

    async def list_parties(self, db: AsyncSession) -> list[PartyResponse]:
        return [PartyResponse.from_domain(p) for p in await self._repo.list_parties(db)]

    async def archive_party(
        self, db: AsyncSession, party_id: int, host_pin: str
    ) -> PartyResponse:
        self._require_host(host_pin)
        try:
            party = await self._repo.archive_party(db, party_id)
            if party is None:
                await self._get_party(db, party_id)
                raise PartyAlreadyArchivedError(party_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PartyResponse.from_domain(party)

    # ------------------------------------------------------------------
    # Bets
    # ------------------------------------------------------------------

    async def _get_bet(self, db: AsyncSession, bet_id: int, for_update: bool = False) -> Bet:
        bet = await self._repo.get_bet(db, bet_id, for_update=for_update)
        if bet is None:
            raise BetNotFoundError(bet_id)
        return bet

    async def create_bet(
        self,
        db: AsyncSession,
        party_id: int,
        bet_type: str,
        question: str,
        created_by: str,
        options: list[str],
    ) -> BetDetail:
        party = await self._get_party(db, party_id)
        if party.status != PartyStatus.ACTIVE.value:
            raise PartyArchivedError(party_id)
        try:
            bet = await self._repo.create_bet(
                db, party_id, bet_type, question, created_by, options
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Bet created: id=%s party=%s by=%s", bet.id, party_id, created_by)
        return BetDetail.from_domain(bet)

    async def list_bets(
        self, db: AsyncSession, party_id: int, status: str | None
    ) -> list[BetDetail]:
        await self._get_party(db, party_id)
        bets = await self._repo.list_bets(db, party_id, status)
        result: list[BetDetail] = []
        for bet in bets:
            wagers = await self._repo.list_wagers(db, bet.id)
            result.append(BetDetail.from_domain(bet, wagers))
        return result

    async def get_bet(self, db: AsyncSession, bet_id: int) -> BetDetail:
        bet = await self._get_bet(db, bet_id)
        wagers = await self._repo.list_wagers(db, bet_id)
        settlements: list[Settlement] = []
        if bet.status == BetStatus.SETTLED.value:
            settlements = await self._repo.list_settlements(db, bet_id)
        return BetDetail.from_domain(bet, wagers, settlements)

    async def close_bet(self, db: AsyncSession, bet_id: int, caller: Caller) -> BetDetail:
        try:
            bet = await self._get_bet(db, bet_id, for_update=True)
            decision = evaluate_transition(
                bet.status, BetAction.CLOSE, caller, self._host_pin, bet.created_by
            )
            if not decision.allowed:
                logger.info("Close denied: bet=%s reason=%s", bet_id, decision.message)
            decision.raise_if_denied(bet_id)

            to_status = next_status(BetAction.CLOSE).value
            if not await self._repo.transition_bet(db, bet_id, bet.status, to_status):
                raise SettlementConflictError(bet_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        bet.status = to_status
        logger.info("Bet closed: id=%s", bet_id)
        return BetDetail.from_domain(bet, await self._repo.list_wagers(db, bet_id))

    async def settle_bet(
        self,
        db: AsyncSession,
        bet_id: int,
        winning_option_id: int,
        caller: Caller,
    ) -> BetDetail:
        try:
            bet = await self._get_bet(db, bet_id, for_update=True)
            decision = evaluate_transition(
                bet.status,
                BetAction.SETTLE,
                caller,
                self._host_pin,
                bet.created_by,
                winning_option_id=winning_option_id,
                option_ids=bet.option_ids,
            )
            if not decision.allowed:
                logger.info("Settle denied: bet=%s reason=%s", bet_id, decision.message)
            decision.raise_if_denied(bet_id, winning_option_id)

            wagers = await self._repo.list_wagers(db, bet_id)
            results = calculate_payouts([w.as_wager() for w in wagers], winning_option_id)

            to_status = next_status(BetAction.SETTLE).value
            moved = await self._repo.transition_bet(
                db, bet_id, bet.status, to_status, winning_option_id
            )
            if not moved:
                raise SettlementConflictError(bet_id)
            await self._repo.insert_settlements(
                db, [Settlement.from_payout(bet_id, r) for r in results]
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        bet.status = to_status
        bet.winning_option_id = winning_option_id
        logger.info(
            "Bet settled: id=%s winner=%s settlements=%d",
            bet_id, winning_option_id, len(results),
        )
        return BetDetail.from_domain(bet, wagers, results)

    # ------------------------------------------------------------------
    # Wagers
    # ------------------------------------------------------------------

    async def place_wager(
        self,
        db: AsyncSession,
        bet_id: int,
        user_name: str,
        option_id: int,
        amount: int,
    ) -> WagerOut:
        bet = await self._get_bet(db, bet_id)
        if bet.status != BetStatus.OPEN.value:
            raise BetNotAcceptingWagersError(bet_id, bet.status)
        if option_id not in bet.option_ids:
            raise InvalidWagerOptionError(bet_id, option_id)
        try:
            wager = await self._repo.create_wager(db, bet_id, option_id, user_name, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WagerOut.from_domain(wager)

    async def list_wagers(self, db: AsyncSession, bet_id: int) -> list[WagerOut]:
        await self._get_bet(db, bet_id)
        return [WagerOut.from_domain(w) for w in await self._repo.list_wagers(db, bet_id)]

    async def list_user_wagers(
        self, db: AsyncSession, party_id: int, user_name: str
    ) -> UserWagersResponse:
        party = await self._get_party(db, party_id)
        wagers = await self._repo.list_user_wagers(db, party_id, user_name)
        return UserWagersResponse(
            user_name=user_name,
            party_id=party.id,
            party_name=party.name,
            wagers=[UserWagerOut.from_domain(w) for w in wagers],
        )

    # ------------------------------------------------------------------
    # Party settlement
    # ------------------------------------------------------------------

    async def get_settlement_summary(
        self, db: AsyncSession, party_id: int
    ) -> SettlementSummaryResponse:
        party = await self._get_party(db, party_id)
        settlements = await self._repo.list_party_settlements(db, party_id)
        wagers = await self._repo.list_party_wagers(db, party_id)
        summary = aggregate_settlements(settlements, wagers)
        return SettlementSummaryResponse.from_domain(party, summary)

    async def get_settle_up_plan(self, db: AsyncSession, party_id: int) -> SettleUpResponse:
        await self._get_party(db, party_id)
        settlements = await self._repo.list_party_settlements(db, party_id)
        basis = settle_up_basis(settlements)
        if basis.forfeited_cents:
            logger.info(
                "Settle-up party=%s leaves out %d forfeited cents",
                party_id, basis.forfeited_cents,
            )
        transfers = minimize_transfers(basis.positions, basis.max_residual_cents)
        return SettleUpResponse.from_domain(party_id, transfers, basis.forfeited_cents)
