"""BettingRepositoryProtocol: storage operations the betting service depends on.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
Write methods never commit: the application service owns the transaction.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pb_betting.domain.models import (
    Bet,
    Party,
    Settlement,
    UserWager,
    Wager,
    WagerRecord,
)


class BettingRepositoryProtocol(Protocol):
    # --- parties ---
    async def create_party(
        self, db: AsyncSession, name: str, date: datetime, description: str | None
    ) -> Party: ...

    async def get_party(self, db: AsyncSession, party_id: int) -> Party | None: ...

    async def list_parties(self, db: AsyncSession) -> list[Party]: ...

    async def archive_party(self, db: AsyncSession, party_id: int) -> Party | None: ...

    # --- bets ---
    async def create_bet(
        self,
        db: AsyncSession,
        party_id: int,
        bet_type: str,
        question: str,
        created_by: str,
        option_labels: list[str],
    ) -> Bet: ...

    async def get_bet(
        self, db: AsyncSession, bet_id: int, for_update: bool = False
    ) -> Bet | None: ...

    async def list_bets(
        self, db: AsyncSession, party_id: int, status: str | None
    ) -> list[Bet]: ...

    async def transition_bet(
        self,
        db: AsyncSession,
        bet_id: int,
        from_status: str,
        to_status: str,
        winning_option_id: int | None = None,
    ) -> bool: ...

    # --- wagers ---
    async def create_wager(
        self, db: AsyncSession, bet_id: int, option_id: int, user_name: str, amount: int
    ) -> WagerRecord: ...

    async def list_wagers(self, db: AsyncSession, bet_id: int) -> list[WagerRecord]: ...

    async def list_party_wagers(self, db: AsyncSession, party_id: int) -> list[Wager]: ...

    async def list_user_wagers(
        self, db: AsyncSession, party_id: int, user_name: str
    ) -> list[UserWager]: ...

    # --- settlements ---
    async def insert_settlements(
        self, db: AsyncSession, settlements: list[Settlement]
    ) -> None: ...

    async def list_settlements(self, db: AsyncSession, bet_id: int) -> list[Settlement]: ...

    async def list_party_settlements(
        self, db: AsyncSession, party_id: int
    ) -> list[Settlement]: ...
