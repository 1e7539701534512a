"""BettingRepository — concrete implementation of BettingRepositoryProtocol.

All queries use raw text() SQL (no ORM).
Transaction ownership: the CALLER (application service) commits or rolls back.

Status transitions are conditional UPDATEs (WHERE status = :from_status). A
result of 0 rows means another request moved the bet first, which gives
at-most-once settlement even when two settle requests race.
"""

from datetime import datetime

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pb_betting.domain.models import (
    Bet,
    BetOption,
    Party,
    Settlement,
    UserWager,
    Wager,
    WagerRecord,
)
from src.pb_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL: parties
# ---------------------------------------------------------------------------

_PARTY_COLUMNS = """
    p.id, p.name, p.date, p.description, p.status, p.created_at, p.updated_at,
    (SELECT COUNT(*) FROM bets b WHERE b.party_id = p.id) AS bet_count,
    (SELECT COALESCE(SUM(w.amount), 0)
       FROM wagers w JOIN bets b ON b.id = w.bet_id
      WHERE b.party_id = p.id) AS total_wagered
"""

_INSERT_PARTY_SQL = text("""
    INSERT INTO parties (name, date, description, status)
    VALUES (:name, :date, :description, 'active')
    RETURNING id
""")

_GET_PARTY_SQL = text(f"SELECT {_PARTY_COLUMNS} FROM parties p WHERE p.id = :party_id")

_LIST_PARTIES_SQL = text(
    f"SELECT {_PARTY_COLUMNS} FROM parties p ORDER BY p.created_at DESC, p.id DESC"
)

_ARCHIVE_PARTY_SQL = text("""
    UPDATE parties SET status = 'archived', updated_at = NOW()
    WHERE id = :party_id AND status = 'active'
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: bets
# ---------------------------------------------------------------------------

_BET_COLUMNS = """
    id, party_id, bet_type, question, created_by, status,
    winning_option_id, created_at, updated_at
"""

_INSERT_BET_SQL = text(f"""
    INSERT INTO bets (party_id, bet_type, question, created_by, status)
    VALUES (:party_id, :bet_type, :question, :created_by, 'open')
    RETURNING {_BET_COLUMNS}
""")

_INSERT_OPTION_SQL = text("""
    INSERT INTO bet_options (bet_id, label)
    VALUES (:bet_id, :label)
    RETURNING id, bet_id, label
""")

_GET_BET_SQL = text(f"SELECT {_BET_COLUMNS} FROM bets WHERE id = :bet_id")

_GET_BET_FOR_UPDATE_SQL = text(
    f"SELECT {_BET_COLUMNS} FROM bets WHERE id = :bet_id FOR UPDATE"
)

_LIST_BETS_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE party_id = :party_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY created_at DESC, id DESC
""")

_LIST_OPTIONS_SQL = text("""
    SELECT id, bet_id, label
    FROM bet_options
    WHERE bet_id IN :bet_ids
    ORDER BY id
""").bindparams(bindparam("bet_ids", expanding=True))

_TRANSITION_BET_SQL = text("""
    UPDATE bets
    SET status = :to_status,
        winning_option_id = COALESCE(CAST(:winning_option_id AS INTEGER), winning_option_id),
        updated_at = NOW()
    WHERE id = :bet_id AND status = :from_status
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: wagers
# ---------------------------------------------------------------------------

_INSERT_WAGER_SQL = text("""
    INSERT INTO wagers (bet_id, option_id, user_name, amount)
    VALUES (:bet_id, :option_id, :user_name, :amount)
    RETURNING id, bet_id, option_id, user_name, amount, created_at
""")

_LIST_WAGERS_SQL = text("""
    SELECT id, bet_id, option_id, user_name, amount, created_at
    FROM wagers
    WHERE bet_id = :bet_id
    ORDER BY id
""")

_LIST_PARTY_WAGERS_SQL = text("""
    SELECT w.user_name, w.option_id, w.amount
    FROM wagers w JOIN bets b ON b.id = w.bet_id
    WHERE b.party_id = :party_id
    ORDER BY w.id
""")

_LIST_USER_WAGERS_SQL = text("""
    SELECT w.id, w.bet_id, w.option_id, w.amount, w.created_at,
           b.question AS bet_question, b.status AS bet_status,
           o.label AS option_label
    FROM wagers w
    JOIN bets b ON b.id = w.bet_id
    JOIN bet_options o ON o.id = w.option_id
    WHERE b.party_id = :party_id AND w.user_name = :user_name
    ORDER BY w.id
""")

# ---------------------------------------------------------------------------
# SQL: settlements
# ---------------------------------------------------------------------------

_INSERT_SETTLEMENT_SQL = text("""
    INSERT INTO settlements
        (bet_id, user_name, total_wagered_cents, payout_cents, net_win_loss_cents)
    VALUES
        (:bet_id, :user_name, :total_wagered_cents, :payout_cents, :net_win_loss_cents)
""")

_LIST_SETTLEMENTS_SQL = text("""
    SELECT bet_id, user_name, total_wagered_cents, payout_cents, net_win_loss_cents
    FROM settlements
    WHERE bet_id = :bet_id
    ORDER BY net_win_loss_cents DESC, id
""")

_LIST_PARTY_SETTLEMENTS_SQL = text("""
    SELECT s.bet_id, s.user_name, s.total_wagered_cents, s.payout_cents,
           s.net_win_loss_cents
    FROM settlements s JOIN bets b ON b.id = s.bet_id
    WHERE b.party_id = :party_id
    ORDER BY s.id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_party(row: object) -> Party:
    return Party(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        date=row.date,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        bet_count=int(row.bet_count),  # type: ignore[attr-defined]
        total_wagered=int(row.total_wagered),  # type: ignore[attr-defined]
    )


def _row_to_bet(row: object, options: list[BetOption]) -> Bet:
    return Bet(
        id=row.id,  # type: ignore[attr-defined]
        party_id=row.party_id,  # type: ignore[attr-defined]
        bet_type=row.bet_type,  # type: ignore[attr-defined]
        question=row.question,  # type: ignore[attr-defined]
        created_by=row.created_by,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        winning_option_id=row.winning_option_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        options=options,
    )


def _row_to_wager(row: object) -> WagerRecord:
    return WagerRecord(
        id=row.id,  # type: ignore[attr-defined]
        bet_id=row.bet_id,  # type: ignore[attr-defined]
        option_id=row.option_id,  # type: ignore[attr-defined]
        user_name=row.user_name,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_settlement(row: object) -> Settlement:
    return Settlement(
        bet_id=row.bet_id,  # type: ignore[attr-defined]
        user_name=row.user_name,  # type: ignore[attr-defined]
        total_wagered_cents=row.total_wagered_cents,  # type: ignore[attr-defined]
        payout_cents=row.payout_cents,  # type: ignore[attr-defined]
        net_win_loss_cents=row.net_win_loss_cents,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BettingRepository:
    """Concrete repository. Never commits; see module docstring."""

    # --- parties ---

    async def create_party(
        self, db: AsyncSession, name: str, date: datetime, description: str | None
    ) -> Party:
        result = await db.execute(
            _INSERT_PARTY_SQL, {"name": name, "date": date, "description": description}
        )
        party_id = result.scalar_one()
        party = await self.get_party(db, party_id)
        if party is None:
            raise InternalError(f"Party {party_id} missing right after insert")
        return party

    async def get_party(self, db: AsyncSession, party_id: int) -> Party | None:
        row = (await db.execute(_GET_PARTY_SQL, {"party_id": party_id})).fetchone()
        return _row_to_party(row) if row else None

    async def list_parties(self, db: AsyncSession) -> list[Party]:
        rows = (await db.execute(_LIST_PARTIES_SQL)).fetchall()
        return [_row_to_party(row) for row in rows]

    async def archive_party(self, db: AsyncSession, party_id: int) -> Party | None:
        row = (await db.execute(_ARCHIVE_PARTY_SQL, {"party_id": party_id})).fetchone()
        if row is None:
            return None
        return await self.get_party(db, party_id)

    # --- bets ---

    async def create_bet(
        self,
        db: AsyncSession,
        party_id: int,
        bet_type: str,
        question: str,
        created_by: str,
        option_labels: list[str],
    ) -> Bet:
        row = (
            await db.execute(
                _INSERT_BET_SQL,
                {
                    "party_id": party_id,
                    "bet_type": bet_type,
                    "question": question,
                    "created_by": created_by,
                },
            )
        ).fetchone()
        options: list[BetOption] = []
        for label in option_labels:
            opt = (
                await db.execute(_INSERT_OPTION_SQL, {"bet_id": row.id, "label": label})  # type: ignore[union-attr]
            ).fetchone()
            options.append(BetOption(id=opt.id, bet_id=opt.bet_id, label=opt.label))  # type: ignore[union-attr]
        return _row_to_bet(row, options)

    async def _options_by_bet(
        self, db: AsyncSession, bet_ids: list[int]
    ) -> dict[int, list[BetOption]]:
        grouped: dict[int, list[BetOption]] = {bet_id: [] for bet_id in bet_ids}
        if not bet_ids:
            return grouped
        rows = (await db.execute(_LIST_OPTIONS_SQL, {"bet_ids": bet_ids})).fetchall()
        for row in rows:
            grouped[row.bet_id].append(BetOption(id=row.id, bet_id=row.bet_id, label=row.label))
        return grouped

    async def get_bet(
        self, db: AsyncSession, bet_id: int, for_update: bool = False
    ) -> Bet | None:
        sql = _GET_BET_FOR_UPDATE_SQL if for_update else _GET_BET_SQL
        row = (await db.execute(sql, {"bet_id": bet_id})).fetchone()
        if row is None:
            return None
        options = await self._options_by_bet(db, [bet_id])
        return _row_to_bet(row, options[bet_id])

    async def list_bets(
        self, db: AsyncSession, party_id: int, status: str | None
    ) -> list[Bet]:
        rows = (
            await db.execute(_LIST_BETS_SQL, {"party_id": party_id, "status": status})
        ).fetchall()
        options = await self._options_by_bet(db, [row.id for row in rows])
        return [_row_to_bet(row, options[row.id]) for row in rows]

    async def transition_bet(
        self,
        db: AsyncSession,
        bet_id: int,
        from_status: str,
        to_status: str,
        winning_option_id: int | None = None,
    ) -> bool:
        row = (
            await db.execute(
                _TRANSITION_BET_SQL,
                {
                    "bet_id": bet_id,
                    "from_status": from_status,
                    "to_status": to_status,
                    "winning_option_id": winning_option_id,
                },
            )
        ).fetchone()
        return row is not None

    # --- wagers ---

    async def create_wager(
        self, db: AsyncSession, bet_id: int, option_id: int, user_name: str, amount: int
    ) -> WagerRecord:
        row = (
            await db.execute(
                _INSERT_WAGER_SQL,
                {
                    "bet_id": bet_id,
                    "option_id": option_id,
                    "user_name": user_name,
                    "amount": amount,
                },
            )
        ).fetchone()
        return _row_to_wager(row)

    async def list_wagers(self, db: AsyncSession, bet_id: int) -> list[WagerRecord]:
        rows = (await db.execute(_LIST_WAGERS_SQL, {"bet_id": bet_id})).fetchall()
        return [_row_to_wager(row) for row in rows]

    async def list_party_wagers(self, db: AsyncSession, party_id: int) -> list[Wager]:
        rows = (await db.execute(_LIST_PARTY_WAGERS_SQL, {"party_id": party_id})).fetchall()
        return [
            Wager(user_name=row.user_name, option_id=row.option_id, amount=row.amount)
            for row in rows
        ]

    async def list_user_wagers(
        self, db: AsyncSession, party_id: int, user_name: str
    ) -> list[UserWager]:
        rows = (
            await db.execute(
                _LIST_USER_WAGERS_SQL, {"party_id": party_id, "user_name": user_name}
            )
        ).fetchall()
        return [
            UserWager(
                id=row.id,
                bet_id=row.bet_id,
                option_id=row.option_id,
                amount=row.amount,
                created_at=row.created_at,
                bet_question=row.bet_question,
                bet_status=row.bet_status,
                option_label=row.option_label,
            )
            for row in rows
        ]

    # --- settlements ---

    async def insert_settlements(
        self, db: AsyncSession, settlements: list[Settlement]
    ) -> None:
        if not settlements:
            return
        await db.execute(
            _INSERT_SETTLEMENT_SQL,
            [
                {
                    "bet_id": s.bet_id,
                    "user_name": s.user_name,
                    "total_wagered_cents": s.total_wagered_cents,
                    "payout_cents": s.payout_cents,
                    "net_win_loss_cents": s.net_win_loss_cents,
                }
                for s in settlements
            ],
        )

    async def list_settlements(self, db: AsyncSession, bet_id: int) -> list[Settlement]:
        rows = (await db.execute(_LIST_SETTLEMENTS_SQL, {"bet_id": bet_id})).fetchall()
        return [_row_to_settlement(row) for row in rows]

    async def list_party_settlements(
        self, db: AsyncSession, party_id: int
    ) -> list[Settlement]:
        rows = (
            await db.execute(_LIST_PARTY_SETTLEMENTS_SQL, {"party_id": party_id})
        ).fetchall()
        return [_row_to_settlement(row) for row in rows]
