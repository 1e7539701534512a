"""Unit tests for BettingApplicationService using a mock repository."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pb_betting.application.service import BettingApplicationService
from src.pb_betting.domain.lifecycle import Caller
from src.pb_betting.domain.models import (
    Bet,
    BetOption,
    Party,
    Settlement,
    UserWager,
    Wager,
    WagerRecord,
)
from src.pb_common.errors import (
    BetAlreadySettledError,
    BetNotAcceptingWagersError,
    BetNotClosedError,
    BetNotFoundError,
    BetNotOpenError,
    InvalidHostPinError,
    InvalidWagerOptionError,
    InvalidWinningOptionError,
    NotHostOrCreatorError,
    PartyAlreadyArchivedError,
    PartyArchivedError,
    PartyNotFoundError,
    SettlementConflictError,
)

PIN = "1234"
NOW = datetime(2026, 2, 8, 23, 30, tzinfo=UTC)
CHIEFS, EAGLES = 10, 11


def _make_bet(**kwargs) -> Bet:
    defaults = dict(
        id=1, party_id=1, bet_type="multi_option", question="Who wins?",
        created_by="Alice", status="open", winning_option_id=None,
        created_at=NOW, updated_at=NOW,
        options=[BetOption(CHIEFS, 1, "Chiefs"), BetOption(EAGLES, 1, "Eagles")],
    )
    defaults.update(kwargs)
    return Bet(**defaults)


def _make_party(**kwargs) -> Party:
    defaults = dict(
        id=1, name="Super Bowl", date=NOW, description=None, status="active",
        created_at=NOW, updated_at=NOW,
    )
    defaults.update(kwargs)
    return Party(**defaults)


def _wager(i: int, user: str, option: int, amount: int) -> WagerRecord:
    return WagerRecord(
        id=i, bet_id=1, option_id=option, user_name=user, amount=amount, created_at=NOW
    )


SUPER_BOWL_WAGERS = [
    _wager(1, "Alice", CHIEFS, 10),
    _wager(2, "Alice", EAGLES, 5),
    _wager(3, "Bob", CHIEFS, 20),
    _wager(4, "Carol", EAGLES, 15),
]


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def mock_repo():
    return MagicMock()


@pytest.fixture
def svc(mock_repo):
    return BettingApplicationService(repo=mock_repo, host_pin=PIN)


class TestVerifyPin:
    def test_matching_pin(self, svc) -> None:
        assert svc.verify_pin(PIN) is True

    def test_wrong_or_missing_pin(self, svc) -> None:
        assert svc.verify_pin("0000") is False
        assert svc.verify_pin(None) is False

    def test_unconfigured_host_pin_rejects_everything(self, mock_repo) -> None:
        assert BettingApplicationService(repo=mock_repo, host_pin="").verify_pin("") is False


class TestParties:
    async def test_create_requires_host_pin(self, svc, db, mock_repo) -> None:
        mock_repo.create_party = AsyncMock()
        with pytest.raises(InvalidHostPinError):
            await svc.create_party(db, "0000", "Party", NOW, None)
        mock_repo.create_party.assert_not_awaited()

    async def test_create_commits(self, svc, db, mock_repo) -> None:
        mock_repo.create_party = AsyncMock(return_value=_make_party())
        resp = await svc.create_party(db, PIN, "Super Bowl", NOW, None)
        assert resp.name == "Super Bowl"
        db.commit.assert_awaited_once()

    async def test_get_missing_party(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=None)
        with pytest.raises(PartyNotFoundError):
            await svc.get_party(db, 42)

    async def test_archive_missing_party_rolls_back(self, svc, db, mock_repo) -> None:
        mock_repo.archive_party = AsyncMock(return_value=None)
        mock_repo.get_party = AsyncMock(return_value=None)
        with pytest.raises(PartyNotFoundError):
            await svc.archive_party(db, 42, PIN)
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_archive_already_archived_party(self, svc, db, mock_repo) -> None:
        mock_repo.archive_party = AsyncMock(return_value=None)
        mock_repo.get_party = AsyncMock(return_value=_make_party(status="archived"))
        with pytest.raises(PartyAlreadyArchivedError):
            await svc.archive_party(db, 1, PIN)
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_archive_active_party(self, svc, db, mock_repo) -> None:
        mock_repo.archive_party = AsyncMock(return_value=_make_party(status="archived"))
        resp = await svc.archive_party(db, 1, PIN)
        assert resp.status == "archived"
        db.commit.assert_awaited_once()


class TestCreateBet:
    async def test_creates_in_active_party(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=_make_party())
        mock_repo.create_bet = AsyncMock(return_value=_make_bet())
        resp = await svc.create_bet(db, 1, "multi_option", "Who wins?", "Alice", ["Chiefs", "Eagles"])
        assert resp.status == "open"
        assert [o.label for o in resp.options] == ["Chiefs", "Eagles"]
        assert resp.total_pool == 0
        db.commit.assert_awaited_once()

    async def test_archived_party_rejected(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=_make_party(status="archived"))
        mock_repo.create_bet = AsyncMock()
        with pytest.raises(PartyArchivedError):
            await svc.create_bet(db, 1, "yes_no", "Rain?", "Alice", ["Yes", "No"])
        mock_repo.create_bet.assert_not_awaited()


class TestCloseBet:
    async def test_host_closes_open_bet(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet())
        mock_repo.transition_bet = AsyncMock(return_value=True)
        mock_repo.list_wagers = AsyncMock(return_value=[])

        resp = await svc.close_bet(db, 1, Caller(host_pin=PIN))

        assert resp.status == "closed"
        mock_repo.get_bet.assert_awaited_once_with(db, 1, for_update=True)
        mock_repo.transition_bet.assert_awaited_once_with(db, 1, "open", "closed")
        db.commit.assert_awaited_once()

    async def test_creator_closes_open_bet(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet())
        mock_repo.transition_bet = AsyncMock(return_value=True)
        mock_repo.list_wagers = AsyncMock(return_value=[])
        resp = await svc.close_bet(db, 1, Caller(created_by="Alice"))
        assert resp.status == "closed"

    async def test_stranger_rejected(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet())
        mock_repo.transition_bet = AsyncMock()
        with pytest.raises(NotHostOrCreatorError):
            await svc.close_bet(db, 1, Caller(created_by="Mallory"))
        mock_repo.transition_bet.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_closed_bet_rejected(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="closed"))
        with pytest.raises(BetNotOpenError):
            await svc.close_bet(db, 1, Caller(host_pin=PIN))

    async def test_missing_bet(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=None)
        with pytest.raises(BetNotFoundError):
            await svc.close_bet(db, 9, Caller(host_pin=PIN))


class TestSettleBet:
    async def test_settles_and_persists_one_row_per_user(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="closed"))
        mock_repo.list_wagers = AsyncMock(return_value=SUPER_BOWL_WAGERS)
        mock_repo.transition_bet = AsyncMock(return_value=True)
        mock_repo.insert_settlements = AsyncMock()

        resp = await svc.settle_bet(db, 1, CHIEFS, Caller(host_pin=PIN))

        assert resp.status == "settled"
        assert resp.winning_option_id == CHIEFS
        assert resp.total_pool == 50
        assert [s.user_name for s in resp.settlements] == ["Bob", "Alice", "Carol"]
        assert resp.settlements[0].payout_display == "$33.33"
        assert resp.settlements[1].net_win_loss_display == "$1.67"
        assert resp.settlements[2].net_win_loss_display == "-$15.00"

        mock_repo.transition_bet.assert_awaited_once_with(db, 1, "closed", "settled", CHIEFS)
        written = mock_repo.insert_settlements.call_args.args[1]
        assert written == [
            Settlement(1, "Bob", 2000, 3333, 1333),
            Settlement(1, "Alice", 1500, 1667, 167),
            Settlement(1, "Carol", 1500, 0, -1500),
        ]
        db.commit.assert_awaited_once()

    async def test_no_wagers_writes_no_settlements(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="closed"))
        mock_repo.list_wagers = AsyncMock(return_value=[])
        mock_repo.transition_bet = AsyncMock(return_value=True)
        mock_repo.insert_settlements = AsyncMock()

        resp = await svc.settle_bet(db, 1, EAGLES, Caller(created_by="Alice"))

        assert resp.status == "settled"
        assert resp.settlements == []
        assert mock_repo.insert_settlements.call_args.args[1] == []

    async def test_open_bet_must_be_closed(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="open"))
        mock_repo.list_wagers = AsyncMock()
        with pytest.raises(BetNotClosedError):
            await svc.settle_bet(db, 1, CHIEFS, Caller(host_pin=PIN))
        mock_repo.list_wagers.assert_not_awaited()

    async def test_already_settled(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(
            return_value=_make_bet(status="settled", winning_option_id=CHIEFS)
        )
        mock_repo.insert_settlements = AsyncMock()
        with pytest.raises(BetAlreadySettledError):
            await svc.settle_bet(db, 1, CHIEFS, Caller(host_pin=PIN))
        mock_repo.insert_settlements.assert_not_awaited()

    async def test_foreign_option_rejected(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="closed"))
        with pytest.raises(InvalidWinningOptionError):
            await svc.settle_bet(db, 1, 999, Caller(host_pin=PIN))

    async def test_stranger_rejected(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="closed"))
        with pytest.raises(NotHostOrCreatorError):
            await svc.settle_bet(db, 1, CHIEFS, Caller(host_pin="9999"))

    async def test_lost_race_writes_nothing(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="closed"))
        mock_repo.list_wagers = AsyncMock(return_value=SUPER_BOWL_WAGERS)
        mock_repo.transition_bet = AsyncMock(return_value=False)
        mock_repo.insert_settlements = AsyncMock()

        with pytest.raises(SettlementConflictError):
            await svc.settle_bet(db, 1, CHIEFS, Caller(host_pin=PIN))

        mock_repo.insert_settlements.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_insert_failure_rolls_back(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status="closed"))
        mock_repo.list_wagers = AsyncMock(return_value=SUPER_BOWL_WAGERS)
        mock_repo.transition_bet = AsyncMock(return_value=True)
        mock_repo.insert_settlements = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await svc.settle_bet(db, 1, CHIEFS, Caller(host_pin=PIN))
        db.rollback.assert_awaited_once()


class TestPlaceWager:
    async def test_places_on_open_bet(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet())
        mock_repo.create_wager = AsyncMock(return_value=_wager(1, "Dave", CHIEFS, 25))
        resp = await svc.place_wager(db, 1, "Dave", CHIEFS, 25)
        assert resp.amount == 25
        mock_repo.create_wager.assert_awaited_once_with(db, 1, CHIEFS, "Dave", 25)
        db.commit.assert_awaited_once()

    async def test_hedging_allowed(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet())
        mock_repo.create_wager = AsyncMock(return_value=_wager(2, "Dave", EAGLES, 5))
        await svc.place_wager(db, 1, "Dave", CHIEFS, 5)
        await svc.place_wager(db, 1, "Dave", EAGLES, 5)
        assert mock_repo.create_wager.await_count == 2

    @pytest.mark.parametrize("status", ["closed", "settled"])
    async def test_non_open_bet_rejected(self, svc, db, mock_repo, status) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet(status=status))
        with pytest.raises(BetNotAcceptingWagersError):
            await svc.place_wager(db, 1, "Dave", CHIEFS, 5)

    async def test_foreign_option_rejected(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet())
        with pytest.raises(InvalidWagerOptionError):
            await svc.place_wager(db, 1, "Dave", 999, 5)


class TestGetBet:
    async def test_settled_bet_includes_settlements(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(
            return_value=_make_bet(status="settled", winning_option_id=CHIEFS)
        )
        mock_repo.list_wagers = AsyncMock(return_value=SUPER_BOWL_WAGERS)
        mock_repo.list_settlements = AsyncMock(
            return_value=[Settlement(1, "Bob", 2000, 3333, 1333)]
        )
        resp = await svc.get_bet(db, 1)
        assert resp.total_pool == 50
        assert len(resp.wagers) == 4
        assert resp.settlements[0].user_name == "Bob"

    async def test_open_bet_skips_settlements(self, svc, db, mock_repo) -> None:
        mock_repo.get_bet = AsyncMock(return_value=_make_bet())
        mock_repo.list_wagers = AsyncMock(return_value=[])
        mock_repo.list_settlements = AsyncMock()
        resp = await svc.get_bet(db, 1)
        assert resp.settlements == []
        mock_repo.list_settlements.assert_not_awaited()


class TestPartySettlement:
    async def test_summary(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=_make_party())
        mock_repo.list_party_settlements = AsyncMock(
            return_value=[
                Settlement(1, "Alice", 2000, 4000, 2000),
                Settlement(2, "Alice", 4000, 0, -4000),
                Settlement(2, "Bob", 4000, 8000, 4000),
            ]
        )
        mock_repo.list_party_wagers = AsyncMock(
            return_value=[Wager("Alice", 1, 20), Wager("Alice", 3, 40), Wager("Bob", 4, 40)]
        )

        resp = await svc.get_settlement_summary(db, 1)

        assert resp.party_name == "Super Bowl"
        assert [(u.user_name, u.net_amount_cents) for u in resp.users] == [
            ("Bob", 4000), ("Alice", -2000),
        ]
        assert resp.total_pot_cents == 10000
        assert resp.total_pot_display == "$100.00"

    async def test_summary_missing_party(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=None)
        with pytest.raises(PartyNotFoundError):
            await svc.get_settlement_summary(db, 5)

    async def test_settle_up_plan(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=_make_party())
        mock_repo.list_party_settlements = AsyncMock(
            return_value=[
                Settlement(1, "Bob", 2000, 3333, 1333),
                Settlement(1, "Alice", 1500, 1667, 167),
                Settlement(1, "Carol", 1500, 0, -1500),
            ]
        )
        resp = await svc.get_settle_up_plan(db, 1)
        assert [(t.from_user, t.to_user, t.amount_cents) for t in resp.transfers] == [
            ("Carol", "Bob", 1333),
            ("Carol", "Alice", 167),
        ]
        assert resp.transfers[0].amount_display == "$13.33"
        assert resp.forfeited_cents == 0

    async def test_settle_up_leaves_out_total_loss_bet(self, svc, db, mock_repo) -> None:
        # bet 2 settled on an option nobody backed: Alice and Bob both forfeit
        mock_repo.get_party = AsyncMock(return_value=_make_party())
        mock_repo.list_party_settlements = AsyncMock(
            return_value=[
                Settlement(1, "Bob", 2000, 3333, 1333),
                Settlement(1, "Alice", 1500, 1667, 167),
                Settlement(1, "Carol", 1500, 0, -1500),
                Settlement(2, "Alice", 2000, 0, -2000),
                Settlement(2, "Bob", 3600, 0, -3600),
            ]
        )

        resp = await svc.get_settle_up_plan(db, 1)

        assert [(t.from_user, t.to_user, t.amount_cents) for t in resp.transfers] == [
            ("Carol", "Bob", 1333),
            ("Carol", "Alice", 167),
        ]
        assert resp.forfeited_cents == 5600
        assert resp.forfeited_display == "$56.00"

    async def test_settle_up_only_total_loss(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=_make_party())
        mock_repo.list_party_settlements = AsyncMock(
            return_value=[
                Settlement(1, "Alice", 2000, 0, -2000),
                Settlement(1, "Bob", 3600, 0, -3600),
            ]
        )
        resp = await svc.get_settle_up_plan(db, 1)
        assert resp.transfers == []
        assert resp.forfeited_cents == 5600


class TestUserWagers:
    async def test_history_with_bet_and_option(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=_make_party())
        mock_repo.list_user_wagers = AsyncMock(
            return_value=[
                UserWager(1, 1, CHIEFS, 10, NOW, "Who wins?", "settled", "Chiefs"),
                UserWager(2, 1, EAGLES, 5, NOW, "Who wins?", "settled", "Eagles"),
            ]
        )

        resp = await svc.list_user_wagers(db, 1, "Alice")

        assert resp.user_name == "Alice"
        assert resp.party_name == "Super Bowl"
        assert [w.option_label for w in resp.wagers] == ["Chiefs", "Eagles"]
        assert resp.wagers[0].bet_status == "settled"
        mock_repo.list_user_wagers.assert_awaited_once_with(db, 1, "Alice")

    async def test_unknown_user_has_empty_history(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=_make_party())
        mock_repo.list_user_wagers = AsyncMock(return_value=[])
        resp = await svc.list_user_wagers(db, 1, "Nobody")
        assert resp.wagers == []

    async def test_missing_party(self, svc, db, mock_repo) -> None:
        mock_repo.get_party = AsyncMock(return_value=None)
        with pytest.raises(PartyNotFoundError):
            await svc.list_user_wagers(db, 9, "Alice")
