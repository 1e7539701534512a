"""Unit tests for the greedy settle-up plan."""

import logging

import pytest

from src.pb_betting.domain.debts import absorb_residual, minimize_transfers
from src.pb_betting.domain.models import NetPosition, Transfer


def _positions(**nets: int) -> list[NetPosition]:
    return [NetPosition(user_name=name, net_amount_cents=net) for name, net in nets.items()]


def _apply(transfers: list[Transfer]) -> dict[str, int]:
    """Net effect of transfers: receiving is +, paying is -."""
    balance: dict[str, int] = {}
    for t in transfers:
        balance[t.from_user] = balance.get(t.from_user, 0) - t.amount_cents
        balance[t.to_user] = balance.get(t.to_user, 0) + t.amount_cents
    return balance


class TestMinimizeTransfers:
    def test_single_pair(self) -> None:
        assert minimize_transfers(_positions(Alice=500, Bob=-500)) == [
            Transfer(from_user="Bob", to_user="Alice", amount_cents=500)
        ]

    def test_largest_debtor_pays_largest_creditor_first(self) -> None:
        transfers = minimize_transfers(_positions(Bob=1333, Alice=167, Carol=-1500))
        assert transfers[0] == Transfer("Carol", "Bob", 1333)
        assert transfers[1] == Transfer("Carol", "Alice", 167)

    def test_transfers_reproduce_net_positions(self) -> None:
        nets = {"A": 4000, "B": 1500, "C": -2500, "D": -1000, "E": -2000}
        transfers = minimize_transfers(_positions(**nets))
        assert _apply(transfers) == nets
        assert all(t.amount_cents > 0 for t in transfers)

    def test_at_most_n_minus_one_transfers(self) -> None:
        nets = {"A": 700, "B": 300, "C": -200, "D": -400, "E": -400}
        transfers = minimize_transfers(_positions(**nets))
        assert len(transfers) <= len(nets) - 1

    def test_exact_match_uses_one_transfer_each(self) -> None:
        transfers = minimize_transfers(_positions(A=300, B=200, C=-300, D=-200))
        assert len(transfers) == 2

    def test_all_zero_means_no_transfers(self) -> None:
        assert minimize_transfers(_positions(A=0, B=0)) == []

    def test_empty(self) -> None:
        assert minimize_transfers([]) == []

    def test_ties_broken_by_name(self) -> None:
        transfers = minimize_transfers(_positions(Zed=100, Amy=100, Bo=-200))
        assert [t.to_user for t in transfers] == ["Amy", "Zed"]


class TestResidual:
    def test_balanced_positions_untouched(self) -> None:
        positions = _positions(A=100, B=-100)
        assert absorb_residual(positions) == positions

    def test_positive_drift_charged_to_largest_magnitude(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            adjusted = absorb_residual(_positions(A=1001, B=-600, C=-400), max_residual_cents=1)
        assert {p.user_name: p.net_amount_cents for p in adjusted} == {
            "A": 1000, "B": -600, "C": -400,
        }
        assert "off by 1 cents" in caplog.text

    def test_negative_drift_charged_to_largest_magnitude(self) -> None:
        adjusted = absorb_residual(_positions(A=300, B=-302), max_residual_cents=2)
        assert {p.user_name: p.net_amount_cents for p in adjusted} == {"A": 300, "B": -300}

    def test_drift_still_terminates_with_plan(self) -> None:
        transfers = minimize_transfers(_positions(A=3333, B=1667, C=-5001), max_residual_cents=1)
        assert sum(t.amount_cents for t in transfers) == 5000
        assert _apply(transfers) == {"A": 3333, "B": 1667, "C": -5000}

    def test_residual_not_charged_to_opposite_side(self) -> None:
        adjusted = absorb_residual(_positions(A=3, B=2, C=-4), max_residual_cents=1)
        assert {p.user_name: p.net_amount_cents for p in adjusted} == {
            "A": 2, "B": 2, "C": -4,
        }

    def test_absorbing_never_flips_a_sign(self) -> None:
        adjusted = absorb_residual(_positions(A=1, B=1), max_residual_cents=2)
        assert adjusted == []


class TestUnbalancedPositions:
    def test_forfeited_pool_is_not_treated_as_drift(self) -> None:
        # nobody backed the winner: every net is a loss, nobody is owed
        with pytest.raises(ValueError, match="-5600"):
            minimize_transfers(_positions(Alice=-2000, Bob=-3600))

    def test_residual_above_bound_rejected(self) -> None:
        with pytest.raises(ValueError):
            minimize_transfers(_positions(A=3, B=2), max_residual_cents=1)

    def test_balanced_by_default(self) -> None:
        with pytest.raises(ValueError):
            absorb_residual(_positions(A=101, B=-100))
