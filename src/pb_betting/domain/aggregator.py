"""Party-level settlement summary, total pot and settle-up basis."""

from collections.abc import Iterable

from src.pb_betting.domain.models import (
    NetPosition,
    Settlement,
    SettlementSummary,
    SettleUpBasis,
    Wager,
)
from src.pb_common.cents import units_to_cents


def total_pot_cents(wagers: Iterable[Wager]) -> int:
    """Everything ever wagered in scope, settled or not."""
    return sum(units_to_cents(w.amount) for w in wagers)


def aggregate_settlements(
    settlements: Iterable[Settlement], wagers: Iterable[Wager]
) -> SettlementSummary:
    """Sum net_win_loss per user across the scope's settlement records.

    Users with no settlement rows (only open/closed bets) do not appear.
    Equal nets keep first-appearance order.
    """
    totals: dict[str, int] = {}
    for s in settlements:
        totals[s.user_name] = totals.get(s.user_name, 0) + s.net_win_loss_cents

    users = sorted(
        (NetPosition(user_name=name, net_amount_cents=net) for name, net in totals.items()),
        key=lambda p: p.net_amount_cents,
        reverse=True,
    )
    return SettlementSummary(users=users, total_pot_cents=total_pot_cents(wagers))


def settle_up_basis(settlements: Iterable[Settlement]) -> SettleUpBasis:
    """Split settlement records into owed positions and forfeited stakes.

    A settled bet whose payouts are all zero had no stake on the winning
    option; its pool stays with no one and is left out of the positions.
    Every other bet contributes at most half a cent of rounding per winner.
    """
    by_bet: dict[int, list[Settlement]] = {}
    for s in settlements:
        by_bet.setdefault(s.bet_id, []).append(s)

    owed: list[Settlement] = []
    forfeited = 0
    max_residual = 0
    for rows in by_bet.values():
        winners = sum(1 for s in rows if s.payout_cents > 0)
        if winners == 0:
            forfeited += sum(s.total_wagered_cents for s in rows)
            continue
        owed.extend(rows)
        max_residual += winners // 2

    return SettleUpBasis(
        positions=aggregate_settlements(owed, []).users,
        forfeited_cents=forfeited,
        max_residual_cents=max_residual,
    )
