"""Pari-mutuel payout calculation for a settled bet.

Formulas (all in int cents):
- total_pool   = sum of every wager on the bet
- winning_pool = sum of wagers on the winning option
- per user:
    total_wagered = sum of the user's wagers across all options (hedging allowed)
    on_winning    = sum of the user's wagers on the winning option
    payout        = on_winning * total_pool / winning_pool   (half-up to the cent)
    net_win_loss  = payout - total_wagered
- winning_pool == 0: nobody backed the winner, every payout is 0.

No house edge: with winning_pool > 0 the payouts sum to total_pool, off by at
most half a cent per winner from rounding.
"""

from collections.abc import Iterable

from src.pb_betting.domain.models import PayoutResult, Wager
from src.pb_common.cents import div_round_half_up, units_to_cents


def calculate_payouts(
    wagers: Iterable[Wager], winning_option_id: int
) -> list[PayoutResult]:
    """Payout per distinct user, sorted winners first (net descending)."""
    total_pool = 0
    winning_pool = 0
    # user_name -> [total_wagered, on_winning], insertion-ordered
    by_user: dict[str, list[int]] = {}

    for w in wagers:
        cents = units_to_cents(w.amount)
        total_pool += cents
        totals = by_user.setdefault(w.user_name, [0, 0])
        totals[0] += cents
        if w.option_id == winning_option_id:
            winning_pool += cents
            totals[1] += cents

    results: list[PayoutResult] = []
    for user_name, (total_wagered, on_winning) in by_user.items():
        if winning_pool == 0:
            payout = 0
        else:
            payout = div_round_half_up(on_winning * total_pool, winning_pool)
        results.append(
            PayoutResult(
                user_name=user_name,
                total_wagered_cents=total_wagered,
                payout_cents=payout,
                net_win_loss_cents=payout - total_wagered,
            )
        )

    # sorted() is stable: equal nets keep first-wager order
    return sorted(results, key=lambda r: r.net_win_loss_cents, reverse=True)
