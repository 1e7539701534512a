"""Settle-up plan: turn net positions into pairwise payment instructions.

Greedy matching: the largest remaining debtor pays the largest remaining
creditor min(debt, credit), both are reduced, and anyone at zero drops out.
Each step zeroes at least one party, so there are at most n - 1 transfers.

Net positions only sum to zero up to payout rounding (half a cent per winner
per bet). A residual within max_residual_cents is taken off the positions
sharing its sign, largest first, so the matching always terminates with every
balance at zero and nobody switches between paying and receiving. A larger
residual means the positions are not balanced (for instance a forfeited pool
was left in) and is rejected.
"""

import heapq
import logging
from collections.abc import Iterable

from src.pb_betting.domain.models import NetPosition, Transfer

logger = logging.getLogger(__name__)


def absorb_residual(
    positions: Iterable[NetPosition], max_residual_cents: int = 0
) -> list[NetPosition]:
    """Return positions adjusted so they sum to exactly zero.

    Raises ValueError when the residual exceeds max_residual_cents.
    """
    adjusted = [p for p in positions if p.net_amount_cents != 0]
    residual = sum(p.net_amount_cents for p in adjusted)
    if residual == 0:
        return adjusted
    if abs(residual) > max_residual_cents:
        raise ValueError(
            f"Net positions off by {residual} cents, "
            f"more than the {max_residual_cents} cents rounding allows"
        )

    sign = 1 if residual > 0 else -1
    # largest magnitude, then name
    order = sorted(
        (i for i, p in enumerate(adjusted) if p.net_amount_cents * sign > 0),
        key=lambda i: (-abs(adjusted[i].net_amount_cents), adjusted[i].user_name),
    )
    remaining = abs(residual)
    for i in order:
        if remaining == 0:
            break
        p = adjusted[i]
        take = min(abs(p.net_amount_cents), remaining)
        remaining -= take
        adjusted[i] = NetPosition(
            user_name=p.user_name, net_amount_cents=p.net_amount_cents - sign * take
        )
        logger.warning(
            "Net positions off by %d cents; %d absorbed by %s", residual, take, p.user_name
        )
    return [p for p in adjusted if p.net_amount_cents != 0]


def minimize_transfers(
    positions: Iterable[NetPosition], max_residual_cents: int = 0
) -> list[Transfer]:
    """Positive net = is owed money, negative net = owes money."""
    balanced = absorb_residual(positions, max_residual_cents)

    # max-heaps via negated amounts, ties by name
    debtors = [(p.net_amount_cents, p.user_name) for p in balanced if p.net_amount_cents < 0]
    creditors = [(-p.net_amount_cents, p.user_name) for p in balanced if p.net_amount_cents > 0]
    heapq.heapify(debtors)
    heapq.heapify(creditors)

    transfers: list[Transfer] = []
    while debtors and creditors:
        neg_debt, debtor = heapq.heappop(debtors)
        neg_credit, creditor = heapq.heappop(creditors)
        debt, credit = -neg_debt, -neg_credit

        amount = min(debt, credit)
        transfers.append(Transfer(from_user=debtor, to_user=creditor, amount_cents=amount))

        if debt > amount:
            heapq.heappush(debtors, (-(debt - amount), debtor))
        if credit > amount:
            heapq.heappush(creditors, (-(credit - amount), creditor))

    return transfers
