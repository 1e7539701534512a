"""Domain models for pb_betting — pure dataclasses, no business logic.

Money fields suffixed `_cents` are int cents. Wager.amount is whole units.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Party:
    id: int
    name: str
    date: datetime
    description: str | None
    status: str
    created_at: datetime
    updated_at: datetime
    bet_count: int = 0
    total_wagered: int = 0  # whole units


@dataclass(frozen=True)
class BetOption:
    id: int
    bet_id: int
    label: str


@dataclass
class Bet:
    id: int
    party_id: int
    bet_type: str
    question: str
    created_by: str
    status: str
    winning_option_id: int | None
    created_at: datetime
    updated_at: datetime
    options: list[BetOption] = field(default_factory=list)

    @property
    def option_ids(self) -> set[int]:
        return {o.id for o in self.options}


@dataclass(frozen=True)
class Wager:
    """One user's stake on one option. Only the fields settlement needs."""

    user_name: str
    option_id: int
    amount: int  # whole units


@dataclass(frozen=True)
class WagerRecord:
    """Persisted wager row."""

    id: int
    bet_id: int
    option_id: int
    user_name: str
    amount: int
    created_at: datetime

    def as_wager(self) -> Wager:
        return Wager(user_name=self.user_name, option_id=self.option_id, amount=self.amount)


@dataclass(frozen=True)
class UserWager:
    """A wager joined with its bet and option, for one user's history."""

    id: int
    bet_id: int
    option_id: int
    amount: int
    created_at: datetime
    bet_question: str
    bet_status: str
    option_label: str


@dataclass(frozen=True)
class PayoutResult:
    user_name: str
    total_wagered_cents: int
    payout_cents: int
    net_win_loss_cents: int


@dataclass(frozen=True)
class Settlement:
    """Immutable audit record of one user's outcome on one bet."""

    bet_id: int
    user_name: str
    total_wagered_cents: int
    payout_cents: int
    net_win_loss_cents: int

    @classmethod
    def from_payout(cls, bet_id: int, result: PayoutResult) -> "Settlement":
        return cls(
            bet_id=bet_id,
            user_name=result.user_name,
            total_wagered_cents=result.total_wagered_cents,
            payout_cents=result.payout_cents,
            net_win_loss_cents=result.net_win_loss_cents,
        )


@dataclass(frozen=True)
class NetPosition:
    user_name: str
    net_amount_cents: int


@dataclass
class SettlementSummary:
    users: list[NetPosition]      # descending by net_amount_cents
    total_pot_cents: int


@dataclass(frozen=True)
class Transfer:
    from_user: str
    to_user: str
    amount_cents: int


@dataclass
class SettleUpBasis:
    """Settle-up input for a scope.

    positions exclude bets nobody backed: those stakes are forfeited and
    reported in forfeited_cents instead of being owed to anyone.
    max_residual_cents is the rounding drift the positions may carry.
    """

    positions: list[NetPosition]
    forfeited_cents: int
    max_residual_cents: int
