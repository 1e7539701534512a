"""Bet lifecycle state machine and close/settle authorization.

    open --close--> closed --settle--> settled

No skipping, no reopening. Both transitions require the caller to be the host
(shared PIN) or the bet's creator (honor-system name match).

evaluate_transition() is a pure decision over plain values so it can be unit
tested without storage. Checks run in order: state, winning option, caller.
"""

from collections.abc import Collection
from dataclasses import dataclass

from src.pb_common.enums import BetAction, BetStatus, PolicyErrorKind
from src.pb_common.errors import (
    AppError,
    BetAlreadySettledError,
    BetNotClosedError,
    BetNotOpenError,
    InvalidWinningOptionError,
    NotHostOrCreatorError,
)

MSG_MUST_BE_OPEN = "bet must be open to close"
MSG_MUST_BE_CLOSED = "bet must be closed to settle"
MSG_ALREADY_SETTLED = "bet already settled"
MSG_INVALID_OPTION = "winning option does not belong to this bet"
MSG_NOT_HOST_OR_CREATOR = "caller is neither host nor bet creator"

_NEXT_STATUS: dict[BetAction, BetStatus] = {
    BetAction.CLOSE: BetStatus.CLOSED,
    BetAction.SETTLE: BetStatus.SETTLED,
}


@dataclass(frozen=True)
class Caller:
    """Identity claims supplied with a close/settle request."""

    host_pin: str | None = None
    created_by: str | None = None


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    action: BetAction
    error_kind: PolicyErrorKind | None = None
    message: str | None = None

    def to_error(self, bet_id: int, winning_option_id: int | None = None) -> AppError | None:
        """Map a denial to its AppError; None when allowed."""
        if self.allowed:
            return None
        if self.error_kind is PolicyErrorKind.AUTHORIZATION:
            return NotHostOrCreatorError(self.action.value)
        if self.error_kind is PolicyErrorKind.INVALID_OPTION:
            return InvalidWinningOptionError(bet_id, winning_option_id)
        if self.message == MSG_ALREADY_SETTLED:
            return BetAlreadySettledError(bet_id)
        if self.action is BetAction.CLOSE:
            return BetNotOpenError(bet_id)
        return BetNotClosedError(bet_id)

    def raise_if_denied(self, bet_id: int, winning_option_id: int | None = None) -> None:
        error = self.to_error(bet_id, winning_option_id)
        if error is not None:
            raise error


def _allow(action: BetAction) -> TransitionDecision:
    return TransitionDecision(allowed=True, action=action)


def _deny(action: BetAction, kind: PolicyErrorKind, message: str) -> TransitionDecision:
    return TransitionDecision(allowed=False, action=action, error_kind=kind, message=message)


def is_host_or_creator(caller: Caller, host_pin: str | None, created_by: str) -> bool:
    """Host: non-empty PIN equal to the configured one. Creator: exact name match."""
    is_host = bool(caller.host_pin) and bool(host_pin) and caller.host_pin == host_pin
    is_creator = caller.created_by is not None and caller.created_by == created_by
    return is_host or is_creator


def next_status(action: BetAction) -> BetStatus:
    return _NEXT_STATUS[action]


def evaluate_transition(
    status: str,
    action: BetAction,
    caller: Caller,
    host_pin: str | None,
    created_by: str,
    winning_option_id: int | None = None,
    option_ids: Collection[int] = (),
) -> TransitionDecision:
    current = BetStatus(status)

    if action is BetAction.CLOSE:
        if current is not BetStatus.OPEN:
            return _deny(action, PolicyErrorKind.STATE, MSG_MUST_BE_OPEN)
    else:
        if current is BetStatus.SETTLED:
            return _deny(action, PolicyErrorKind.STATE, MSG_ALREADY_SETTLED)
        if current is not BetStatus.CLOSED:
            return _deny(action, PolicyErrorKind.STATE, MSG_MUST_BE_CLOSED)
        if winning_option_id is None or winning_option_id not in option_ids:
            return _deny(action, PolicyErrorKind.INVALID_OPTION, MSG_INVALID_OPTION)

    if not is_host_or_creator(caller, host_pin, created_by):
        return _deny(action, PolicyErrorKind.AUTHORIZATION, MSG_NOT_HOST_OR_CREATOR)

    return _allow(action)
