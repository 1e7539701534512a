"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Host / creator authorization
  2xxx: Party
  3xxx: Bet lifecycle
  4xxx: Wager
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Authorization ---

class NotHostOrCreatorError(AppError):
    def __init__(self, action: str) -> None:
        super().__init__(
            1001,
            f"Unauthorized. Only the host or bet creator can {action} this bet.",
            403,
        )


class InvalidHostPinError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Invalid host PIN", 401)


# --- 2xxx: Party ---

class PartyNotFoundError(AppError):
    def __init__(self, party_id: int) -> None:
        super().__init__(2001, f"Party not found: {party_id}", 404)


class PartyArchivedError(AppError):
    def __init__(self, party_id: int) -> None:
        super().__init__(2002, f"Party is archived: {party_id}", 422)


class PartyAlreadyArchivedError(AppError):
    def __init__(self, party_id: int) -> None:
        super().__init__(2003, f"Party is already archived: {party_id}", 409)


# --- 3xxx: Bet lifecycle ---

class BetNotFoundError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(3001, f"Bet not found: {bet_id}", 404)


class BetNotOpenError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(3002, f"Bet {bet_id}: bet must be open to close", 409)


class BetNotClosedError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(3003, f"Bet {bet_id}: bet must be closed to settle", 409)


class BetAlreadySettledError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(3004, f"Bet {bet_id}: bet already settled", 409)


class InvalidWinningOptionError(AppError):
    def __init__(self, bet_id: int, option_id: int | None) -> None:
        super().__init__(
            3005, f"Invalid winning option {option_id} for bet {bet_id}", 422
        )


class SettlementConflictError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(
            3006, f"Bet {bet_id} changed status during settlement, nothing written", 409
        )


# --- 4xxx: Wager ---

class BetNotAcceptingWagersError(AppError):
    def __init__(self, bet_id: int, status: str) -> None:
        super().__init__(4001, f"Cannot place wager. Bet {bet_id} is {status}.", 409)


class InvalidWagerOptionError(AppError):
    def __init__(self, bet_id: int, option_id: int) -> None:
        super().__init__(4002, f"Invalid option {option_id} for bet {bet_id}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
