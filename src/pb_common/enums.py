"""Global enums — must match DB CHECK constraints exactly.

See alembic/versions/001_create_betting_tables.py.
"""

from enum import Enum


class PartyStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class BetType(str, Enum):
    YES_NO = "yes_no"
    MULTI_OPTION = "multi_option"


class BetStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"


class BetAction(str, Enum):
    """Lifecycle transitions a caller can request on a bet."""
    CLOSE = "close"
    SETTLE = "settle"


class PolicyErrorKind(str, Enum):
    """Why a lifecycle transition was refused."""
    STATE = "STATE"
    INVALID_OPTION = "INVALID_OPTION"
    AUTHORIZATION = "AUTHORIZATION"
