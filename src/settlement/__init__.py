"""Experience point settlement for completed tickets."""

from .errors import (
    SettlementError,
    SettlementPersistenceError,
    TicketAlreadyCompletedError,
)
from .service import (
    CompletionSettlement,
    SettlementResult,
    XPOutcome,
    XPRules,
    apply_level_ups,
    compute_xp,
    round_time_spent,
)

__all__ = [
    "CompletionSettlement",
    "SettlementError",
    "SettlementPersistenceError",
    "SettlementResult",
    "TicketAlreadyCompletedError",
    "XPOutcome",
    "XPRules",
    "apply_level_ups",
    "compute_xp",
    "round_time_spent",
]
