from __future__ import annotations

from typing import Any, Optional


class SettlementError(Exception):
    """Base exception for completion settlement."""


class TicketAlreadyCompletedError(SettlementError):
    """Raised when settling a ticket that was completed before."""


class SettlementPersistenceError(SettlementError):
    """Raised when settled records could not all be written to the store.

    The settlement itself was applied; `result` holds what should be saved.
    """

    def __init__(self, message: str, *, result: Optional[Any] = None):
        super().__init__(message)
        self.result = result
