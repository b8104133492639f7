"""Ticket, progression, and statistics storage."""

from .contracts import ProgressionStore, WorkItemStore
from .errors import (
    StoreError,
    StoreLoadError,
    StorePersistenceError,
    TicketCompletedError,
    TicketNotFoundError,
)
from .json_store import JsonDataStore
from .models import Stats, UserProgression, WorkItem

__all__ = [
    "JsonDataStore",
    "ProgressionStore",
    "Stats",
    "StoreError",
    "StoreLoadError",
    "StorePersistenceError",
    "TicketCompletedError",
    "TicketNotFoundError",
    "UserProgression",
    "WorkItem",
    "WorkItemStore",
]
