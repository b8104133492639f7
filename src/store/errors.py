class StoreError(Exception):
    """Base exception for data store failures."""


class StoreLoadError(StoreError):
    """Raised when the data file exists but cannot be read or decoded."""


class StorePersistenceError(StoreError):
    """Raised when writing the data file fails."""


class TicketNotFoundError(StoreError):
    """Raised when a ticket id is not present in the store."""


class TicketCompletedError(StoreError):
    """Raised when changing a ticket that has already been completed."""
