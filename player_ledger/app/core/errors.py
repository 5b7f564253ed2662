class LedgerError(Exception):
    """Base class for ledger failures that are not plain business outcomes."""


class ValidationError(LedgerError, ValueError):
    """Raised when caller input is malformed (bad name, bad amount)."""


class PlayerNotFoundError(LedgerError):
    """Raised by the HTTP layer when a read targets a missing player."""


class StorageError(LedgerError):
    """Raised when the backing store fails unexpectedly."""
