from .ledger import LedgerService
from .recorder import TransactionRecorder
from .repository import SqlLedgerStore
from .store import InMemoryLedgerStore, LedgerStore
from .sync import SyncPlanner

__all__ = [
    "InMemoryLedgerStore",
    "LedgerService",
    "LedgerStore",
    "SqlLedgerStore",
    "SyncPlanner",
    "TransactionRecorder",
]
