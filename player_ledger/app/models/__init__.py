from .db import LedgerTransaction as TransactionModel
from .db import Player as PlayerModel
from .records import (
    MAX_AMOUNT,
    Delta,
    DeltaKind,
    LedgerSnapshot,
    MutationResult,
    PlayerRecord,
    SyncDelta,
    TransactionRecord,
)
from .schemas import (
    AmountRequest,
    BalanceRequest,
    ChangesResponse,
    OperationResponse,
    PlayerCreate,
    PlayerRename,
    PlayerResponse,
    SyncRequest,
    SyncResponse,
    TransactionResponse,
)

__all__ = [
    "MAX_AMOUNT",
    "AmountRequest",
    "BalanceRequest",
    "ChangesResponse",
    "OperationResponse",
    "PlayerCreate",
    "PlayerRename",
    "PlayerResponse",
    "SyncRequest",
    "SyncResponse",
    "TransactionResponse",
    "Delta",
    "DeltaKind",
    "LedgerSnapshot",
    "MutationResult",
    "PlayerRecord",
    "SyncDelta",
    "TransactionRecord",
    "PlayerModel",
    "TransactionModel",
]
