from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .records import MAX_AMOUNT


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlayerCreate(CamelModel):
    name: str = Field(..., description="Display name; trimmed before storing")


class PlayerRename(CamelModel):
    name: str


class PlayerResponse(CamelModel):
    id: int
    name: str
    balance: int = Field(..., ge=0)
    created_at: int = Field(..., description="Creation time in epoch milliseconds")
    last_updated: int = Field(..., description="Last mutation time in epoch milliseconds")


class AmountRequest(CamelModel):
    amount: int = Field(
        ..., ge=1, le=MAX_AMOUNT, description="Amount to add or subtract (must be >= 1)"
    )
    description: Optional[str] = Field(default=None, description="Label shown in the history")


class BalanceRequest(CamelModel):
    amount: int = Field(
        ..., ge=0, le=MAX_AMOUNT, description="New absolute balance (must be >= 0)"
    )
    description: Optional[str] = None


class TransactionResponse(CamelModel):
    id: int
    player_id: int
    kind: Literal["credit", "debit", "set_to"]
    amount: int
    signed_amount: int
    description: str
    timestamp: int


class OperationResponse(CamelModel):
    success: bool = True


class SyncRequest(CamelModel):
    last_sync_timestamp: int = Field(default=0, ge=0, le=MAX_AMOUNT)
    known_player_ids: list[int] = Field(default_factory=list)


class SyncResponse(CamelModel):
    players: list[PlayerResponse]
    transactions: list[TransactionResponse]
    server_timestamp: int
    deleted_player_ids: list[int] = Field(default_factory=list)


class ChangesResponse(CamelModel):
    has_changes: bool
    server_timestamp: int
