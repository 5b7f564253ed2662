from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel


class Player(SQLModel, table=True):
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    balance: int = Field(default=0, ge=0, sa_type=BigInteger)
    created_at: int = Field(sa_type=BigInteger)
    last_updated: int = Field(index=True, sa_type=BigInteger)


class LedgerTransaction(SQLModel, table=True):
    __tablename__ = "ledger_transaction"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    player_id: int = Field(foreign_key="player.id", index=True)
    kind: str
    amount: int = Field(ge=0, sa_type=BigInteger)
    description: str
    timestamp: int = Field(index=True, sa_type=BigInteger)
