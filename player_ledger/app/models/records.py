"""Value types shared by the ledger store, recorder and sync planner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Largest integer a JSON client can round-trip exactly; also fits SQL BIGINT.
MAX_AMOUNT = 2**53 - 1


class DeltaKind(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    SET_TO = "set_to"


@dataclass(frozen=True)
class Delta:
    """A balance change: credit or debit by ``amount``, or an absolute reset."""

    kind: DeltaKind
    amount: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Delta amount must be non-negative")

    @classmethod
    def credit(cls, amount: int) -> "Delta":
        return cls(DeltaKind.CREDIT, amount)

    @classmethod
    def debit(cls, amount: int) -> "Delta":
        return cls(DeltaKind.DEBIT, amount)

    @classmethod
    def set_to(cls, amount: int) -> "Delta":
        return cls(DeltaKind.SET_TO, amount)

    @classmethod
    def from_signed(cls, change: int) -> "Delta":
        if change >= 0:
            return cls.credit(change)
        return cls.debit(-change)

    @property
    def signed(self) -> int:
        """Signed amount; for SET_TO this is the new absolute balance."""
        if self.kind is DeltaKind.DEBIT:
            return -self.amount
        return self.amount

    def default_description(self) -> str:
        if self.kind is DeltaKind.CREDIT:
            return f"Added {self.amount}"
        if self.kind is DeltaKind.DEBIT:
            return f"Subtracted {self.amount}"
        return f"Balance set to {self.amount}"


@dataclass(frozen=True)
class PlayerRecord:
    id: int
    name: str
    balance: int
    created_at: int
    last_updated: int


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    player_id: int
    delta: Delta
    description: str
    timestamp: int


@dataclass(frozen=True)
class LedgerSnapshot:
    """Players, transactions and deletion stamps read together in one pass.

    ``deletions`` maps a removed player id to the stamp of its removal.
    """

    players: list[PlayerRecord]
    transactions: list[TransactionRecord]
    taken_at: int
    deletions: dict[int, int] = field(default_factory=dict)


class MutationResult(str, Enum):
    """Outcome of a balance-changing call.

    Business failures are reported here instead of being raised so callers
    can tell a missing player apart from a rejected debit.
    """

    APPLIED = "applied"
    PLAYER_NOT_FOUND = "player_not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    BALANCE_LIMIT_EXCEEDED = "balance_limit_exceeded"

    @property
    def succeeded(self) -> bool:
        return self is MutationResult.APPLIED

    def __bool__(self) -> bool:
        return self.succeeded


@dataclass(frozen=True)
class SyncDelta:
    players: list[PlayerRecord]
    transactions: list[TransactionRecord]
    server_timestamp: int
    deleted_player_ids: list[int] = field(default_factory=list)


def describe(delta: Delta, description: Optional[str]) -> str:
    text = (description or "").strip()
    return text or delta.default_description()
