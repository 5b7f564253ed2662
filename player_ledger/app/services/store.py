from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from ..core.clock import LedgerClock
from ..core.errors import ValidationError
from ..models.records import (
    MAX_AMOUNT,
    Delta,
    LedgerSnapshot,
    MutationResult,
    PlayerRecord,
    TransactionRecord,
)
from .recorder import TransactionRecorder


class LedgerStore(Protocol):
    """Authoritative player table plus its audit log.

    Implementations must keep ``balance >= 0`` and make every balance change
    visible together with its transaction entry.
    """

    def list_players(self) -> List[PlayerRecord]:
        ...

    def get_player(self, player_id: int) -> Optional[PlayerRecord]:
        ...

    def create_player(self, name: str) -> PlayerRecord:
        ...

    def rename_player(self, player_id: int, name: str) -> MutationResult:
        ...

    def adjust_balance(
        self, player_id: int, change: int, description: Optional[str] = None
    ) -> MutationResult:
        ...

    def set_balance(
        self, player_id: int, new_balance: int, description: Optional[str] = None
    ) -> MutationResult:
        ...

    def delete_player(self, player_id: int) -> bool:
        ...

    def history_for(self, player_id: int, limit: int = 20) -> List[TransactionRecord]:
        ...

    def all_transactions(self) -> List[TransactionRecord]:
        ...

    def snapshot(self) -> LedgerSnapshot:
        ...


def clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Player name is required")
    return cleaned


def check_change(change: int) -> None:
    if change == 0:
        raise ValidationError("Balance change must be non-zero")
    if abs(change) > MAX_AMOUNT:
        raise ValidationError(f"Balance change must be at most {MAX_AMOUNT}")


def check_balance(new_balance: int) -> None:
    if new_balance < 0:
        raise ValidationError("Balance must be >= 0")
    if new_balance > MAX_AMOUNT:
        raise ValidationError(f"Balance must be at most {MAX_AMOUNT}")


def set_balance_description(new_balance: int, previous: int, description: Optional[str]) -> str:
    text = (description or "").strip() or Delta.set_to(new_balance).default_description()
    return f"{text} (was {previous})"


@dataclass
class _PlayerRow:
    id: int
    name: str
    balance: int
    created_at: int
    last_updated: int

    def snapshot(self) -> PlayerRecord:
        return PlayerRecord(
            id=self.id,
            name=self.name,
            balance=self.balance,
            created_at=self.created_at,
            last_updated=self.last_updated,
        )


class InMemoryLedgerStore:
    """Process-local ledger guarded by a single mutex.

    The player table and the recorder share the lock, so readers never see a
    balance without its audit entry. Callers only ever receive frozen
    snapshots.
    """

    def __init__(
        self,
        clock: Optional[LedgerClock] = None,
        *,
        initial_balance: int = 1500,
        history_retention: int = 50,
    ) -> None:
        check_balance(initial_balance)
        self._clock = clock or LedgerClock()
        self._initial_balance = initial_balance
        self._players: Dict[int, _PlayerRow] = {}
        self._deleted: Dict[int, int] = {}
        self._recorder = TransactionRecorder(self._clock, retention=history_retention)
        self._next_id = 1
        self._lock = threading.Lock()

    # Reads ---------------------------------------------------------------
    def list_players(self) -> List[PlayerRecord]:
        with self._lock:
            return [row.snapshot() for row in self._players.values()]

    def get_player(self, player_id: int) -> Optional[PlayerRecord]:
        with self._lock:
            row = self._players.get(player_id)
            return row.snapshot() if row else None

    def history_for(self, player_id: int, limit: int = 20) -> List[TransactionRecord]:
        with self._lock:
            return self._recorder.history_for(player_id, limit)

    def all_transactions(self) -> List[TransactionRecord]:
        with self._lock:
            return self._recorder.all_transactions()

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                players=[row.snapshot() for row in self._players.values()],
                transactions=self._recorder.all_transactions(),
                taken_at=self._clock.now(),
                deletions=dict(self._deleted),
            )

    # Mutations -----------------------------------------------------------
    def create_player(self, name: str) -> PlayerRecord:
        cleaned = clean_name(name)
        with self._lock:
            now = self._clock.now()
            row = _PlayerRow(
                id=self._next_id,
                name=cleaned,
                balance=self._initial_balance,
                created_at=now,
                last_updated=now,
            )
            self._next_id += 1
            self._players[row.id] = row
            self._recorder.record(row.id, Delta.set_to(row.balance), "Initial balance")
            return row.snapshot()

    def rename_player(self, player_id: int, name: str) -> MutationResult:
        cleaned = clean_name(name)
        with self._lock:
            row = self._players.get(player_id)
            if row is None:
                return MutationResult.PLAYER_NOT_FOUND
            row.name = cleaned
            row.last_updated = self._clock.now()
            return MutationResult.APPLIED

    def adjust_balance(
        self, player_id: int, change: int, description: Optional[str] = None
    ) -> MutationResult:
        check_change(change)
        with self._lock:
            row = self._players.get(player_id)
            if row is None:
                return MutationResult.PLAYER_NOT_FOUND
            if row.balance + change < 0:
                return MutationResult.INSUFFICIENT_FUNDS
            if row.balance + change > MAX_AMOUNT:
                return MutationResult.BALANCE_LIMIT_EXCEEDED
            row.balance += change
            row.last_updated = self._clock.now()
            self._recorder.record(player_id, Delta.from_signed(change), description)
            return MutationResult.APPLIED

    def set_balance(
        self, player_id: int, new_balance: int, description: Optional[str] = None
    ) -> MutationResult:
        check_balance(new_balance)
        with self._lock:
            row = self._players.get(player_id)
            if row is None:
                return MutationResult.PLAYER_NOT_FOUND
            previous = row.balance
            row.balance = new_balance
            row.last_updated = self._clock.now()
            self._recorder.record(
                player_id,
                Delta.set_to(new_balance),
                set_balance_description(new_balance, previous, description),
            )
            return MutationResult.APPLIED

    def delete_player(self, player_id: int) -> bool:
        with self._lock:
            if self._players.pop(player_id, None) is None:
                return False
            self._recorder.delete_for(player_id)
            self._deleted[player_id] = self._clock.now()
            return True
