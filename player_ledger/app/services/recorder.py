from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Optional

from ..core.clock import LedgerClock
from ..models.records import Delta, TransactionRecord, describe


class TransactionRecorder:
    """Append-only audit log keyed by player, capped per player.

    Not synchronised on its own: the owning store calls it while holding the
    ledger lock so a balance change and its entry land together.
    """

    def __init__(self, clock: LedgerClock, *, retention: int = 50) -> None:
        self._clock = clock
        self._retention = retention
        self._next_id = 1
        self._entries: Dict[int, Deque[TransactionRecord]] = {}

    def record(
        self,
        player_id: int,
        delta: Delta,
        description: Optional[str] = None,
    ) -> TransactionRecord:
        entry = TransactionRecord(
            id=self._next_id,
            player_id=player_id,
            delta=delta,
            description=describe(delta, description),
            timestamp=self._clock.now(),
        )
        self._next_id += 1
        self._entries.setdefault(player_id, deque()).append(entry)
        self.prune_for(player_id)
        return entry

    def prune_for(self, player_id: int) -> int:
        entries = self._entries.get(player_id)
        if not entries:
            return 0
        evicted = 0
        while len(entries) > self._retention:
            entries.popleft()  # lowest id first
            evicted += 1
        return evicted

    def history_for(self, player_id: int, limit: int = 20) -> List[TransactionRecord]:
        entries = self._entries.get(player_id, ())
        newest_first = list(reversed(entries))
        return newest_first[:limit]

    def all_transactions(self) -> List[TransactionRecord]:
        merged = [entry for entries in self._entries.values() for entry in entries]
        return sorted(merged, key=lambda e: e.id)

    def delete_for(self, player_id: int) -> int:
        removed = self._entries.pop(player_id, None)
        return len(removed) if removed else 0
