from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from ..models.records import SyncDelta
from .store import LedgerStore


class SyncPlanner:
    """Works out what a polling client needs since its last watermark.

    Reads one consistent snapshot from the store and never mutates it. The
    returned ``server_timestamp`` comes from the store's clock, so the next
    watermark is always comparable with player and transaction stamps.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    def compute_delta(
        self,
        since: int = 0,
        known_player_ids: Optional[Iterable[int]] = None,
    ) -> SyncDelta:
        snapshot = self.store.snapshot()
        # A first sync takes the full player list, so deletions are implied.
        deleted: list[int] = []
        if since == 0:
            players = snapshot.players
            transactions = snapshot.transactions
        else:
            players = [p for p in snapshot.players if p.last_updated > since]
            transactions = [t for t in snapshot.transactions if t.timestamp > since]
            deleted = sorted(pid for pid, stamp in snapshot.deletions.items() if stamp > since)

        known = set(known_player_ids or ())
        if known:
            transactions = [t for t in transactions if t.player_id in known]

        return SyncDelta(
            players=players,
            transactions=transactions,
            server_timestamp=snapshot.taken_at,
            deleted_player_ids=deleted,
        )

    def check_changes(self, since: int) -> tuple[bool, int]:
        """Return whether anything moved past ``since`` plus the server watermark."""
        snapshot = self.store.snapshot()
        changed = (
            any(p.last_updated > since for p in snapshot.players)
            or any(t.timestamp > since for t in snapshot.transactions)
            or any(stamp > since for stamp in snapshot.deletions.values())
        )
        return changed, snapshot.taken_at

    def has_changes_since(self, since: int) -> bool:
        changed, _ = self.check_changes(since)
        return changed
