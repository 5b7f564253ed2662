from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import List, Optional

from ..core.config import Settings
from ..core.errors import ValidationError
from ..models.records import (
    MAX_AMOUNT,
    MutationResult,
    PlayerRecord,
    SyncDelta,
    TransactionRecord,
)
from .store import LedgerStore, check_balance
from .sync import SyncPlanner


logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(
        self,
        store: LedgerStore,
        planner: Optional[SyncPlanner] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.planner = planner or SyncPlanner(store)
        self.settings = settings or Settings()

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def _validate_name(self, name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Player name is required")
        if len(cleaned) > self.settings.max_name_length:
            raise ValidationError(
                f"Player name must be at most {self.settings.max_name_length} characters"
            )
        return cleaned

    def _validate_amount(self, amount: int) -> None:
        if amount <= 0:
            raise ValidationError("Amount must be positive")
        if amount > MAX_AMOUNT:
            raise ValidationError(f"Amount must be at most {MAX_AMOUNT}")

    def _log_outcome(self, event: str, player_id: int, amount: int, result: MutationResult) -> None:
        logger.info(
            event,
            extra={"player_id": player_id, "amount": amount, "outcome": result.value},
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_players(self) -> List[PlayerRecord]:
        return self.store.list_players()

    def get_player(self, player_id: int) -> Optional[PlayerRecord]:
        return self.store.get_player(player_id)

    def create_player(self, name: str) -> PlayerRecord:
        player = self.store.create_player(self._validate_name(name))
        logger.info(
            "player.created",
            extra={"player_id": player.id, "player_name": player.name, "balance": player.balance},
        )
        return player

    def rename_player(self, player_id: int, name: str) -> MutationResult:
        result = self.store.rename_player(player_id, self._validate_name(name))
        logger.info("player.renamed", extra={"player_id": player_id, "outcome": result.value})
        return result

    def add_money(
        self, player_id: int, amount: int, description: Optional[str] = None
    ) -> MutationResult:
        self._validate_amount(amount)
        result = self.store.adjust_balance(player_id, amount, description)
        self._log_outcome("player.balance_adjusted", player_id, amount, result)
        return result

    def subtract_money(
        self, player_id: int, amount: int, description: Optional[str] = None
    ) -> MutationResult:
        self._validate_amount(amount)
        result = self.store.adjust_balance(player_id, -amount, description)
        self._log_outcome("player.balance_adjusted", player_id, -amount, result)
        return result

    def set_balance(
        self, player_id: int, amount: int, description: Optional[str] = None
    ) -> MutationResult:
        check_balance(amount)
        result = self.store.set_balance(player_id, amount, description)
        self._log_outcome("player.balance_set", player_id, amount, result)
        return result

    def delete_player(self, player_id: int) -> bool:
        deleted = self.store.delete_player(player_id)
        logger.info("player.deleted", extra={"player_id": player_id, "deleted": deleted})
        return deleted

    def history_for(self, player_id: int, limit: Optional[int] = None) -> List[TransactionRecord]:
        if limit is None:
            limit = self.settings.history_default_limit
        if limit < 1:
            raise ValidationError("Limit must be at least 1")
        return self.store.history_for(player_id, min(limit, self.settings.history_retention))

    def all_transactions(self) -> List[TransactionRecord]:
        return self.store.all_transactions()

    def compute_delta(
        self, since: int = 0, known_player_ids: Optional[Iterable[int]] = None
    ) -> SyncDelta:
        if since < 0:
            raise ValidationError("Sync timestamp must be zero or positive")
        delta = self.planner.compute_delta(since, known_player_ids)
        logger.info(
            "ledger.sync",
            extra={
                "since": since,
                "players": len(delta.players),
                "transactions": len(delta.transactions),
                "deleted": len(delta.deleted_player_ids),
                "server_timestamp": delta.server_timestamp,
            },
        )
        return delta

    def check_changes(self, since: int) -> tuple[bool, int]:
        return self.planner.check_changes(since)
