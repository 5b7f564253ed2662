from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Dict, List, Optional, Set

from sqlalchemy import delete, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core.clock import LedgerClock
from ..core.errors import StorageError
from ..models import PlayerModel, TransactionModel
from ..models.records import (
    MAX_AMOUNT,
    Delta,
    DeltaKind,
    LedgerSnapshot,
    MutationResult,
    PlayerRecord,
    TransactionRecord,
    describe,
)
from .store import check_balance, check_change, clean_name, set_balance_description


logger = logging.getLogger(__name__)


class SqlLedgerStore:
    """Relational backing for the ledger, same contract as the in-memory store.

    Balance changes are a single conditional UPDATE so no in-process lock is
    held across the database round trip. The audit row, retention prune and
    cascade delete share the mutation's database transaction.

    Mutation stamps are taken before commit. While a write is in flight its
    stamp is held in ``_pending`` and ``snapshot()`` hands out a watermark
    just below the oldest pending stamp, so a late commit is still newer than
    the watermark the client quotes back. Pending stamps and deletion stamps
    live in this process only: several processes sharing one database can
    still hand out a watermark past another process's uncommitted write.
    """

    def __init__(
        self,
        engine: Engine,
        clock: Optional[LedgerClock] = None,
        *,
        initial_balance: int = 1500,
        history_retention: int = 50,
    ) -> None:
        check_balance(initial_balance)
        self.engine = engine
        self._clock = clock or LedgerClock()
        self._initial_balance = initial_balance
        self._retention = history_retention
        self._pending: Set[int] = set()
        self._deleted: Dict[int, int] = {}
        self._stamp_lock = threading.Lock()

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("storage.failure")
            raise StorageError("Ledger storage failure") from exc

    @contextmanager
    def _stamp(self) -> Generator[int, None, None]:
        """Hand out a mutation stamp that counts as pending until the block exits."""
        with self._stamp_lock:
            stamp = self._clock.now()
            self._pending.add(stamp)
        try:
            yield stamp
        finally:
            with self._stamp_lock:
                self._pending.discard(stamp)

    def _watermark(self) -> int:
        with self._stamp_lock:
            now = self._clock.now()
            if self._pending:
                return min(self._pending) - 1
            return now

    @staticmethod
    def _known_id(player_id: int) -> bool:
        # ids outside this range cannot exist and would overflow the driver
        return 0 < player_id <= MAX_AMOUNT

    # Conversions ---------------------------------------------------------
    @staticmethod
    def _player_to_record(player: PlayerModel) -> PlayerRecord:
        return PlayerRecord(
            id=player.id,
            name=player.name,
            balance=player.balance,
            created_at=player.created_at,
            last_updated=player.last_updated,
        )

    @staticmethod
    def _transaction_to_record(entry: TransactionModel) -> TransactionRecord:
        return TransactionRecord(
            id=entry.id,
            player_id=entry.player_id,
            delta=Delta(DeltaKind(entry.kind), entry.amount),
            description=entry.description,
            timestamp=entry.timestamp,
        )

    def _record(
        self,
        session: Session,
        player_id: int,
        delta: Delta,
        description: Optional[str],
        timestamp: int,
    ) -> None:
        session.add(
            TransactionModel(
                player_id=player_id,
                kind=delta.kind.value,
                amount=delta.amount,
                description=describe(delta, description),
                timestamp=timestamp,
            )
        )
        session.flush()
        self._prune(session, player_id)

    def _prune(self, session: Session, player_id: int) -> None:
        stmt = (
            select(TransactionModel.id)
            .where(TransactionModel.player_id == player_id)
            .order_by(TransactionModel.id.desc())
            .offset(self._retention)
            .limit(1)
        )
        cutoff = session.exec(stmt).first()
        if cutoff is None:
            return
        session.connection().execute(
            delete(TransactionModel)
            .where(TransactionModel.player_id == player_id)
            .where(TransactionModel.id <= cutoff)
        )

    # Reads ---------------------------------------------------------------
    def list_players(self) -> List[PlayerRecord]:
        with self._session() as session:
            players = session.exec(select(PlayerModel).order_by(PlayerModel.id))
            return [self._player_to_record(player) for player in players]

    def get_player(self, player_id: int) -> Optional[PlayerRecord]:
        if not self._known_id(player_id):
            return None
        with self._session() as session:
            player = session.get(PlayerModel, player_id)
            return self._player_to_record(player) if player else None

    def history_for(self, player_id: int, limit: int = 20) -> List[TransactionRecord]:
        if not self._known_id(player_id):
            return []
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.player_id == player_id)
            .order_by(TransactionModel.id.desc())
            .limit(limit)
        )
        with self._session() as session:
            return [self._transaction_to_record(entry) for entry in session.exec(stmt)]

    def all_transactions(self) -> List[TransactionRecord]:
        with self._session() as session:
            entries = session.exec(select(TransactionModel).order_by(TransactionModel.id))
            return [self._transaction_to_record(entry) for entry in entries]

    def snapshot(self) -> LedgerSnapshot:
        # Watermark first: anything committed after the reads is stamped above it.
        watermark = self._watermark()
        with self._session() as session:
            players = session.exec(select(PlayerModel).order_by(PlayerModel.id)).all()
            entries = session.exec(select(TransactionModel).order_by(TransactionModel.id)).all()
            with self._stamp_lock:
                deletions = dict(self._deleted)
            return LedgerSnapshot(
                players=[self._player_to_record(player) for player in players],
                transactions=[self._transaction_to_record(entry) for entry in entries],
                taken_at=watermark,
                deletions=deletions,
            )

    # Mutations -----------------------------------------------------------
    def create_player(self, name: str) -> PlayerRecord:
        cleaned = clean_name(name)
        with self._stamp() as now, self._session() as session:
            player = PlayerModel(
                name=cleaned,
                balance=self._initial_balance,
                created_at=now,
                last_updated=now,
            )
            session.add(player)
            session.flush()
            self._record(session, player.id, Delta.set_to(player.balance), "Initial balance", now)
            session.commit()
            session.refresh(player)
            return self._player_to_record(player)

    def rename_player(self, player_id: int, name: str) -> MutationResult:
        cleaned = clean_name(name)
        if not self._known_id(player_id):
            return MutationResult.PLAYER_NOT_FOUND
        with self._stamp() as now, self._session() as session:
            result = session.connection().execute(
                update(PlayerModel)
                .where(PlayerModel.id == player_id)
                .values(name=cleaned, last_updated=now)
            )
            if result.rowcount == 0:
                session.rollback()
                return MutationResult.PLAYER_NOT_FOUND
            session.commit()
            return MutationResult.APPLIED

    def adjust_balance(
        self, player_id: int, change: int, description: Optional[str] = None
    ) -> MutationResult:
        check_change(change)
        if not self._known_id(player_id):
            return MutationResult.PLAYER_NOT_FOUND
        with self._stamp() as now, self._session() as session:
            result = session.connection().execute(
                update(PlayerModel)
                .where(PlayerModel.id == player_id)
                .where(PlayerModel.balance + change >= 0)
                .where(PlayerModel.balance + change <= MAX_AMOUNT)
                .values(balance=PlayerModel.balance + change, last_updated=now)
            )
            if result.rowcount == 0:
                player = session.get(PlayerModel, player_id)
                session.rollback()
                if player is None:
                    return MutationResult.PLAYER_NOT_FOUND
                if player.balance + change < 0:
                    return MutationResult.INSUFFICIENT_FUNDS
                return MutationResult.BALANCE_LIMIT_EXCEEDED
            self._record(session, player_id, Delta.from_signed(change), description, now)
            session.commit()
            return MutationResult.APPLIED

    def set_balance(
        self, player_id: int, new_balance: int, description: Optional[str] = None
    ) -> MutationResult:
        check_balance(new_balance)
        if not self._known_id(player_id):
            return MutationResult.PLAYER_NOT_FOUND
        with self._stamp() as now, self._session() as session:
            stmt = select(PlayerModel).where(PlayerModel.id == player_id).with_for_update()
            player = session.exec(stmt).first()
            if player is None:
                return MutationResult.PLAYER_NOT_FOUND
            previous = player.balance
            player.balance = new_balance
            player.last_updated = now
            session.add(player)
            self._record(
                session,
                player_id,
                Delta.set_to(new_balance),
                set_balance_description(new_balance, previous, description),
                now,
            )
            session.commit()
            return MutationResult.APPLIED

    def delete_player(self, player_id: int) -> bool:
        if not self._known_id(player_id):
            return False
        with self._stamp() as now, self._session() as session:
            connection = session.connection()
            connection.execute(
                delete(TransactionModel).where(TransactionModel.player_id == player_id)
            )
            result = connection.execute(delete(PlayerModel).where(PlayerModel.id == player_id))
            if result.rowcount == 0:
                session.rollback()
                return False
            session.commit()
            with self._stamp_lock:
                self._deleted[player_id] = now
            return True
