from concurrent.futures import ThreadPoolExecutor

import pytest

from ..core.clock import LedgerClock
from ..core.errors import ValidationError
from ..models import MAX_AMOUNT, Delta, DeltaKind, MutationResult
from ..services import InMemoryLedgerStore, TransactionRecorder


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore(initial_balance=1500)


def test_create_player_records_initial_balance(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")
    assert (player.id, player.name, player.balance) == (1, "Alice", 1500)

    history = store.history_for(player.id)
    assert len(history) == 1
    assert history[0].delta == Delta.set_to(1500)
    assert history[0].timestamp >= player.created_at


def test_create_player_rejects_blank_name(store: InMemoryLedgerStore) -> None:
    with pytest.raises(ValidationError):
        store.create_player("   ")
    assert store.list_players() == []


def test_adjust_balance_outcomes(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")

    assert store.adjust_balance(player.id, 200) is MutationResult.APPLIED
    assert store.get_player(player.id).balance == 1700

    result = store.adjust_balance(player.id, -5000)
    assert result is MutationResult.INSUFFICIENT_FUNDS
    assert not result
    assert store.get_player(player.id).balance == 1700
    assert len(store.history_for(player.id)) == 2

    assert store.adjust_balance(99, 10) is MutationResult.PLAYER_NOT_FOUND

    with pytest.raises(ValidationError):
        store.adjust_balance(player.id, 0)


def test_debit_to_exactly_zero_is_allowed(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")
    assert store.adjust_balance(player.id, -1500)
    assert store.get_player(player.id).balance == 0
    assert store.history_for(player.id)[0].delta == Delta(DeltaKind.DEBIT, 1500)


def test_set_balance_notes_previous_value(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")
    store.adjust_balance(player.id, 200)

    assert store.set_balance(player.id, 0)
    latest = store.history_for(player.id)[0]
    assert latest.delta == Delta.set_to(0)
    assert latest.description == "Balance set to 0 (was 1700)"

    assert store.set_balance(player.id, 10, "Bank error") is MutationResult.APPLIED
    assert store.history_for(player.id)[0].description == "Bank error (was 0)"

    with pytest.raises(ValidationError):
        store.set_balance(player.id, -1)
    assert store.set_balance(99, 5) is MutationResult.PLAYER_NOT_FOUND


def test_snapshots_are_not_aliases(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")
    store.adjust_balance(player.id, 100)
    assert player.balance == 1500
    assert store.get_player(player.id).balance == 1600


def test_delete_player_cascades(store: InMemoryLedgerStore) -> None:
    alice = store.create_player("Alice")
    bob = store.create_player("Bob")
    store.adjust_balance(alice.id, 10)

    assert store.delete_player(alice.id) is True
    assert store.get_player(alice.id) is None
    assert store.history_for(alice.id) == []
    assert {t.player_id for t in store.all_transactions()} == {bob.id}
    assert store.delete_player(alice.id) is False

    assert store.create_player("Carol").id == 3


def test_history_is_capped_per_player() -> None:
    store = InMemoryLedgerStore(history_retention=50)
    noisy = store.create_player("Noisy")
    quiet = store.create_player("Quiet")
    for _ in range(80):
        store.adjust_balance(noisy.id, 1)

    retained = store.history_for(noisy.id, limit=1000)
    assert len(retained) == 50
    # ids 1 and 2 went to the two creations, 3..82 to the credits
    assert sorted(t.id for t in retained) == list(range(33, 83))
    assert retained[0].id == 82

    assert len(store.history_for(quiet.id)) == 1


def test_recorder_prunes_lowest_ids_first() -> None:
    recorder = TransactionRecorder(LedgerClock(), retention=3)
    for amount in range(1, 6):
        recorder.record(7, Delta.credit(amount))

    assert [t.delta.amount for t in recorder.history_for(7)] == [5, 4, 3]
    assert [t.id for t in recorder.all_transactions()] == [3, 4, 5]
    assert recorder.history_for(7)[0].description == "Added 5"
    assert recorder.delete_for(7) == 3
    assert recorder.history_for(7) == []


def test_concurrent_credits_are_not_lost(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: store.adjust_balance(player.id, 100), range(200)))

    assert all(results)
    assert store.get_player(player.id).balance == 1500 + 200 * 100


def test_concurrent_debits_never_overdraw(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: store.adjust_balance(player.id, -100), range(40)))

    accepted = [r for r in results if r is MutationResult.APPLIED]
    assert len(accepted) == 15
    assert store.get_player(player.id).balance == 0
    debits = [t for t in store.all_transactions() if t.delta.kind is DeltaKind.DEBIT]
    assert len(debits) == len(accepted)


def test_clock_is_strictly_increasing() -> None:
    clock = LedgerClock(source=lambda: 1000.0)
    stamps = [clock.now() for _ in range(5)]
    assert stamps == [1_000_000, 1_000_001, 1_000_002, 1_000_003, 1_000_004]


def test_credit_past_limit_is_refused(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")
    assert store.set_balance(player.id, MAX_AMOUNT)

    assert store.adjust_balance(player.id, 1) is MutationResult.BALANCE_LIMIT_EXCEEDED
    assert store.get_player(player.id).balance == MAX_AMOUNT
    assert len(store.history_for(player.id)) == 2

    with pytest.raises(ValidationError):
        store.set_balance(player.id, MAX_AMOUNT + 1)
    with pytest.raises(ValidationError):
        store.adjust_balance(player.id, -(MAX_AMOUNT + 1))


def test_latest_entry_is_never_older_than_player(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")
    mutations = [
        lambda: store.adjust_balance(player.id, 25),
        lambda: store.adjust_balance(player.id, -10),
        lambda: store.set_balance(player.id, 300),
    ]

    latest = store.history_for(player.id)[0]
    assert latest.timestamp >= store.get_player(player.id).last_updated
    for mutate in mutations:
        assert mutate()
        latest = store.history_for(player.id)[0]
        assert latest.timestamp >= store.get_player(player.id).last_updated


def test_deletion_is_stamped_in_snapshot(store: InMemoryLedgerStore) -> None:
    player = store.create_player("Alice")
    before = store.snapshot().taken_at

    store.delete_player(player.id)
    snapshot = store.snapshot()
    assert snapshot.deletions[player.id] > before
    assert snapshot.taken_at > snapshot.deletions[player.id]
