import pytest

from ..core.clock import LedgerClock
from ..core.config import Settings
from ..core.errors import ValidationError
from ..models import DeltaKind
from ..services import InMemoryLedgerStore, LedgerService, SyncPlanner


class FrozenTime:
    def __init__(self, value: float = 1_700_000_000.0) -> None:
        self.value = value

    def __call__(self) -> float:
        return self.value


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore(LedgerClock(source=FrozenTime()), initial_balance=1500)


@pytest.fixture
def planner(store: InMemoryLedgerStore) -> SyncPlanner:
    return SyncPlanner(store)


def test_first_sync_returns_everything(store, planner) -> None:
    alice = store.create_player("Alice")
    bob = store.create_player("Bob")
    store.adjust_balance(alice.id, 50)

    delta = planner.compute_delta(0, [])
    assert [p.id for p in delta.players] == [alice.id, bob.id]
    assert len(delta.transactions) == 3
    assert delta.server_timestamp > max(t.timestamp for t in delta.transactions)


def test_follow_up_sync_only_returns_changes(store, planner) -> None:
    alice = store.create_player("Alice")
    bob = store.create_player("Bob")
    first = planner.compute_delta(0)

    store.adjust_balance(bob.id, -100)
    second = planner.compute_delta(first.server_timestamp)
    assert [p.id for p in second.players] == [bob.id]
    assert [(t.player_id, t.delta.kind) for t in second.transactions] == [
        (bob.id, DeltaKind.DEBIT)
    ]
    assert alice.id not in {p.id for p in second.players}

    third = planner.compute_delta(second.server_timestamp)
    assert third.players == []
    assert third.transactions == []


def test_known_player_filter_only_applies_to_transactions(store, planner) -> None:
    alice = store.create_player("Alice")
    first = planner.compute_delta(0, [alice.id])

    bob = store.create_player("Bob")
    store.adjust_balance(alice.id, 5)
    store.adjust_balance(bob.id, 5)

    delta = planner.compute_delta(first.server_timestamp, [alice.id])
    assert {p.id for p in delta.players} == {alice.id, bob.id}
    assert {t.player_id for t in delta.transactions} == {alice.id}

    unfiltered = planner.compute_delta(first.server_timestamp, [])
    assert {t.player_id for t in unfiltered.transactions} == {alice.id, bob.id}


def test_rename_shows_up_as_changed_player(store, planner) -> None:
    alice = store.create_player("Alice")
    watermark = planner.compute_delta(0).server_timestamp

    store.rename_player(alice.id, "Alicia")
    delta = planner.compute_delta(watermark)
    assert [p.name for p in delta.players] == ["Alicia"]
    assert delta.transactions == []


def test_has_changes_since(store, planner) -> None:
    changed, watermark = planner.check_changes(0)
    assert changed is False

    player = store.create_player("Alice")
    assert planner.has_changes_since(watermark) is True

    _, watermark = planner.check_changes(watermark)
    assert planner.has_changes_since(watermark) is False

    store.set_balance(player.id, 10)
    assert planner.has_changes_since(watermark) is True


def test_facade_validates_before_touching_store(store) -> None:
    service = LedgerService(store, settings=Settings(max_name_length=5))

    with pytest.raises(ValidationError):
        service.create_player("Bartholomew")
    with pytest.raises(ValidationError):
        service.add_money(1, 0)
    with pytest.raises(ValidationError):
        service.subtract_money(1, -3)
    with pytest.raises(ValidationError):
        service.set_balance(1, -1)
    with pytest.raises(ValidationError):
        service.compute_delta(-1)
    assert store.list_players() == []

    player = service.create_player(" Ann ")
    assert player.name == "Ann"
    assert service.subtract_money(player.id, 2000).value == "insufficient_funds"
    assert len(service.history_for(player.id, limit=500)) == 1


def test_deletion_counts_as_a_change(store, planner) -> None:
    alice = store.create_player("Alice")
    bob = store.create_player("Bob")
    _, watermark = planner.check_changes(0)

    store.delete_player(alice.id)
    assert planner.has_changes_since(watermark) is True

    delta = planner.compute_delta(watermark, [alice.id, bob.id])
    assert delta.deleted_player_ids == [alice.id]
    assert delta.players == []
    assert delta.transactions == []

    assert planner.compute_delta(0).deleted_player_ids == []
    assert planner.compute_delta(delta.server_timestamp).deleted_player_ids == []
