from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from ..core.dependencies import get_ledger_service
from ..core.errors import PlayerNotFoundError
from ..models import (
    MAX_AMOUNT,
    AmountRequest,
    BalanceRequest,
    ChangesResponse,
    MutationResult,
    OperationResponse,
    PlayerCreate,
    PlayerRecord,
    PlayerRename,
    PlayerResponse,
    SyncRequest,
    SyncResponse,
    TransactionRecord,
    TransactionResponse,
)
from ..services import LedgerService


router = APIRouter(prefix="/players", tags=["players"])

PlayerId = Annotated[int, Path(ge=1, le=MAX_AMOUNT)]


def player_to_response(player: PlayerRecord) -> PlayerResponse:
    return PlayerResponse(
        id=player.id,
        name=player.name,
        balance=player.balance,
        created_at=player.created_at,
        last_updated=player.last_updated,
    )


def transaction_to_response(entry: TransactionRecord) -> TransactionResponse:
    return TransactionResponse(
        id=entry.id,
        player_id=entry.player_id,
        kind=entry.delta.kind.value,
        amount=entry.delta.amount,
        signed_amount=entry.delta.signed,
        description=entry.description,
        timestamp=entry.timestamp,
    )


def ensure_applied(result: MutationResult, player_id: int) -> OperationResponse:
    if result is MutationResult.PLAYER_NOT_FOUND:
        raise PlayerNotFoundError(f"Player {player_id} not found")
    if result is MutationResult.INSUFFICIENT_FUNDS:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Insufficient funds")
    if result is MutationResult.BALANCE_LIMIT_EXCEEDED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Balance limit exceeded")
    return OperationResponse(success=True)


@router.get("", response_model=list[PlayerResponse])
def list_players(service: LedgerService = Depends(get_ledger_service)) -> list[PlayerResponse]:
    return [player_to_response(player) for player in service.list_players()]


@router.post("", response_model=PlayerResponse, status_code=status.HTTP_201_CREATED)
def create_player(
    payload: PlayerCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> PlayerResponse:
    return player_to_response(service.create_player(payload.name))


# Declared before /{player_id} so "changes" is not parsed as an id.
@router.get("/changes", response_model=ChangesResponse)
def check_changes(
    last_check: int = Query(default=0, ge=0, le=MAX_AMOUNT, alias="lastCheck"),
    service: LedgerService = Depends(get_ledger_service),
) -> ChangesResponse:
    has_changes, server_timestamp = service.check_changes(last_check)
    return ChangesResponse(has_changes=has_changes, server_timestamp=server_timestamp)


@router.get("/{player_id}", response_model=PlayerResponse)
def get_player(
    player_id: PlayerId,
    service: LedgerService = Depends(get_ledger_service),
) -> PlayerResponse:
    player = service.get_player(player_id)
    if player is None:
        raise PlayerNotFoundError(f"Player {player_id} not found")
    return player_to_response(player)


@router.put("/{player_id}", response_model=OperationResponse)
def rename_player(
    player_id: PlayerId,
    payload: PlayerRename,
    service: LedgerService = Depends(get_ledger_service),
) -> OperationResponse:
    return ensure_applied(service.rename_player(player_id, payload.name), player_id)


@router.delete("/{player_id}", response_model=OperationResponse)
def delete_player(
    player_id: PlayerId,
    service: LedgerService = Depends(get_ledger_service),
) -> OperationResponse:
    if not service.delete_player(player_id):
        raise PlayerNotFoundError(f"Player {player_id} not found")
    return OperationResponse(success=True)


@router.post("/{player_id}/add", response_model=OperationResponse)
def add_money(
    player_id: PlayerId,
    payload: AmountRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> OperationResponse:
    result = service.add_money(player_id, payload.amount, payload.description)
    return ensure_applied(result, player_id)


@router.post("/{player_id}/subtract", response_model=OperationResponse)
def subtract_money(
    player_id: PlayerId,
    payload: AmountRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> OperationResponse:
    result = service.subtract_money(player_id, payload.amount, payload.description)
    return ensure_applied(result, player_id)


@router.put("/{player_id}/balance", response_model=OperationResponse)
def set_balance(
    player_id: PlayerId,
    payload: BalanceRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> OperationResponse:
    result = service.set_balance(player_id, payload.amount, payload.description)
    return ensure_applied(result, player_id)


@router.get("/{player_id}/history", response_model=list[TransactionResponse])
def get_history(
    player_id: PlayerId,
    limit: int | None = Query(default=None, ge=1),
    service: LedgerService = Depends(get_ledger_service),
) -> list[TransactionResponse]:
    if service.get_player(player_id) is None:
        raise PlayerNotFoundError(f"Player {player_id} not found")
    return [transaction_to_response(entry) for entry in service.history_for(player_id, limit)]


ledger_router = APIRouter(tags=["sync"])


@ledger_router.post("/sync", response_model=SyncResponse)
def sync(
    payload: SyncRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> SyncResponse:
    delta = service.compute_delta(payload.last_sync_timestamp, payload.known_player_ids)
    return SyncResponse(
        players=[player_to_response(player) for player in delta.players],
        transactions=[transaction_to_response(entry) for entry in delta.transactions],
        server_timestamp=delta.server_timestamp,
        deleted_player_ids=delta.deleted_player_ids,
    )


@ledger_router.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(
    service: LedgerService = Depends(get_ledger_service),
) -> list[TransactionResponse]:
    return [transaction_to_response(entry) for entry in service.all_transactions()]


__all__ = ["router", "ledger_router"]
