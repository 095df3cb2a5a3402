from fastapi import APIRouter, Depends, Query

from app.services import SyncService
from app.api.deps import get_sync_service, get_user_id
from app.api.playlists.schemas import pagination

from .schemas import (
    ConflictInfo,
    ConflictList,
    ResolveConflictRequest,
    SyncHistoryResponse,
    SyncRunInfo,
    SyncStatusResponse,
    conflict_info,
    run_info,
)

router = APIRouter()


@router.post("/pull", response_model=SyncRunInfo)
def pull_from_providers(
    user_id: str = Depends(get_user_id),
    sync: SyncService = Depends(get_sync_service),
) -> SyncRunInfo:
    """
    Refresh playlist mirrors from every connected provider.

    Failing providers do not fail the run; they show up as sync_failed
    conflicts.
    """
    return run_info(sync.pull_from_providers(user_id))


@router.get("/status", response_model=SyncStatusResponse)
def sync_status(
    user_id: str = Depends(get_user_id),
    sync: SyncService = Depends(get_sync_service),
) -> SyncStatusResponse:
    status = sync.get_sync_status(user_id)
    return SyncStatusResponse(
        active_syncs=[run_info(r) for r in status.active_syncs],
        last_sync=run_info(status.last_sync) if status.last_sync else None,
    )


@router.get("/history", response_model=SyncHistoryResponse)
def sync_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    sync: SyncService = Depends(get_sync_service),
) -> SyncHistoryResponse:
    history = sync.get_sync_history(user_id, page, limit)
    return SyncHistoryResponse(
        sync_runs=[run_info(r) for r in history.items],
        pagination=pagination(history),
    )


@router.get("/conflicts", response_model=ConflictList)
def list_conflicts(
    resolved: bool = False,
    user_id: str = Depends(get_user_id),
    sync: SyncService = Depends(get_sync_service),
) -> ConflictList:
    return ConflictList(
        conflicts=[conflict_info(c) for c in sync.get_conflicts(user_id, resolved)]
    )


@router.post("/conflicts/{conflict_id}/resolve", response_model=ConflictInfo)
def resolve_conflict(
    conflict_id: str,
    body: ResolveConflictRequest,
    user_id: str = Depends(get_user_id),
    sync: SyncService = Depends(get_sync_service),
) -> ConflictInfo:
    return conflict_info(sync.resolve_conflict(user_id, conflict_id, body.resolution))
