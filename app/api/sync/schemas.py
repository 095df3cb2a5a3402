from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.core import ConflictResolution, ConflictType, SyncStatus, SyncType
from app.api.playlists.schemas import Pagination


class SyncRunInfo(BaseModel):
    id: str
    type: SyncType
    status: SyncStatus
    items_processed: int = 0
    items_added: int = 0
    items_updated: int = 0
    items_removed: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class SyncStatusResponse(BaseModel):
    active_syncs: List[SyncRunInfo]
    last_sync: Optional[SyncRunInfo] = None


class SyncHistoryResponse(BaseModel):
    sync_runs: List[SyncRunInfo]
    pagination: Pagination


class ConflictRef(BaseModel):
    id: str
    name: str
    artist: Optional[str] = None


class ConflictInfo(BaseModel):
    id: str
    sync_run_id: str
    type: ConflictType
    details: Optional[Dict[str, Any]] = None
    resolved: bool
    resolution: Optional[ConflictResolution] = None
    resolved_at: Optional[datetime] = None
    unified_playlist: Optional[ConflictRef] = None
    track: Optional[ConflictRef] = None
    created_at: Optional[datetime] = None


class ConflictList(BaseModel):
    conflicts: List[ConflictInfo]


class ResolveConflictRequest(BaseModel):
    resolution: ConflictResolution


def run_info(run) -> SyncRunInfo:
    return SyncRunInfo(
        id=run.id,
        type=run.sync_type,
        status=run.status,
        items_processed=run.items_processed or 0,
        items_added=run.items_added or 0,
        items_updated=run.items_updated or 0,
        items_removed=run.items_removed or 0,
        error_message=run.error_message,
        started_at=run.started_at,
        completed_at=run.completed_at,
    )


def conflict_info(conflict) -> ConflictInfo:
    item = conflict.unified_item
    playlist = track = None
    if item is not None:
        playlist = ConflictRef(id=item.unified_playlist.id, name=item.unified_playlist.name)
        track = ConflictRef(id=item.track.id, name=item.track.name, artist=item.track.artist)
    return ConflictInfo(
        id=conflict.id,
        sync_run_id=conflict.sync_run_id,
        type=conflict.conflict_type,
        details=conflict.details,
        resolved=conflict.resolved,
        resolution=conflict.resolution,
        resolved_at=conflict.resolved_at,
        unified_playlist=playlist,
        track=track,
        created_at=conflict.created_at,
    )
