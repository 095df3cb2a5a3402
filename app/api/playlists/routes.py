from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core import Provider
from app.services import PlaylistService
from app.api.deps import get_playlist_service, get_user_id

from .schemas import (
    PlaylistList,
    PlaylistTrack,
    PlaylistWithTracks,
    SyncCountsResponse,
    pagination,
    playlist_info,
    sync_counts,
    track_info,
)

router = APIRouter()


@router.get("", response_model=PlaylistList)
def list_playlists(
    provider: Optional[Provider] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    playlists: PlaylistService = Depends(get_playlist_service),
) -> PlaylistList:
    result = playlists.list_playlists(user_id, provider, page, limit)
    return PlaylistList(
        playlists=[playlist_info(p) for p in result.items],
        pagination=pagination(result),
    )


@router.get("/{playlist_id}", response_model=PlaylistWithTracks)
def get_playlist(
    playlist_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    playlists: PlaylistService = Depends(get_playlist_service),
) -> PlaylistWithTracks:
    playlist, items = playlists.get_playlist_with_tracks(user_id, playlist_id, page, limit)
    return PlaylistWithTracks(
        playlist=playlist_info(playlist),
        tracks=[
            PlaylistTrack(position=item.position, track=track_info(item.track))
            for item in items.items
        ],
        pagination=pagination(items),
    )


@router.post("/{playlist_id}/sync", response_model=SyncCountsResponse)
def sync_playlist(
    playlist_id: str,
    user_id: str = Depends(get_user_id),
    playlists: PlaylistService = Depends(get_playlist_service),
) -> SyncCountsResponse:
    """
    Replace the local copy of one playlist with the provider's track list.
    """
    return sync_counts(playlists.sync_playlist(user_id, playlist_id))


@router.post("/sync/{provider}", response_model=SyncCountsResponse)
def sync_provider_playlists(
    provider: Provider,
    user_id: str = Depends(get_user_id),
    playlists: PlaylistService = Depends(get_playlist_service),
) -> SyncCountsResponse:
    """
    Refresh playlist metadata for one connected provider.
    """
    return sync_counts(playlists.sync_all_playlists(user_id, provider))
