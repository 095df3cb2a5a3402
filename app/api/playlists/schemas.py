from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.core import Provider


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PlaylistInfo(BaseModel):
    id: str
    provider: Provider
    provider_playlist_id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    track_count: int
    is_public: bool
    is_owner: bool
    last_synced_at: Optional[datetime] = None


class PlaylistList(BaseModel):
    playlists: List[PlaylistInfo]
    pagination: Pagination


class TrackInfo(BaseModel):
    id: str
    provider: Provider
    provider_track_id: str
    name: str
    artist: Optional[str] = None
    album: Optional[str] = None
    duration_ms: Optional[int] = None
    isrc: Optional[str] = None
    image_url: Optional[str] = None
    external_url: Optional[str] = None
    is_playable: bool


class PlaylistTrack(BaseModel):
    position: int
    track: TrackInfo


class PlaylistWithTracks(BaseModel):
    playlist: PlaylistInfo
    tracks: List[PlaylistTrack]
    pagination: Pagination


class SyncCountsResponse(BaseModel):
    processed: int
    added: int
    updated: int
    removed: int


def pagination(page) -> Pagination:
    return Pagination(
        page=page.page, limit=page.limit, total=page.total, total_pages=page.total_pages
    )


def playlist_info(playlist) -> PlaylistInfo:
    return PlaylistInfo(
        id=playlist.id,
        provider=playlist.provider_account.provider,
        provider_playlist_id=playlist.provider_playlist_id,
        name=playlist.name,
        description=playlist.description,
        image_url=playlist.image_url,
        track_count=playlist.track_count,
        is_public=playlist.is_public,
        is_owner=playlist.is_owner,
        last_synced_at=playlist.last_synced_at,
    )


def track_info(track) -> TrackInfo:
    return TrackInfo(
        id=track.id,
        provider=track.provider,
        provider_track_id=track.provider_track_id,
        name=track.name,
        artist=track.artist,
        album=track.album,
        duration_ms=track.duration_ms,
        isrc=track.isrc,
        image_url=track.image_url,
        external_url=track.external_url,
        is_playable=track.is_playable,
    )


def sync_counts(counts) -> SyncCountsResponse:
    return SyncCountsResponse(
        processed=counts.processed,
        added=counts.added,
        updated=counts.updated,
        removed=counts.removed,
    )
