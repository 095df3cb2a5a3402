from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.core import Provider
from app.api.playlists.schemas import TrackInfo, track_info


class CreateUnifiedPlaylistRequest(BaseModel):
    name: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None


class UpdateUnifiedPlaylistRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = None


class AddItemsRequest(BaseModel):
    track_ids: List[str] = Field(min_length=1)
    position: Optional[int] = Field(default=None, ge=0)


class ReorderItemRequest(BaseModel):
    item_id: str
    new_position: int = Field(ge=0)


class UnifiedPlaylistInfo(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    track_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UnifiedPlaylistList(BaseModel):
    playlists: List[UnifiedPlaylistInfo]


class UnifiedItemInfo(BaseModel):
    id: str
    position: int
    is_available: bool
    track: TrackInfo


class UnifiedPlaylistDetail(BaseModel):
    playlist: UnifiedPlaylistInfo
    items: List[UnifiedItemInfo]


class AddItemsResponse(BaseModel):
    items: List[UnifiedItemInfo]


class ItemPosition(BaseModel):
    id: str
    position: int


class ReorderResponse(BaseModel):
    items: List[ItemPosition]


class DuplicateGroupInfo(BaseModel):
    reason: str
    items: List[UnifiedItemInfo]


class DuplicatesResponse(BaseModel):
    duplicates: List[DuplicateGroupInfo]


class SearchResponse(BaseModel):
    query: str
    results: Dict[str, List[TrackInfo]]


class PlaybackDetails(BaseModel):
    type: str
    external_url: str
    uri: Optional[str] = None
    preview_url: Optional[str] = None


class PlaybackResponse(BaseModel):
    track_id: str
    name: str
    provider: Provider
    playback: PlaybackDetails


def unified_info(playlist, track_count: int) -> UnifiedPlaylistInfo:
    return UnifiedPlaylistInfo(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        image_url=playlist.image_url,
        track_count=track_count,
        created_at=playlist.created_at,
        updated_at=playlist.updated_at,
    )


def item_info(item) -> UnifiedItemInfo:
    return UnifiedItemInfo(
        id=item.id,
        position=item.position,
        is_available=item.is_available,
        track=track_info(item.track),
    )
