from fastapi import APIRouter, Depends

from app.services import UnifiedService
from app.api.deps import get_unified_service, get_user_id

from .schemas import (
    AddItemsRequest,
    AddItemsResponse,
    CreateUnifiedPlaylistRequest,
    DuplicateGroupInfo,
    DuplicatesResponse,
    ItemPosition,
    ReorderItemRequest,
    ReorderResponse,
    UnifiedPlaylistDetail,
    UnifiedPlaylistInfo,
    UnifiedPlaylistList,
    UpdateUnifiedPlaylistRequest,
    item_info,
    unified_info,
)

router = APIRouter()


@router.get("", response_model=UnifiedPlaylistList)
def list_unified_playlists(
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> UnifiedPlaylistList:
    return UnifiedPlaylistList(
        playlists=[unified_info(p, count) for p, count in unified.list_playlists(user_id)]
    )


@router.post("", response_model=UnifiedPlaylistInfo, status_code=201)
def create_unified_playlist(
    body: CreateUnifiedPlaylistRequest,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> UnifiedPlaylistInfo:
    playlist = unified.create_playlist(user_id, body.name, body.description)
    return unified_info(playlist, 0)


@router.get("/{playlist_id}", response_model=UnifiedPlaylistDetail)
def get_unified_playlist(
    playlist_id: str,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> UnifiedPlaylistDetail:
    playlist, items = unified.get_playlist(user_id, playlist_id)
    return UnifiedPlaylistDetail(
        playlist=unified_info(playlist, len(items)),
        items=[item_info(i) for i in items],
    )


@router.patch("/{playlist_id}", response_model=UnifiedPlaylistInfo)
def update_unified_playlist(
    playlist_id: str,
    body: UpdateUnifiedPlaylistRequest,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> UnifiedPlaylistInfo:
    unified.update_playlist(user_id, playlist_id, body.name, body.description)
    playlist, items = unified.get_playlist(user_id, playlist_id)
    return unified_info(playlist, len(items))


@router.delete("/{playlist_id}", status_code=204)
def delete_unified_playlist(
    playlist_id: str,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> None:
    unified.delete_playlist(user_id, playlist_id)


@router.post("/{playlist_id}/items", response_model=AddItemsResponse, status_code=201)
def add_items(
    playlist_id: str,
    body: AddItemsRequest,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> AddItemsResponse:
    """
    Insert tracks at `position` (append when omitted). Existing items at or
    after that position move down to make room.
    """
    items = unified.add_items(user_id, playlist_id, body.track_ids, body.position)
    return AddItemsResponse(items=[item_info(i) for i in items])


@router.delete("/{playlist_id}/items/{item_id}", status_code=204)
def remove_item(
    playlist_id: str,
    item_id: str,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> None:
    unified.remove_item(user_id, playlist_id, item_id)


@router.put("/{playlist_id}/items/reorder", response_model=ReorderResponse)
def reorder_item(
    playlist_id: str,
    body: ReorderItemRequest,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> ReorderResponse:
    items = unified.reorder_item(user_id, playlist_id, body.item_id, body.new_position)
    return ReorderResponse(items=[ItemPosition(id=i.id, position=i.position) for i in items])


@router.get("/{playlist_id}/duplicates", response_model=DuplicatesResponse)
def find_duplicates(
    playlist_id: str,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> DuplicatesResponse:
    groups = unified.find_duplicates(user_id, playlist_id)
    return DuplicatesResponse(
        duplicates=[
            DuplicateGroupInfo(reason=g.reason, items=[item_info(i) for i in g.items])
            for g in groups
        ]
    )
