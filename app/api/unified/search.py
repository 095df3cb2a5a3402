from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core import Provider
from app.services import UnifiedService
from app.api.deps import get_unified_service, get_user_id
from app.api.playlists.schemas import track_info

from .schemas import PlaybackDetails, PlaybackResponse, SearchResponse

router = APIRouter()


@router.get("/tracks", response_model=SearchResponse)
def search_tracks(
    q: str = Query(min_length=1),
    provider: Optional[Provider] = None,
    limit: int = Query(default=20, ge=1, le=50),
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> SearchResponse:
    """
    Search the caller's connected providers. Returned ids can be added to
    unified playlists directly.
    """
    results = unified.search_tracks(user_id, q, provider, limit)
    return SearchResponse(
        query=q,
        results={name: [track_info(t) for t in tracks] for name, tracks in results.items()},
    )


@router.get("/tracks/{track_id}/playback", response_model=PlaybackResponse)
def playback_info(
    track_id: str,
    user_id: str = Depends(get_user_id),
    unified: UnifiedService = Depends(get_unified_service),
) -> PlaybackResponse:
    track, info = unified.get_playback_info(user_id, track_id)
    return PlaybackResponse(
        track_id=track.id,
        name=track.name,
        provider=track.provider,
        playback=PlaybackDetails(
            type=info.type.value,
            external_url=info.external_url,
            uri=info.uri,
            preview_url=info.preview_url,
        ),
    )
