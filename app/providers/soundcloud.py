"""SoundCloud API adapter.

SoundCloud has no incremental playlist mutation endpoints: adding, removing
and reordering all rewrite the complete track list with a single PUT.
"""

from datetime import timedelta
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from app.config import (
    SOUNDCLOUD_API_BASE,
    SOUNDCLOUD_AUTH_URL,
    SOUNDCLOUD_CLIENT_ID,
    SOUNDCLOUD_CLIENT_SECRET,
    SOUNDCLOUD_REDIRECT_URI,
    SOUNDCLOUD_TOKEN_URL,
)
from app.core import Provider, ProviderError, reorder_range, utcnow

from .base import (
    MusicProvider,
    PlaybackInfo,
    PlaybackType,
    ProviderConnector,
    ProviderPlaylist,
    ProviderTrack,
    ProviderUser,
    SearchOptions,
    TokenGrant,
)
from .http import ProviderHttpClient

logger = logging.getLogger(__name__)


def _track_from_api(t: Dict[str, Any]) -> ProviderTrack:
    streamable = bool(t.get("streamable"))
    return ProviderTrack(
        id=str(t["id"]),
        name=t.get("title") or "",
        artist=(t.get("user") or {}).get("username") or None,
        album=None,
        duration_ms=t.get("duration"),
        isrc=None,
        preview_url=t.get("stream_url") if streamable else None,
        external_url=t.get("permalink_url") or "",
        image_url=t.get("artwork_url"),
        is_playable=streamable,
    )


def _playlist_from_api(p: Dict[str, Any], current_user_id: Optional[str]) -> ProviderPlaylist:
    owner_id = (p.get("user") or {}).get("id")
    return ProviderPlaylist(
        id=str(p["id"]),
        name=p.get("title") or "",
        description=p.get("description"),
        image_url=p.get("artwork_url"),
        track_count=p.get("track_count") or 0,
        is_public=p.get("sharing") == "public",
        is_owner=current_user_id is None or str(owner_id) == current_user_id,
        external_url=p.get("permalink_url") or "",
    )


class SoundCloudProvider(MusicProvider):
    provider = Provider.SOUNDCLOUD

    def __init__(self, access_token: str, http: Optional[ProviderHttpClient] = None):
        self._access_token = access_token
        self.http = http or ProviderHttpClient(
            Provider.SOUNDCLOUD.value, SOUNDCLOUD_API_BASE
        )
        self._user: Optional[ProviderUser] = None

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        query = dict(params or {})
        query["oauth_token"] = self._access_token
        return self.http.request(
            method,
            endpoint,
            params=query,
            json=json,
            headers={"Accept": "application/json"},
        )

    def _track_ids(self, playlist_id: str) -> List[int]:
        data = self._request("GET", f"/playlists/{playlist_id}") or {}
        return [t["id"] for t in data.get("tracks", [])]

    def _put_track_ids(self, playlist_id: str, track_ids: List[int]) -> None:
        self._request(
            "PUT",
            f"/playlists/{playlist_id}",
            json={"playlist": {"tracks": [{"id": tid} for tid in track_ids]}},
        )

    def get_current_user(self) -> ProviderUser:
        if self._user is None:
            data = self._request("GET", "/me") or {}
            self._user = ProviderUser(
                id=str(data["id"]),
                display_name=data.get("username"),
                email=None,
                profile_url=data.get("permalink_url"),
                image_url=data.get("avatar_url"),
            )
        return self._user

    def get_playlists(self) -> List[ProviderPlaylist]:
        data = self._request("GET", "/me/playlists") or []
        current_user_id = self.get_current_user().id
        return [_playlist_from_api(p, current_user_id) for p in data]

    def get_playlist_items(self, playlist_id: str) -> List[ProviderTrack]:
        data = self._request("GET", f"/playlists/{playlist_id}") or {}
        return [_track_from_api(t) for t in data.get("tracks", []) if t]

    def search_tracks(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> List[ProviderTrack]:
        options = options or SearchOptions()
        data = self._request(
            "GET",
            "/tracks",
            params={"q": query, "limit": options.limit, "offset": options.offset},
        ) or []
        return [_track_from_api(t) for t in data]

    def create_playlist(
        self, name: str, description: Optional[str] = None
    ) -> ProviderPlaylist:
        data = self._request(
            "POST",
            "/playlists",
            json={
                "playlist": {
                    "title": name,
                    "description": description or "",
                    "sharing": "private",
                }
            },
        )
        if not data:
            raise ProviderError(self.provider.value, "Empty response to playlist creation")
        return _playlist_from_api(data, None)

    def add_tracks(self, playlist_id: str, track_ids: List[str]) -> None:
        existing = self._track_ids(playlist_id)
        self._put_track_ids(playlist_id, existing + [int(tid) for tid in track_ids])

    def remove_tracks(self, playlist_id: str, track_ids: List[str]) -> None:
        remove = {int(tid) for tid in track_ids}
        remaining = [tid for tid in self._track_ids(playlist_id) if tid not in remove]
        self._put_track_ids(playlist_id, remaining)

    def reorder_tracks(
        self,
        playlist_id: str,
        range_start: int,
        insert_before: int,
        range_length: int = 1,
    ) -> None:
        current = self._track_ids(playlist_id)
        reordered = reorder_range(current, range_start, insert_before, range_length)
        if reordered == current:
            return
        self._put_track_ids(playlist_id, reordered)

    def get_playback_info(self, track_id: str) -> PlaybackInfo:
        fallback = self.get_external_url(track_id)
        try:
            track = self._request("GET", f"/tracks/{track_id}") or {}
        except ProviderError as exc:
            logger.warning("SoundCloud playback lookup failed for %s: %s", track_id, exc)
            return PlaybackInfo.external(fallback)

        external_url = track.get("permalink_url") or fallback
        stream_url = track.get("stream_url")
        if track.get("streamable") and stream_url:
            separator = "&" if "?" in stream_url else "?"
            return PlaybackInfo(
                type=PlaybackType.PREVIEW,
                preview_url=f"{stream_url}{separator}oauth_token={self._access_token}",
                external_url=external_url,
            )
        return PlaybackInfo.external(external_url)

    def get_external_url(self, track_id: str) -> str:
        return f"https://soundcloud.com/tracks/{track_id}"

    def supports_full_playback(self) -> bool:
        return False


class SoundCloudConnector(ProviderConnector):
    provider = Provider.SOUNDCLOUD

    def __init__(
        self,
        client_id: Optional[str] = SOUNDCLOUD_CLIENT_ID,
        client_secret: Optional[str] = SOUNDCLOUD_CLIENT_SECRET,
        redirect_uri: str = SOUNDCLOUD_REDIRECT_URI,
        http: Optional[ProviderHttpClient] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.http = http or ProviderHttpClient(
            Provider.SOUNDCLOUD.value, SOUNDCLOUD_TOKEN_URL
        )

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id or "",
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "state": state,
            "scope": "non-expiring",
        }
        return f"{SOUNDCLOUD_AUTH_URL}?{urlencode(params)}"

    def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        form = dict(data)
        form["client_id"] = self.client_id or ""
        form["client_secret"] = self.client_secret or ""
        payload = self.http.request("POST", SOUNDCLOUD_TOKEN_URL, data=form)
        if not payload or "access_token" not in payload:
            raise ProviderError(self.provider.value, "Token endpoint returned no access token")
        return payload

    @staticmethod
    def _grant(payload: Dict[str, Any], fallback_refresh: Optional[str] = None) -> TokenGrant:
        expires_in = payload.get("expires_in")
        return TokenGrant(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or fallback_refresh,
            expires_at=utcnow() + timedelta(seconds=int(expires_in)) if expires_in else None,
            scope=payload.get("scope"),
            token_type=payload.get("token_type") or "Bearer",
        )

    def exchange_code(self, code: str) -> TokenGrant:
        payload = self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )
        return self._grant(payload)

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        payload = self._token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        return self._grant(payload, fallback_refresh=refresh_token)

    def with_token(self, access_token: str) -> MusicProvider:
        return SoundCloudProvider(access_token)
