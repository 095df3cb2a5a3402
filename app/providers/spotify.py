"""Spotify Web API adapter."""

from datetime import timedelta
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from requests.auth import HTTPBasicAuth

from app.config import (
    SPOTIFY_API_BASE,
    SPOTIFY_AUTH_URL,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    SPOTIFY_TOKEN_URL,
)
from app.core import Provider, ProviderError, utcnow

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

# Spotify accepts at most 100 URIs per playlist mutation
BATCH_SIZE = 100


def _first_image(images: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    if images:
        return images[0].get("url")
    return None


def _track_from_api(t: Dict[str, Any]) -> ProviderTrack:
    album = t.get("album") or {}
    return ProviderTrack(
        id=t["id"],
        name=t["name"],
        artist=", ".join(a["name"] for a in t.get("artists", [])) or None,
        album=album.get("name"),
        duration_ms=t.get("duration_ms"),
        isrc=(t.get("external_ids") or {}).get("isrc"),
        preview_url=t.get("preview_url"),
        external_url=(t.get("external_urls") or {}).get("spotify", ""),
        image_url=_first_image(album.get("images")),
        is_playable=t.get("is_playable") is not False,
    )


def _playlist_from_api(p: Dict[str, Any], current_user_id: str) -> ProviderPlaylist:
    return ProviderPlaylist(
        id=p["id"],
        name=p["name"],
        description=p.get("description"),
        image_url=_first_image(p.get("images")),
        track_count=(p.get("tracks") or {}).get("total", 0),
        is_public=bool(p.get("public")),
        is_owner=(p.get("owner") or {}).get("id") == current_user_id,
        snapshot_id=p.get("snapshot_id"),
        external_url=(p.get("external_urls") or {}).get("spotify", ""),
    )


class SpotifyProvider(MusicProvider):
    provider = Provider.SPOTIFY

    def __init__(self, access_token: str, http: Optional[ProviderHttpClient] = None):
        self._access_token = access_token
        self.http = http or ProviderHttpClient(Provider.SPOTIFY.value, SPOTIFY_API_BASE)
        self._user: Optional[ProviderUser] = None

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        headers = {"Authorization": f"Bearer {self._access_token}"}
        return self.http.request(method, endpoint, headers=headers, **kwargs)

    def _paginate(self, endpoint: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        url: Optional[str] = endpoint
        while url:
            data = self._request("GET", url, params=params) or {}
            items.extend(data.get("items", []))
            url = data.get("next")
            params = None  # next URL already includes params
        return items

    def get_current_user(self) -> ProviderUser:
        if self._user is None:
            data = self._request("GET", "/me") or {}
            self._user = ProviderUser(
                id=data["id"],
                display_name=data.get("display_name"),
                email=data.get("email"),
                profile_url=(data.get("external_urls") or {}).get("spotify"),
                image_url=_first_image(data.get("images")),
                product=data.get("product"),
            )
        return self._user

    def get_playlists(self) -> List[ProviderPlaylist]:
        current_user_id = self.get_current_user().id
        return [
            _playlist_from_api(p, current_user_id)
            for p in self._paginate("/me/playlists", {"limit": 50})
            if p
        ]

    def get_playlist_items(self, playlist_id: str) -> List[ProviderTrack]:
        raw = self._paginate(f"/playlists/{playlist_id}/tracks", {"limit": 100})
        # Local files and removed tracks come back with track = null.
        return [_track_from_api(item["track"]) for item in raw if item.get("track")]

    def search_tracks(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> List[ProviderTrack]:
        options = options or SearchOptions()
        data = self._request(
            "GET",
            "/search",
            params={
                "q": query,
                "type": "track",
                "limit": options.limit,
                "offset": options.offset,
            },
        ) or {}
        return [_track_from_api(t) for t in (data.get("tracks") or {}).get("items", [])]

    def create_playlist(
        self, name: str, description: Optional[str] = None
    ) -> ProviderPlaylist:
        user = self.get_current_user()
        data = self._request(
            "POST",
            f"/users/{user.id}/playlists",
            json={"name": name, "description": description or "", "public": False},
        )
        if not data:
            raise ProviderError(self.provider.value, "Empty response to playlist creation")
        playlist = _playlist_from_api(data, user.id)
        playlist.is_owner = True
        return playlist

    def add_tracks(self, playlist_id: str, track_ids: List[str]) -> None:
        uris = [f"spotify:track:{tid}" for tid in track_ids]
        for i in range(0, len(uris), BATCH_SIZE):
            self._request(
                "POST",
                f"/playlists/{playlist_id}/tracks",
                json={"uris": uris[i : i + BATCH_SIZE]},
            )

    def remove_tracks(self, playlist_id: str, track_ids: List[str]) -> None:
        tracks = [{"uri": f"spotify:track:{tid}"} for tid in track_ids]
        for i in range(0, len(tracks), BATCH_SIZE):
            self._request(
                "DELETE",
                f"/playlists/{playlist_id}/tracks",
                json={"tracks": tracks[i : i + BATCH_SIZE]},
            )

    def reorder_tracks(
        self,
        playlist_id: str,
        range_start: int,
        insert_before: int,
        range_length: int = 1,
    ) -> None:
        # Spotify implements the same range contract server-side.
        self._request(
            "PUT",
            f"/playlists/{playlist_id}/tracks",
            json={
                "range_start": range_start,
                "insert_before": insert_before,
                "range_length": range_length,
            },
        )

    def get_playback_info(self, track_id: str) -> PlaybackInfo:
        fallback = self.get_external_url(track_id)
        try:
            if self.supports_full_playback():
                return PlaybackInfo(
                    type=PlaybackType.WEB_PLAYBACK,
                    uri=f"spotify:track:{track_id}",
                    external_url=fallback,
                )

            track = self._request("GET", f"/tracks/{track_id}") or {}
            external_url = (track.get("external_urls") or {}).get("spotify") or fallback
            if track.get("preview_url"):
                return PlaybackInfo(
                    type=PlaybackType.PREVIEW,
                    preview_url=track["preview_url"],
                    external_url=external_url,
                )
            return PlaybackInfo.external(external_url)
        except (ProviderError, KeyError, TypeError) as exc:
            logger.warning("Spotify playback lookup failed for %s: %s", track_id, exc)
            return PlaybackInfo.external(fallback)

    def get_external_url(self, track_id: str) -> str:
        return f"https://open.spotify.com/track/{track_id}"

    def supports_full_playback(self) -> bool:
        return self.get_current_user().product == "premium"


class SpotifyConnector(ProviderConnector):
    provider = Provider.SPOTIFY

    def __init__(
        self,
        client_id: Optional[str] = SPOTIFY_CLIENT_ID,
        client_secret: Optional[str] = SPOTIFY_CLIENT_SECRET,
        redirect_uri: str = SPOTIFY_REDIRECT_URI,
        http: Optional[ProviderHttpClient] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.http = http or ProviderHttpClient(Provider.SPOTIFY.value, SPOTIFY_TOKEN_URL)

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id or "",
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "state": state,
            "scope": " ".join(SPOTIFY_SCOPES),
        }
        return f"{SPOTIFY_AUTH_URL}?{urlencode(params)}"

    def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        payload = self.http.request(
            "POST",
            SPOTIFY_TOKEN_URL,
            data=data,
            auth=HTTPBasicAuth(self.client_id or "", self.client_secret or ""),
        )
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
        return SpotifyProvider(access_token)
