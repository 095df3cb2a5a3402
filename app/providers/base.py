"""Provider capability contract.

Each provider contributes two objects:

  - a ProviderConnector (token-less): OAuth URL, code exchange, refresh,
    and a factory for authenticated clients;
  - a MusicProvider (bound to one access token): the catalogue/playlist
    capabilities used by the sync and unified-playlist services.

Services only ever dispatch on the Provider enum through the registry
(app.providers.registry) and never import a concrete adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from app.core import Provider


@dataclass
class ProviderUser:
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    profile_url: Optional[str] = None
    image_url: Optional[str] = None
    product: Optional[str] = None


@dataclass
class ProviderPlaylist:
    id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    track_count: int = 0
    is_public: bool = True
    is_owner: bool = True
    snapshot_id: Optional[str] = None
    external_url: str = ""


@dataclass
class ProviderTrack:
    id: str
    name: str
    artist: Optional[str] = None
    album: Optional[str] = None
    duration_ms: Optional[int] = None
    isrc: Optional[str] = None
    preview_url: Optional[str] = None
    external_url: str = ""
    image_url: Optional[str] = None
    is_playable: bool = True


class PlaybackType(str, Enum):
    WEB_PLAYBACK = "web_playback"
    PREVIEW = "preview"
    EXTERNAL = "external"


@dataclass
class PlaybackInfo:
    type: PlaybackType
    external_url: str
    uri: Optional[str] = None
    preview_url: Optional[str] = None

    @classmethod
    def external(cls, external_url: str) -> "PlaybackInfo":
        return cls(type=PlaybackType.EXTERNAL, external_url=external_url)


@dataclass
class SearchOptions:
    limit: int = 20
    offset: int = 0


@dataclass
class TokenGrant:
    """Result of an authorization-code exchange or a refresh."""

    access_token: str
    refresh_token: Optional[str]
    expires_at: Optional[datetime]
    scope: Optional[str] = None
    token_type: str = "Bearer"


class MusicProvider(ABC):
    """Capabilities of a provider client bound to one access token.

    Every call may raise ProviderTransportError (network, timeout) or
    ProviderError (non-2xx). Nothing is retried here; get_playback_info is
    the only method that never raises.
    """

    provider: Provider

    @abstractmethod
    def get_current_user(self) -> ProviderUser:
        raise NotImplementedError

    @abstractmethod
    def get_playlists(self) -> List[ProviderPlaylist]:
        raise NotImplementedError

    @abstractmethod
    def get_playlist_items(self, playlist_id: str) -> List[ProviderTrack]:
        raise NotImplementedError

    @abstractmethod
    def search_tracks(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> List[ProviderTrack]:
        raise NotImplementedError

    @abstractmethod
    def create_playlist(
        self, name: str, description: Optional[str] = None
    ) -> ProviderPlaylist:
        raise NotImplementedError

    @abstractmethod
    def add_tracks(self, playlist_id: str, track_ids: List[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_tracks(self, playlist_id: str, track_ids: List[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    def reorder_tracks(
        self,
        playlist_id: str,
        range_start: int,
        insert_before: int,
        range_length: int = 1,
    ) -> None:
        """Move [range_start, range_start + range_length) before `insert_before`.

        Same contract as app.core.ordering.reorder_range.
        """
        raise NotImplementedError

    @abstractmethod
    def get_playback_info(self, track_id: str) -> PlaybackInfo:
        raise NotImplementedError

    @abstractmethod
    def get_external_url(self, track_id: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def supports_full_playback(self) -> bool:
        raise NotImplementedError


class ProviderConnector(ABC):
    """Token-less entry point for one provider."""

    provider: Provider

    @abstractmethod
    def authorize_url(self, state: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def exchange_code(self, code: str) -> TokenGrant:
        raise NotImplementedError

    @abstractmethod
    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Refresh; when the provider does not rotate, the old refresh token is kept."""
        raise NotImplementedError

    @abstractmethod
    def with_token(self, access_token: str) -> MusicProvider:
        raise NotImplementedError
