"""Public façade for the app.providers package.

This module exposes the provider capability contract, the concrete Spotify
and SoundCloud adapters, the registry used to dispatch on the Provider enum,
and the OAuth state coordinator. Services should import these symbols from
this façade and resolve adapters through a ProviderRegistry.
"""

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
from .oauth_state import (
    InMemoryOAuthStateStore,
    OAuthStateEntry,
    OAuthStateService,
    OAuthStateStore,
)
from .registry import ProviderRegistry, default_registry
from .soundcloud import SoundCloudConnector, SoundCloudProvider
from .spotify import SpotifyConnector, SpotifyProvider

__all__ = [
    "MusicProvider",
    "ProviderConnector",
    "ProviderUser",
    "ProviderPlaylist",
    "ProviderTrack",
    "PlaybackInfo",
    "PlaybackType",
    "SearchOptions",
    "TokenGrant",
    "ProviderHttpClient",
    "OAuthStateStore",
    "InMemoryOAuthStateStore",
    "OAuthStateEntry",
    "OAuthStateService",
    "ProviderRegistry",
    "default_registry",
    "SpotifyConnector",
    "SpotifyProvider",
    "SoundCloudConnector",
    "SoundCloudProvider",
]
