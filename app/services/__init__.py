"""Public façade for the app.services package.

This module exposes the token vault and the account, playlist-mirror, sync
and unified-playlist services. The HTTP layer should import services from
this façade instead of the internal modules.
"""

from .accounts import AccountService
from .pagination import Page, paginate
from .playlists import PlaylistService, SyncCounts, upsert_playlist_mirrors
from .sync import ConflictResolutionHandler, SyncService, SyncStatusView
from .tokens import AccessToken, TokenOutcome, TokenVault
from .unified import UnifiedService

__all__ = [
    "TokenVault",
    "AccessToken",
    "TokenOutcome",
    "AccountService",
    "PlaylistService",
    "SyncCounts",
    "upsert_playlist_mirrors",
    "SyncService",
    "SyncStatusView",
    "ConflictResolutionHandler",
    "UnifiedService",
    "Page",
    "paginate",
]
