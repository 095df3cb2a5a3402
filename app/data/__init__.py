"""Public façade for the app.data package.

This module exposes the SQLAlchemy engine/session helpers, the ORM entities,
the track repository and the ordered-collection persistence helpers. Callers
should use this façade instead of importing from the internal modules.
"""

from .collections import (
    PLAYLIST,
    UNIFIED_PLAYLIST,
    CollectionLocks,
    collection_locks,
    write_positions,
)
from .database import Base, create_session_factory, get_engine, init_db, session_scope
from .entities import (
    Conflict,
    Playlist,
    PlaylistItem,
    ProviderAccount,
    ProviderToken,
    SyncRun,
    Track,
    UnifiedItem,
    UnifiedPlaylist,
)
from .repositories import MUTABLE_TRACK_FIELDS, TrackRepository

__all__ = [
    "Base",
    "get_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
    "ProviderAccount",
    "ProviderToken",
    "Track",
    "Playlist",
    "PlaylistItem",
    "UnifiedPlaylist",
    "UnifiedItem",
    "SyncRun",
    "Conflict",
    "TrackRepository",
    "MUTABLE_TRACK_FIELDS",
    "PLAYLIST",
    "UNIFIED_PLAYLIST",
    "CollectionLocks",
    "collection_locks",
    "write_positions",
]
