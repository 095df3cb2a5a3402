from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class Provider(str, Enum):
    SPOTIFY = "spotify"
    SOUNDCLOUD = "soundcloud"


class SyncType(str, Enum):
    PULL = "pull"
    PUSH = "push"
    FULL = "full"


class SyncStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ConflictType(str, Enum):
    TRACK_UNAVAILABLE = "track_unavailable"
    TRACK_MODIFIED = "track_modified"
    TRACK_REMOVED = "track_removed"
    DUPLICATE_DETECTED = "duplicate_detected"
    SYNC_FAILED = "sync_failed"


class ConflictResolution(str, Enum):
    KEEP = "keep"
    REMOVE = "remove"
    REPLACE = "replace"
    IGNORE = "ignore"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to UTC-aware.

    SQLite hands back naive datetimes; values are always stored as UTC, so a
    naive value is interpreted as UTC rather than local time.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
