"""SQLAlchemy models for linked provider accounts, mirrors and unified playlists."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core import (
    ConflictResolution,
    ConflictType,
    Provider,
    SyncStatus,
    SyncType,
    utcnow,
)

from .database import Base


def _uuid() -> str:
    return str(uuid4())


def _enum(enum_cls):
    # Store the enum values ("spotify"), not the member names ("SPOTIFY").
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=32,
    )


class ProviderAccount(Base):
    """A user's linked account on one provider."""

    __tablename__ = "provider_accounts"
    __table_args__ = (UniqueConstraint("user_id", "provider"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    provider: Mapped[Provider] = mapped_column(_enum(Provider), nullable=False)

    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    token: Mapped[Optional["ProviderToken"]] = relationship(
        back_populates="provider_account",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    playlists: Mapped[List["Playlist"]] = relationship(
        back_populates="provider_account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ProviderToken(Base):
    """Encrypted OAuth credentials, one row per provider account."""

    __tablename__ = "provider_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    provider_account_id: Mapped[str] = mapped_column(
        ForeignKey("provider_accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    access_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token_encrypted: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    token_type: Mapped[str] = mapped_column(String(32), default="Bearer")
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    scope: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    provider_account: Mapped[ProviderAccount] = relationship(back_populates="token")

    def __repr__(self) -> str:
        return (
            f"ProviderToken(provider_account_id={self.provider_account_id!r}, "
            f"expires_at={self.expires_at!r})"
        )


class Track(Base):
    """A provider track, shared by every mirror and unified playlist that uses it."""

    __tablename__ = "tracks"
    __table_args__ = (
        UniqueConstraint("provider", "provider_track_id"),
        Index("ix_tracks_isrc", "isrc"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    provider: Mapped[Provider] = mapped_column(_enum(Provider), nullable=False)
    provider_track_id: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    artist: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    album: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    isrc: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    preview_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    external_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_playable: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # passive_deletes="all": the database RESTRICT decides, the ORM never nulls out.
    unified_items: Mapped[List["UnifiedItem"]] = relationship(
        back_populates="track", passive_deletes="all"
    )


class Playlist(Base):
    """Local mirror of one remote playlist."""

    __tablename__ = "playlists"
    __table_args__ = (UniqueConstraint("provider_account_id", "provider_playlist_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    provider_account_id: Mapped[str] = mapped_column(
        ForeignKey("provider_accounts.id", ondelete="CASCADE"), nullable=False
    )
    provider_playlist_id: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    track_count: Mapped[int] = mapped_column(Integer, default=0)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    is_owner: Mapped[bool] = mapped_column(Boolean, default=True)
    snapshot_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    provider_account: Mapped[ProviderAccount] = relationship(back_populates="playlists")
    items: Mapped[List["PlaylistItem"]] = relationship(
        back_populates="playlist",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PlaylistItem.position",
    )


class PlaylistItem(Base):
    __tablename__ = "playlist_items"
    __table_args__ = (UniqueConstraint("playlist_id", "position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    playlist_id: Mapped[str] = mapped_column(
        ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False
    )
    track_id: Mapped[str] = mapped_column(
        ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    playlist: Mapped[Playlist] = relationship(back_populates="items")
    track: Mapped[Track] = relationship()


class UnifiedPlaylist(Base):
    """User-curated playlist mixing tracks from several providers."""

    __tablename__ = "unified_playlists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    items: Mapped[List["UnifiedItem"]] = relationship(
        back_populates="unified_playlist",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="UnifiedItem.position",
    )


class UnifiedItem(Base):
    __tablename__ = "unified_items"
    __table_args__ = (UniqueConstraint("unified_playlist_id", "position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    unified_playlist_id: Mapped[str] = mapped_column(
        ForeignKey("unified_playlists.id", ondelete="CASCADE"), nullable=False
    )
    track_id: Mapped[str] = mapped_column(
        ForeignKey("tracks.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    unified_playlist: Mapped[UnifiedPlaylist] = relationship(back_populates="items")
    track: Mapped[Track] = relationship(back_populates="unified_items")


class SyncRun(Base):
    """One reconciliation attempt and its aggregate counters."""

    __tablename__ = "sync_runs"
    __table_args__ = (Index("ix_sync_runs_user_status", "user_id", "status"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    provider_account_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("provider_accounts.id", ondelete="SET NULL"), nullable=True
    )

    sync_type: Mapped[SyncType] = mapped_column(_enum(SyncType), nullable=False)
    status: Mapped[SyncStatus] = mapped_column(
        _enum(SyncStatus), nullable=False, default=SyncStatus.PENDING
    )

    items_processed: Mapped[int] = mapped_column(Integer, default=0)
    items_added: Mapped[int] = mapped_column(Integer, default=0)
    items_updated: Mapped[int] = mapped_column(Integer, default=0)
    items_removed: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    conflicts: Mapped[List["Conflict"]] = relationship(
        back_populates="sync_run",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Conflict(Base):
    """An anomaly recorded during a sync run, awaiting user resolution."""

    __tablename__ = "conflicts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sync_run_id: Mapped[str] = mapped_column(
        ForeignKey("sync_runs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    unified_item_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("unified_items.id", ondelete="SET NULL"), nullable=True
    )

    conflict_type: Mapped[ConflictType] = mapped_column(_enum(ConflictType), nullable=False)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    resolution: Mapped[Optional[ConflictResolution]] = mapped_column(
        _enum(ConflictResolution), nullable=True
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    sync_run: Mapped[SyncRun] = relationship(back_populates="conflicts")
    unified_item: Mapped[Optional[UnifiedItem]] = relationship()
