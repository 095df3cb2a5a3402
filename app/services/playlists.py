"""Mirrors of provider playlists and their track lists."""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from app.core import NotFoundError, Provider, assign_positions, log_info, log_step, utcnow
from app.data import (
    PLAYLIST,
    Playlist,
    PlaylistItem,
    ProviderAccount,
    TrackRepository,
    collection_locks,
)
from app.providers import MusicProvider, ProviderPlaylist

from .accounts import AccountService
from .pagination import Page, paginate


@dataclass
class SyncCounts:
    processed: int = 0
    added: int = 0
    updated: int = 0
    removed: int = 0

    def __iadd__(self, other: "SyncCounts") -> "SyncCounts":
        self.processed += other.processed
        self.added += other.added
        self.updated += other.updated
        self.removed += other.removed
        return self


def upsert_playlist_mirrors(
    session: Session,
    account: ProviderAccount,
    remote_playlists: List[ProviderPlaylist],
) -> SyncCounts:
    """Create or refresh the local Playlist row of every remote playlist."""
    existing = {
        p.provider_playlist_id: p
        for p in session.scalars(
            select(Playlist).where(Playlist.provider_account_id == account.id)
        )
    }

    counts = SyncCounts()
    for remote in remote_playlists:
        playlist = existing.get(remote.id)
        if playlist is None:
            playlist = Playlist(
                provider_account_id=account.id, provider_playlist_id=remote.id
            )
            session.add(playlist)
            existing[remote.id] = playlist
            counts.added += 1
        else:
            counts.updated += 1

        playlist.name = remote.name
        playlist.description = remote.description
        playlist.image_url = remote.image_url
        playlist.track_count = remote.track_count
        playlist.is_public = remote.is_public
        playlist.is_owner = remote.is_owner
        playlist.snapshot_id = remote.snapshot_id
        counts.processed += 1

    session.flush()
    return counts


class PlaylistService:
    def __init__(self, session: Session, accounts: AccountService) -> None:
        self.session = session
        self.accounts = accounts
        self.tracks = TrackRepository(session)

    def _owned_playlist(
        self, user_id: str, playlist_id: str, for_update: bool = False
    ) -> Playlist:
        stmt = (
            select(Playlist)
            .join(Playlist.provider_account)
            .where(Playlist.id == playlist_id, ProviderAccount.user_id == user_id)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Playlist)
        playlist = self.session.scalars(stmt).first()
        if playlist is None:
            raise NotFoundError("Playlist not found")
        return playlist

    def list_playlists(
        self,
        user_id: str,
        provider: Optional[Provider] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        stmt = (
            select(Playlist)
            .join(Playlist.provider_account)
            .where(ProviderAccount.user_id == user_id)
            .options(selectinload(Playlist.provider_account))
            .order_by(Playlist.name, Playlist.id)
        )
        if provider is not None:
            stmt = stmt.where(ProviderAccount.provider == Provider(provider))
        return paginate(self.session, stmt, page, limit)

    def get_playlist_with_tracks(
        self, user_id: str, playlist_id: str, page: int = 1, limit: int = 50
    ):
        """Return (playlist, page of PlaylistItem with tracks loaded)."""
        playlist = self._owned_playlist(user_id, playlist_id)
        stmt = (
            select(PlaylistItem)
            .where(PlaylistItem.playlist_id == playlist.id)
            .options(selectinload(PlaylistItem.track))
            .order_by(PlaylistItem.position)
        )
        return playlist, paginate(self.session, stmt, page, limit)

    def sync_all_playlists(self, user_id: str, provider: Provider) -> SyncCounts:
        """Refresh playlist metadata for one provider account (no track lists)."""
        account = self.accounts.get_provider_account(user_id, provider)
        if account is None:
            raise NotFoundError(f"{Provider(provider).value} account not connected")

        adapter = self.accounts.adapter_for(account)
        log_step(f"Fetching {account.provider.value} playlists for account {account.id}")
        return upsert_playlist_mirrors(self.session, account, adapter.get_playlists())

    def sync_playlist(self, user_id: str, playlist_id: str) -> SyncCounts:
        """
        Replace the mirror's items with the provider's current track list.

        Tracks are found or created by (provider, provider track id), so rows
        shared with other playlists and unified items survive the replace.
        """
        playlist = self._owned_playlist(user_id, playlist_id)
        account = playlist.provider_account
        adapter = self.accounts.adapter_for(account)
        return self._replace_items(playlist, account.provider, adapter)

    def _replace_items(
        self, playlist: Playlist, provider: Provider, adapter: MusicProvider
    ) -> SyncCounts:
        # Fetch before taking the lock; the remote call is the slow part.
        remote_tracks = adapter.get_playlist_items(playlist.provider_playlist_id)

        with collection_locks.unit_of_work(self.session, PLAYLIST, playlist.id):
            self._owned_playlist(
                playlist.provider_account.user_id, playlist.id, for_update=True
            )

            counts = SyncCounts(processed=len(remote_tracks))
            new_items = []
            for remote in remote_tracks:
                track, created = self.tracks.find_or_create(provider, remote)
                if not created and self.tracks.update_if_changed(track, remote):
                    counts.updated += 1
                else:
                    counts.added += 1
                new_items.append(PlaylistItem(playlist_id=playlist.id, track_id=track.id))

            self.session.execute(
                delete(PlaylistItem).where(PlaylistItem.playlist_id == playlist.id)
            )
            self.session.flush()

            self.session.add_all(assign_positions(new_items))
            playlist.track_count = len(new_items)
            playlist.last_synced_at = utcnow()
            self.session.flush()
            self.session.expire(playlist, ["items"])

        log_info(
            f"Synced playlist {playlist.id}: {counts.processed} tracks "
            f"({counts.added} added, {counts.updated} updated)"
        )
        return counts
