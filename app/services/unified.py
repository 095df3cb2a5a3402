"""User-curated playlists mixing tracks from several providers."""

from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.core import (
    DuplicateGroup,
    NotFoundError,
    Provider,
    ProviderError,
    ValidationError,
    collapse_after_remove,
    find_duplicates,
    log_warning,
    move_item,
    shift_for_insert,
)
from app.data import (
    UNIFIED_PLAYLIST,
    Track,
    TrackRepository,
    UnifiedItem,
    UnifiedPlaylist,
    collection_locks,
    write_positions,
)
from app.providers import PlaybackInfo, SearchOptions

from .accounts import AccountService


class UnifiedService:
    def __init__(self, session: Session, accounts: AccountService) -> None:
        self.session = session
        self.accounts = accounts
        self.tracks = TrackRepository(session)

    # -- playlists -----------------------------------------------------------

    def _owned(
        self, user_id: str, playlist_id: str, for_update: bool = False
    ) -> UnifiedPlaylist:
        stmt = select(UnifiedPlaylist).where(
            UnifiedPlaylist.id == playlist_id, UnifiedPlaylist.user_id == user_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        playlist = self.session.scalars(stmt).first()
        if playlist is None:
            raise NotFoundError("Playlist not found")
        return playlist

    def _items(self, playlist_id: str) -> List[UnifiedItem]:
        return list(
            self.session.scalars(
                select(UnifiedItem)
                .where(UnifiedItem.unified_playlist_id == playlist_id)
                .options(selectinload(UnifiedItem.track))
                .order_by(UnifiedItem.position)
            )
        )

    def list_playlists(self, user_id: str) -> List[Tuple[UnifiedPlaylist, int]]:
        """Playlists of the user with their item counts, most recently updated first."""
        counts = (
            select(
                UnifiedItem.unified_playlist_id.label("playlist_id"),
                func.count(UnifiedItem.id).label("track_count"),
            )
            .group_by(UnifiedItem.unified_playlist_id)
            .subquery()
        )
        rows = self.session.execute(
            select(UnifiedPlaylist, func.coalesce(counts.c.track_count, 0))
            .outerjoin(counts, counts.c.playlist_id == UnifiedPlaylist.id)
            .where(UnifiedPlaylist.user_id == user_id)
            .order_by(UnifiedPlaylist.updated_at.desc(), UnifiedPlaylist.id)
        )
        return [(playlist, count) for playlist, count in rows]

    def create_playlist(
        self, user_id: str, name: str, description: Optional[str] = None
    ) -> UnifiedPlaylist:
        if not name or not name.strip():
            raise ValidationError("Playlist name is required")
        playlist = UnifiedPlaylist(user_id=user_id, name=name, description=description or None)
        self.session.add(playlist)
        self.session.flush()
        return playlist

    def get_playlist(
        self, user_id: str, playlist_id: str
    ) -> Tuple[UnifiedPlaylist, List[UnifiedItem]]:
        playlist = self._owned(user_id, playlist_id)
        return playlist, self._items(playlist.id)

    def update_playlist(
        self,
        user_id: str,
        playlist_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> UnifiedPlaylist:
        playlist = self._owned(user_id, playlist_id)
        if name:
            playlist.name = name
        if description is not None:
            playlist.description = description
        self.session.flush()
        return playlist

    def delete_playlist(self, user_id: str, playlist_id: str) -> None:
        playlist = self._owned(user_id, playlist_id)
        with collection_locks.unit_of_work(self.session, UNIFIED_PLAYLIST, playlist.id):
            self.session.delete(playlist)
            self.session.flush()
        collection_locks.forget(UNIFIED_PLAYLIST, playlist_id)

    # -- items ---------------------------------------------------------------

    def add_items(
        self,
        user_id: str,
        playlist_id: str,
        track_ids: Sequence[str],
        position: Optional[int] = None,
    ) -> List[UnifiedItem]:
        """
        Insert `track_ids` (in order) at `position`, appending when omitted.

        Every id is checked before any position moves; one unknown id
        rejects the whole call.
        """
        self._owned(user_id, playlist_id)
        if not track_ids:
            raise ValidationError("At least one track id is required")
        if position is not None and position < 0:
            raise ValidationError(f"Position must be >= 0, got {position}")

        tracks = self.tracks.get_many(track_ids)
        missing = [tid for tid in track_ids if tid not in tracks]
        if missing:
            raise ValidationError(f"One or more tracks not found: {', '.join(missing)}")

        with collection_locks.unit_of_work(self.session, UNIFIED_PLAYLIST, playlist_id):
            playlist = self._owned(user_id, playlist_id, for_update=True)
            items = self._items(playlist.id)

            start = shift_for_insert(items, len(track_ids), position)
            write_positions(self.session, items)

            new_items = []
            for offset, track_id in enumerate(track_ids):
                track = tracks[track_id]
                new_items.append(
                    UnifiedItem(
                        unified_playlist_id=playlist.id,
                        track_id=track.id,
                        track=track,
                        position=start + offset,
                        is_available=track.is_playable,
                    )
                )
            self.session.add_all(new_items)
            self.session.flush()
            self.session.expire(playlist, ["items"])

        return new_items

    def _owned_item(self, playlist: UnifiedPlaylist, item_id: str) -> UnifiedItem:
        item = self.session.scalars(
            select(UnifiedItem).where(
                UnifiedItem.id == item_id,
                UnifiedItem.unified_playlist_id == playlist.id,
            )
        ).first()
        if item is None:
            raise NotFoundError("Item not found")
        return item

    def remove_item(self, user_id: str, playlist_id: str, item_id: str) -> None:
        self._owned(user_id, playlist_id)
        with collection_locks.unit_of_work(self.session, UNIFIED_PLAYLIST, playlist_id):
            playlist = self._owned(user_id, playlist_id, for_update=True)
            item = self._owned_item(playlist, item_id)
            removed_position = item.position

            self.session.delete(item)
            self.session.flush()

            remaining = [i for i in self._items(playlist.id) if i.id != item_id]
            collapse_after_remove(remaining, removed_position)
            write_positions(self.session, remaining)
            self.session.expire(playlist, ["items"])

    def reorder_item(
        self, user_id: str, playlist_id: str, item_id: str, new_position: int
    ) -> List[UnifiedItem]:
        """Move one item; returns the whole playlist in its new order."""
        self._owned(user_id, playlist_id)
        with collection_locks.unit_of_work(self.session, UNIFIED_PLAYLIST, playlist_id):
            playlist = self._owned(user_id, playlist_id, for_update=True)
            item = self._owned_item(playlist, item_id)
            items = self._items(playlist.id)

            result = move_item(items, item, new_position)
            write_positions(self.session, items)
            self.session.expire(playlist, ["items"])
        return result

    def find_duplicates(self, user_id: str, playlist_id: str) -> List[DuplicateGroup]:
        playlist = self._owned(user_id, playlist_id)
        return find_duplicates(self._items(playlist.id))

    # -- catalogue -----------------------------------------------------------

    def search_tracks(
        self,
        user_id: str,
        query: str,
        provider: Optional[Provider] = None,
        limit: int = 20,
    ) -> Dict[str, List[Track]]:
        """
        Search every connected provider (or only `provider`).

        Results are stored as Track rows so they can be added to unified
        playlists by id. A provider that fails is logged and left empty.
        """
        if not query or not query.strip():
            raise ValidationError("Search query is required")

        results: Dict[str, List[Track]] = {p.value: [] for p in self.accounts.registry.providers}
        # Every provider is queried before anything is written; a token
        # refresh commits in its own session.
        fetched = []
        for account in self.accounts.get_provider_accounts(user_id):
            if provider is not None and account.provider != Provider(provider):
                continue
            try:
                adapter = self.accounts.adapter_for(account)
                remote_tracks = adapter.search_tracks(query, SearchOptions(limit=limit))
            except ProviderError as exc:
                log_warning(f"Search on {account.provider.value} failed: {exc}")
                continue
            fetched.append((account.provider, remote_tracks))

        for account_provider, remote_tracks in fetched:
            results[account_provider.value] = [
                self.tracks.find_or_create(account_provider, remote)[0]
                for remote in remote_tracks
            ]

        return results

    def get_playback_info(self, user_id: str, track_id: str) -> Tuple[Track, PlaybackInfo]:
        track = self.tracks.get(track_id)
        if track is None:
            raise NotFoundError("Track not found")

        try:
            adapter = self.accounts.get_adapter(user_id, track.provider)
        except (NotFoundError, ProviderError) as exc:
            log_warning(f"Playback for track {track.id} falls back to its link: {exc}")
            return track, PlaybackInfo.external(track.external_url or "")

        return track, adapter.get_playback_info(track.provider_track_id)
