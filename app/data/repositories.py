from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core import Provider, ValidationError

from .entities import Track, UnifiedItem


# Fields refreshed on an already known track during a pull.
MUTABLE_TRACK_FIELDS = ("name", "artist", "is_playable", "image_url")


class TrackRepository:
    """Repository for the shared track catalogue.

    A track is identified by (provider, provider_track_id); mirrors and
    unified playlists only ever reference the single row per identity.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, track_id: str) -> Optional[Track]:
        return self.session.get(Track, track_id)

    def get_many(self, track_ids: Iterable[str]) -> Dict[str, Track]:
        """Load the given ids, returning only those that exist."""

        ids = set(track_ids)
        if not ids:
            return {}
        rows = self.session.scalars(select(Track).where(Track.id.in_(ids)))
        return {track.id: track for track in rows}

    def find_by_provider_id(
        self, provider: Provider, provider_track_id: str
    ) -> Optional[Track]:
        return self.session.scalars(
            select(Track).where(
                Track.provider == Provider(provider),
                Track.provider_track_id == provider_track_id,
            )
        ).first()

    def find_or_create(self, provider: Provider, remote) -> Tuple[Track, bool]:
        """Return the row for a ProviderTrack, creating it when unknown."""

        track = self.find_by_provider_id(provider, remote.id)
        if track is not None:
            return track, False

        track = Track(
            provider=Provider(provider),
            provider_track_id=remote.id,
            name=remote.name,
            artist=remote.artist,
            album=remote.album,
            duration_ms=remote.duration_ms,
            isrc=remote.isrc,
            preview_url=remote.preview_url,
            external_url=remote.external_url,
            image_url=remote.image_url,
            is_playable=remote.is_playable,
        )
        self.session.add(track)
        self.session.flush()
        return track, True

    def update_if_changed(self, track: Track, remote) -> bool:
        """Copy the mutable fields from `remote`; True when anything changed."""

        changed = False
        for field in MUTABLE_TRACK_FIELDS:
            value = getattr(remote, field)
            if getattr(track, field) != value:
                setattr(track, field, value)
                changed = True
        return changed

    def delete(self, track: Track) -> None:
        """Delete a track that no unified playlist references."""

        references = self.session.scalar(
            select(func.count(UnifiedItem.id)).where(UnifiedItem.track_id == track.id)
        )
        if references:
            raise ValidationError(
                f"Track {track.id} is still referenced by {references} unified item(s)"
            )
        self.session.delete(track)
        self.session.flush()
