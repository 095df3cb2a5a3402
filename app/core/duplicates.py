"""Duplicate detection over the items of one unified playlist.

Pure analysis: nothing is written. Items are any objects exposing `id` and a
`track` with `name`, `artist` and `isrc` attributes (UnifiedItem rows in
practice).
"""

from dataclasses import dataclass, field
import re
from typing import Any, Dict, List, Sequence

REASON_NAME_ARTIST = "Same track name and artist"
REASON_ISRC = "Same ISRC code"

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class DuplicateGroup:
    reason: str
    items: List[Any] = field(default_factory=list)

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]


def normalize_key(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    text = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def _name_artist_key(item: Any) -> str:
    track = item.track
    return normalize_key(f"{track.name or ''}-{track.artist or ''}")


def find_duplicates(items: Sequence[Any]) -> List[DuplicateGroup]:
    """
    Group likely duplicates.

    Name/artist groups are emitted first. An ISRC group is skipped when all of
    its members were already reported by a name/artist group, so a cluster
    matching on both signals shows up once.
    """
    groups: List[DuplicateGroup] = []

    by_name_artist: Dict[str, List[Any]] = {}
    for item in items:
        by_name_artist.setdefault(_name_artist_key(item), []).append(item)

    for members in by_name_artist.values():
        if len(members) > 1:
            groups.append(DuplicateGroup(reason=REASON_NAME_ARTIST, items=members))

    reported = {item.id for group in groups for item in group.items}

    by_isrc: Dict[str, List[Any]] = {}
    for item in items:
        isrc = item.track.isrc
        if isrc:
            by_isrc.setdefault(isrc, []).append(item)

    for members in by_isrc.values():
        if len(members) < 2:
            continue
        if all(item.id in reported for item in members):
            continue
        groups.append(DuplicateGroup(reason=REASON_ISRC, items=members))
        reported.update(item.id for item in members)

    return groups
