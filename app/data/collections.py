"""Persistence side of ordered collections.

Position arithmetic lives in app.core.ordering; this module serializes
mutations per collection and writes the resulting positions without ever
tripping the (collection, position) unique constraints.
"""

from contextlib import contextmanager
import threading
from typing import Dict, Iterator, Sequence, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

PLAYLIST = "playlist"
UNIFIED_PLAYLIST = "unified_playlist"


class CollectionLocks:
    """
    In-process mutual exclusion scoped to one collection.

    Mutations on the same playlist or unified playlist run one at a time;
    different collections never wait on each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], threading.RLock] = {}

    def _lock_for(self, kind: str, collection_id: str) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault((kind, collection_id), threading.RLock())

    @contextmanager
    def hold(self, kind: str, collection_id: str) -> Iterator[None]:
        lock = self._lock_for(kind, collection_id)
        with lock:
            yield

    @contextmanager
    def unit_of_work(
        self, session: Session, kind: str, collection_id: str
    ) -> Iterator[None]:
        """
        Hold the collection lock for one mutation and commit it before the
        lock is released, so the next holder reads the committed positions.
        """
        with self.hold(kind, collection_id):
            try:
                yield
                session.commit()
            except Exception:
                session.rollback()
                raise

    def forget(self, kind: str, collection_id: str) -> None:
        """Drop the lock of a deleted collection."""
        with self._guard:
            self._locks.pop((kind, collection_id), None)


collection_locks = CollectionLocks()


def write_positions(session: Session, items: Sequence[object]) -> int:
    """
    Flush position changes made in memory on `items`.

    Rows whose position changed are first parked on distinct negative
    positions, then moved to their final positions, so no intermediate
    statement can collide with another row. Returns the number of rows moved.
    """
    changed = [item for item in items if get_history(item, "position").has_changes()]
    if not changed:
        return 0

    final_positions = [item.position for item in changed]
    for index, item in enumerate(changed):
        item.position = -(index + 1)
    session.flush()

    for item, position in zip(changed, final_positions):
        item.position = position
    session.flush()

    return len(changed)
