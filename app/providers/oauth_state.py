"""Single-use OAuth state tokens.

A state binds an authorization redirect to the user that started it. States
expire after OAUTH_STATE_TTL_SECONDS and are removed on the first validation
attempt, whatever its outcome.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
import secrets
import threading
from typing import Callable, Dict, Optional

from app.config import OAUTH_STATE_TTL_SECONDS
from app.core import utcnow


@dataclass(frozen=True)
class OAuthStateEntry:
    user_id: str
    issued_at: datetime


class OAuthStateStore(ABC):
    """Storage for pending states.

    `pop` must look up and delete in one atomic step so that concurrent
    callbacks presenting the same state see exactly one hit.
    """

    @abstractmethod
    def put(self, state: str, user_id: str, issued_at: datetime) -> None:
        raise NotImplementedError

    @abstractmethod
    def pop(self, state: str) -> Optional[OAuthStateEntry]:
        raise NotImplementedError

    @abstractmethod
    def prune(self, older_than: datetime) -> int:
        raise NotImplementedError


class InMemoryOAuthStateStore(OAuthStateStore):
    """Process-local store; suitable for a single API instance."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, OAuthStateEntry] = {}

    def put(self, state: str, user_id: str, issued_at: datetime) -> None:
        with self._lock:
            self._entries[state] = OAuthStateEntry(user_id=user_id, issued_at=issued_at)

    def pop(self, state: str) -> Optional[OAuthStateEntry]:
        with self._lock:
            return self._entries.pop(state, None)

    def prune(self, older_than: datetime) -> int:
        with self._lock:
            expired = [k for k, v in self._entries.items() if v.issued_at < older_than]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class OAuthStateService:
    def __init__(
        self,
        store: OAuthStateStore,
        ttl_seconds: int = OAUTH_STATE_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    def generate_state(self, user_id: str) -> str:
        now = self.clock()
        self.store.prune(now - self.ttl)
        state = secrets.token_hex(32)
        self.store.put(state, user_id, now)
        return state

    def validate_and_consume(self, state: str) -> Optional[str]:
        """Return the user bound to `state`, or None.

        Unknown, already consumed and expired states are indistinguishable.
        """
        entry = self.store.pop(state)
        if entry is None:
            return None
        if self.clock() - entry.issued_at > self.ttl:
            return None
        return entry.user_id
