from datetime import timedelta
from typing import Dict, List, Optional

import pytest

from app.core import Provider, ProviderError, generate_encryption_key, utcnow
from app.data import (
    ProviderAccount,
    create_session_factory,
    get_engine,
    init_db,
    session_scope,
)
from app.providers import (
    InMemoryOAuthStateStore,
    MusicProvider,
    OAuthStateService,
    PlaybackInfo,
    ProviderConnector,
    ProviderPlaylist,
    ProviderRegistry,
    ProviderTrack,
    ProviderUser,
    TokenGrant,
)
from app.services import AccountService, PlaylistService, TokenVault, UnifiedService


class FakeProvider(MusicProvider):
    """In-memory provider whose state the tests set up directly."""

    def __init__(self, connector: "FakeConnector", access_token: str) -> None:
        self.provider = connector.provider
        self.connector = connector
        self.access_token = access_token

    def _maybe_fail(self) -> None:
        if self.connector.fail_with is not None:
            self.connector.failures += 1
            raise self.connector.fail_with

    def get_current_user(self) -> ProviderUser:
        return ProviderUser(id=f"{self.provider.value}-user", display_name="Tester")

    def get_playlists(self) -> List[ProviderPlaylist]:
        self._maybe_fail()
        return list(self.connector.playlists)

    def get_playlist_items(self, playlist_id: str) -> List[ProviderTrack]:
        self._maybe_fail()
        return list(self.connector.tracks.get(playlist_id, []))

    def search_tracks(self, query, options=None) -> List[ProviderTrack]:
        self._maybe_fail()
        return [t for tracks in self.connector.tracks.values() for t in tracks if query in t.name]

    def create_playlist(self, name, description=None) -> ProviderPlaylist:
        return ProviderPlaylist(id=f"new-{name}", name=name, description=description)

    def add_tracks(self, playlist_id, track_ids) -> None:
        return None

    def remove_tracks(self, playlist_id, track_ids) -> None:
        return None

    def reorder_tracks(self, playlist_id, range_start, insert_before, range_length=1) -> None:
        return None

    def get_playback_info(self, track_id: str) -> PlaybackInfo:
        return PlaybackInfo.external(self.get_external_url(track_id))

    def get_external_url(self, track_id: str) -> str:
        return f"https://example.test/{self.provider.value}/{track_id}"

    def supports_full_playback(self) -> bool:
        return False


class FakeConnector(ProviderConnector):
    def __init__(self, provider: Provider) -> None:
        self.provider = provider
        self.playlists: List[ProviderPlaylist] = []
        self.tracks: Dict[str, List[ProviderTrack]] = {}
        self.fail_with: Optional[Exception] = None
        self.failures = 0
        self.refresh_calls: List[str] = []
        self.refresh_error: Optional[Exception] = None
        self.rotated_refresh_token: Optional[str] = None

    def authorize_url(self, state: str) -> str:
        return f"https://auth.example.test/{self.provider.value}?state={state}"

    def exchange_code(self, code: str) -> TokenGrant:
        return TokenGrant(
            access_token=f"access-{code}",
            refresh_token=f"refresh-{code}",
            expires_at=utcnow() + timedelta(hours=1),
            scope="playlist-read-private",
        )

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        return TokenGrant(
            access_token=f"refreshed-{len(self.refresh_calls)}",
            refresh_token=self.rotated_refresh_token,
            expires_at=utcnow() + timedelta(hours=1),
        )

    def with_token(self, access_token: str) -> MusicProvider:
        return FakeProvider(self, access_token)


def make_track(track_id: str, name: str, artist: str = "Artist", **kwargs) -> ProviderTrack:
    return ProviderTrack(id=track_id, name=name, artist=artist, **kwargs)


@pytest.fixture
def encryption_key(monkeypatch) -> str:
    key = generate_encryption_key()
    monkeypatch.setenv("ENCRYPTION_KEY", key)
    return key


@pytest.fixture
def engine():
    engine = get_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def spotify() -> FakeConnector:
    return FakeConnector(Provider.SPOTIFY)


@pytest.fixture
def soundcloud() -> FakeConnector:
    return FakeConnector(Provider.SOUNDCLOUD)


@pytest.fixture
def registry(spotify, soundcloud) -> ProviderRegistry:
    return ProviderRegistry([spotify, soundcloud])


@pytest.fixture
def oauth_states() -> OAuthStateService:
    return OAuthStateService(InMemoryOAuthStateStore())


@pytest.fixture
def vault(session, registry, encryption_key) -> TokenVault:
    return TokenVault(session, registry, key=encryption_key)


@pytest.fixture
def accounts(session, registry, oauth_states, vault) -> AccountService:
    return AccountService(session, registry, oauth_states, vault)


@pytest.fixture
def playlist_service(session, accounts) -> PlaylistService:
    return PlaylistService(session, accounts)


@pytest.fixture
def unified_service(session, accounts) -> UnifiedService:
    return UnifiedService(session, accounts)


@pytest.fixture
def connect(session, vault):
    """Create a linked account with a token that is valid for an hour."""

    def _connect(user_id: str, provider: Provider, expires_in: timedelta = timedelta(hours=1)):
        account = ProviderAccount(
            user_id=user_id,
            provider=provider,
            provider_user_id=f"{provider.value}-{user_id}",
        )
        session.add(account)
        session.flush()
        vault.save_token(
            account.id,
            f"access-{provider.value}",
            f"refresh-{provider.value}",
            utcnow() + expires_in,
        )
        session.commit()
        return account

    return _connect


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("spotify", "boom", status_code=500)


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions over an on-disk SQLite database, for tests that need several
    connections (threads, a transaction committed beside the caller's)."""
    engine = get_engine(f"sqlite:///{tmp_path / 'unifier.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def file_connect(file_session_factory, registry, encryption_key):
    """Like `connect`, against the on-disk database; returns the account id."""

    def _connect(user_id: str, provider: Provider, expires_in: timedelta = timedelta(hours=1)):
        with session_scope(file_session_factory) as session:
            account = ProviderAccount(
                user_id=user_id,
                provider=provider,
                provider_user_id=f"{provider.value}-{user_id}",
            )
            session.add(account)
            session.flush()
            TokenVault(session, registry, key=encryption_key).save_token(
                account.id,
                f"access-{provider.value}",
                f"refresh-{provider.value}",
                utcnow() + expires_in,
            )
            return account.id

    return _connect
