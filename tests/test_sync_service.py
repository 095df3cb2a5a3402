from datetime import timedelta

import pytest
from tenacity import wait_none

from app.core import (
    ConflictResolution,
    ConflictType,
    NotFoundError,
    Provider,
    ProviderError,
    ProviderTransportError,
    SyncStatus,
    decrypt,
)
from app.data import Conflict, Playlist, ProviderToken, SyncRun, session_scope
from app.providers import ProviderPlaylist
from app.services import (
    AccountService,
    ConflictResolutionHandler,
    PlaylistService,
    SyncService,
    TokenVault,
)


@pytest.fixture
def sync_service(session, playlist_service) -> SyncService:
    return SyncService(session, playlist_service, max_attempts=3, wait=wait_none())


def test_pull_refreshes_every_account(session, sync_service, spotify, soundcloud, connect) -> None:
    connect("u1", Provider.SPOTIFY)
    connect("u1", Provider.SOUNDCLOUD)
    spotify.playlists = [ProviderPlaylist(id="a", name="A"), ProviderPlaylist(id="b", name="B")]
    soundcloud.playlists = [ProviderPlaylist(id="c", name="C")]

    run = sync_service.pull_from_providers("u1")

    assert run.status is SyncStatus.COMPLETED
    assert (run.items_processed, run.items_added, run.items_updated) == (3, 3, 0)
    assert run.started_at is not None and run.completed_at is not None
    assert session.query(Playlist).count() == 3
    assert sync_service.get_conflicts("u1") == []


def test_failing_account_is_recorded_and_others_continue(
    session, sync_service, spotify, soundcloud, connect
) -> None:
    connect("u1", Provider.SPOTIFY)
    connect("u1", Provider.SOUNDCLOUD)
    spotify.fail_with = ProviderError("spotify", "forbidden", status_code=403)
    soundcloud.playlists = [ProviderPlaylist(id="c", name="C")]

    run = sync_service.pull_from_providers("u1")

    assert run.status is SyncStatus.COMPLETED
    assert run.items_added == 1
    # Non-transport errors are not retried.
    assert spotify.failures == 1

    conflicts = sync_service.get_conflicts("u1")
    assert len(conflicts) == 1
    assert conflicts[0].conflict_type is ConflictType.SYNC_FAILED
    assert conflicts[0].details["provider"] == "spotify"
    assert "forbidden" in conflicts[0].details["error"]
    assert [p.name for p in session.query(Playlist)] == ["C"]


def test_transport_errors_are_retried(session, sync_service, spotify, connect) -> None:
    connect("u1", Provider.SPOTIFY)
    spotify.fail_with = ProviderTransportError("spotify", "timed out")

    run = sync_service.pull_from_providers("u1")

    assert spotify.failures == 3
    assert run.status is SyncStatus.COMPLETED
    assert len(sync_service.get_conflicts("u1")) == 1


def test_unexpected_error_marks_run_failed(
    session, sync_service, connect, monkeypatch
) -> None:
    connect("u1", Provider.SPOTIFY)

    def explode(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(session, "get", explode)

    with pytest.raises(RuntimeError):
        sync_service.pull_from_providers("u1")

    run = session.query(SyncRun).one()
    assert run.status is SyncStatus.FAILED
    assert run.error_message == "database went away"
    assert run.completed_at is not None


def test_pull_without_accounts_completes_empty(sync_service) -> None:
    run = sync_service.pull_from_providers("lonely")

    assert run.status is SyncStatus.COMPLETED
    assert run.items_processed == 0


def test_status_and_history(sync_service, connect) -> None:
    connect("u1", Provider.SPOTIFY)
    first = sync_service.pull_from_providers("u1")
    second = sync_service.pull_from_providers("u1")

    status = sync_service.get_sync_status("u1")
    history = sync_service.get_sync_history("u1", page=1, limit=1)

    assert status.active_syncs == []
    assert status.last_sync is not None
    assert status.last_sync.id in {first.id, second.id}
    assert history.total == 2
    assert history.total_pages == 2
    assert len(history.items) == 1
    assert sync_service.get_sync_history("u2").total == 0


def test_resolve_conflict(session, sync_service, spotify, connect) -> None:
    connect("u1", Provider.SPOTIFY)
    spotify.fail_with = ProviderError("spotify", "nope", status_code=400)
    sync_service.pull_from_providers("u1")
    conflict = sync_service.get_conflicts("u1")[0]

    resolved = sync_service.resolve_conflict("u1", conflict.id, ConflictResolution.KEEP)

    assert resolved.resolved is True
    assert resolved.resolution is ConflictResolution.KEEP
    assert resolved.resolved_at is not None
    assert sync_service.get_conflicts("u1") == []
    assert [c.id for c in sync_service.get_conflicts("u1", resolved=True)] == [conflict.id]


def test_resolve_conflict_of_another_user_is_not_found(
    session, sync_service, spotify, connect
) -> None:
    connect("u1", Provider.SPOTIFY)
    spotify.fail_with = ProviderError("spotify", "nope", status_code=400)
    sync_service.pull_from_providers("u1")
    conflict = session.query(Conflict).one()

    with pytest.raises(NotFoundError):
        sync_service.resolve_conflict("u2", conflict.id, ConflictResolution.IGNORE)

    assert session.get(Conflict, conflict.id).resolved is False


def test_resolution_handler_is_invoked(session, playlist_service, spotify, connect) -> None:
    applied = []

    class Recorder(ConflictResolutionHandler):
        def apply(self, session, conflict) -> None:
            applied.append((conflict.id, conflict.resolution))

    service = SyncService(
        session, playlist_service, wait=wait_none(), resolution_handler=Recorder()
    )
    connect("u1", Provider.SPOTIFY)
    spotify.fail_with = ProviderError("spotify", "nope", status_code=400)
    service.pull_from_providers("u1")
    conflict = service.get_conflicts("u1")[0]

    service.resolve_conflict("u1", conflict.id, ConflictResolution.REMOVE)

    assert applied == [(conflict.id, ConflictResolution.REMOVE)]


def test_rotated_refresh_token_survives_failed_account_sync(
    file_session_factory, file_connect, registry, oauth_states, spotify, encryption_key
) -> None:
    spotify.rotated_refresh_token = "rotated-r2"
    spotify.fail_with = ProviderError("spotify", "boom", status_code=500)
    account_id = file_connect("u1", Provider.SPOTIFY, expires_in=timedelta(minutes=4))

    session = file_session_factory()
    vault = TokenVault(
        session, registry, key=encryption_key, session_factory=file_session_factory
    )
    playlists = PlaylistService(session, AccountService(session, registry, oauth_states, vault))
    sync_service = SyncService(session, playlists, max_attempts=1, wait=wait_none())
    run = sync_service.pull_from_providers("u1")
    session.close()

    assert run.status is SyncStatus.COMPLETED
    with session_scope(file_session_factory) as check:
        conflict = check.query(Conflict).one()
        assert conflict.details["provider"] == "spotify"
        token = check.query(ProviderToken).filter_by(provider_account_id=account_id).one()
        assert decrypt(token.refresh_token_encrypted, encryption_key) == "rotated-r2"
        assert decrypt(token.access_token_encrypted, encryption_key) == "refreshed-1"
