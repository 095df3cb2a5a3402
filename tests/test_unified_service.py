import threading
import time
from typing import List

import pytest
from sqlalchemy import select

from app.core import (
    REASON_NAME_ARTIST,
    NotFoundError,
    Provider,
    ProviderError,
    ValidationError,
)
from app.data import Track, TrackRepository, UnifiedItem, session_scope
from app.providers import PlaybackType
from app.services import AccountService, TokenVault, UnifiedService

from conftest import make_track


@pytest.fixture
def tracks(session) -> List[Track]:
    repo = TrackRepository(session)
    rows = [
        repo.find_or_create(Provider.SPOTIFY, make_track(f"sp-{i}", f"Song {i}"))[0]
        for i in range(5)
    ]
    session.commit()
    return rows


def _order(unified_service, user_id: str, playlist_id: str) -> List[str]:
    _, items = unified_service.get_playlist(user_id, playlist_id)
    assert [i.position for i in items] == list(range(len(items)))
    return [i.track.provider_track_id for i in items]


def test_create_requires_a_name(unified_service) -> None:
    with pytest.raises(ValidationError):
        unified_service.create_playlist("u1", "   ")


def test_add_appends_then_inserts_in_the_middle(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")

    unified_service.add_items("u1", playlist.id, [tracks[0].id, tracks[1].id, tracks[2].id])
    unified_service.add_items("u1", playlist.id, [tracks[3].id, tracks[4].id], position=1)

    assert _order(unified_service, "u1", playlist.id) == [
        "sp-0",
        "sp-3",
        "sp-4",
        "sp-1",
        "sp-2",
    ]


def test_add_past_the_end_appends(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")
    unified_service.add_items("u1", playlist.id, [tracks[0].id])

    added = unified_service.add_items("u1", playlist.id, [tracks[1].id], position=42)

    assert [i.position for i in added] == [1]
    assert _order(unified_service, "u1", playlist.id) == ["sp-0", "sp-1"]


def test_unknown_track_rejects_whole_batch(session, unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")
    unified_service.add_items("u1", playlist.id, [tracks[0].id, tracks[1].id])

    with pytest.raises(ValidationError):
        unified_service.add_items("u1", playlist.id, [tracks[2].id, "missing"], position=0)

    assert _order(unified_service, "u1", playlist.id) == ["sp-0", "sp-1"]
    assert session.query(UnifiedItem).count() == 2


def test_add_rejects_negative_position_and_empty_list(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")

    with pytest.raises(ValidationError):
        unified_service.add_items("u1", playlist.id, [tracks[0].id], position=-1)
    with pytest.raises(ValidationError):
        unified_service.add_items("u1", playlist.id, [])


def test_remove_collapses_positions(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")
    items = unified_service.add_items("u1", playlist.id, [t.id for t in tracks[:4]])

    unified_service.remove_item("u1", playlist.id, items[1].id)

    assert _order(unified_service, "u1", playlist.id) == ["sp-0", "sp-2", "sp-3"]


def test_remove_unknown_item_is_not_found(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")

    with pytest.raises(NotFoundError):
        unified_service.remove_item("u1", playlist.id, "nope")


def test_reorder_moves_forward_and_backward(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")
    items = unified_service.add_items("u1", playlist.id, [t.id for t in tracks[:4]])

    result = unified_service.reorder_item("u1", playlist.id, items[0].id, 2)
    assert [i.track.provider_track_id for i in result] == ["sp-1", "sp-2", "sp-0", "sp-3"]

    unified_service.reorder_item("u1", playlist.id, items[3].id, 0)
    assert _order(unified_service, "u1", playlist.id) == ["sp-3", "sp-1", "sp-2", "sp-0"]


def test_reorder_out_of_range_changes_nothing(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")
    items = unified_service.add_items("u1", playlist.id, [t.id for t in tracks[:3]])

    with pytest.raises(ValidationError):
        unified_service.reorder_item("u1", playlist.id, items[0].id, 3)

    assert _order(unified_service, "u1", playlist.id) == ["sp-0", "sp-1", "sp-2"]


def test_other_users_cannot_see_or_mutate(unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("owner", "Mine")
    items = unified_service.add_items("owner", playlist.id, [tracks[0].id])

    with pytest.raises(NotFoundError):
        unified_service.get_playlist("intruder", playlist.id)
    with pytest.raises(NotFoundError):
        unified_service.add_items("intruder", playlist.id, [tracks[1].id])
    with pytest.raises(NotFoundError):
        unified_service.remove_item("intruder", playlist.id, items[0].id)
    with pytest.raises(NotFoundError):
        unified_service.reorder_item("intruder", playlist.id, items[0].id, 0)
    with pytest.raises(NotFoundError):
        unified_service.delete_playlist("intruder", playlist.id)

    assert unified_service.list_playlists("intruder") == []


def test_list_playlists_reports_item_counts(unified_service, tracks) -> None:
    full = unified_service.create_playlist("u1", "Full")
    unified_service.create_playlist("u1", "Empty")
    unified_service.add_items("u1", full.id, [tracks[0].id, tracks[1].id])

    counts = {p.name: count for p, count in unified_service.list_playlists("u1")}

    assert counts == {"Full": 2, "Empty": 0}


def test_update_playlist(unified_service) -> None:
    playlist = unified_service.create_playlist("u1", "Mix", "old")

    unified_service.update_playlist("u1", playlist.id, name="Renamed")
    unified_service.update_playlist("u1", playlist.id, description="new")

    assert (playlist.name, playlist.description) == ("Renamed", "new")


def test_delete_playlist_removes_items_but_keeps_tracks(
    session, unified_service, tracks
) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")
    unified_service.add_items("u1", playlist.id, [tracks[0].id, tracks[1].id])

    unified_service.delete_playlist("u1", playlist.id)

    assert session.query(UnifiedItem).count() == 0
    assert session.query(Track).count() == 5


def test_referenced_track_cannot_be_deleted(session, unified_service, tracks) -> None:
    repo = TrackRepository(session)
    playlist = unified_service.create_playlist("u1", "Mix")
    unified_service.add_items("u1", playlist.id, [tracks[0].id])

    with pytest.raises(ValidationError):
        repo.delete(tracks[0])

    repo.delete(tracks[1])
    assert repo.get(tracks[0].id) is not None
    assert repo.get(tracks[1].id) is None


def test_duplicates_across_providers(session, unified_service, tracks) -> None:
    repo = TrackRepository(session)
    soundcloud_copy, _ = repo.find_or_create(
        Provider.SOUNDCLOUD, make_track("sc-9", "song 0!", artist="ARTIST")
    )
    playlist = unified_service.create_playlist("u1", "Mix")
    items = unified_service.add_items(
        "u1", playlist.id, [tracks[0].id, tracks[1].id, soundcloud_copy.id]
    )

    groups = unified_service.find_duplicates("u1", playlist.id)

    assert len(groups) == 1
    assert groups[0].reason == REASON_NAME_ARTIST
    assert groups[0].item_ids == [items[0].id, items[2].id]


def test_search_stores_results_and_skips_failing_provider(
    session, unified_service, spotify, soundcloud, connect
) -> None:
    connect("u1", Provider.SPOTIFY)
    connect("u1", Provider.SOUNDCLOUD)
    spotify.tracks["pl"] = [make_track("sp-a", "Blue Monday"), make_track("sp-b", "Other")]
    soundcloud.fail_with = ProviderError("soundcloud", "down", status_code=503)

    results = unified_service.search_tracks("u1", "Blue")

    assert [t.provider_track_id for t in results["spotify"]] == ["sp-a"]
    assert results["soundcloud"] == []
    assert session.query(Track).filter_by(provider_track_id="sp-a").count() == 1


def test_search_requires_a_query(unified_service) -> None:
    with pytest.raises(ValidationError):
        unified_service.search_tracks("u1", " ")


def test_playback_falls_back_to_link_without_account(unified_service, session) -> None:
    track, _ = TrackRepository(session).find_or_create(
        Provider.SOUNDCLOUD,
        make_track("sc-1", "Tune", external_url="https://soundcloud.com/x/tune"),
    )

    _, info = unified_service.get_playback_info("u1", track.id)

    assert info.type is PlaybackType.EXTERNAL
    assert info.external_url == "https://soundcloud.com/x/tune"


def test_playback_uses_connected_provider(unified_service, session, connect) -> None:
    connect("u1", Provider.SPOTIFY)
    track, _ = TrackRepository(session).find_or_create(
        Provider.SPOTIFY, make_track("sp-1", "Tune")
    )

    _, info = unified_service.get_playback_info("u1", track.id)

    assert info.external_url == "https://example.test/spotify/sp-1"


def test_playback_of_unknown_track_is_not_found(unified_service) -> None:
    with pytest.raises(NotFoundError):
        unified_service.get_playback_info("u1", "nope")


def _unified_for(session, registry, oauth_states, key) -> UnifiedService:
    vault = TokenVault(session, registry, key=key)
    return UnifiedService(session, AccountService(session, registry, oauth_states, vault))


def test_mutations_are_committed_before_returning(session, unified_service, tracks) -> None:
    playlist = unified_service.create_playlist("u1", "Mix")
    items = unified_service.add_items("u1", playlist.id, [t.id for t in tracks[:3]])
    unified_service.reorder_item("u1", playlist.id, items[2].id, 0)
    session.rollback()

    assert _order(unified_service, "u1", playlist.id) == ["sp-2", "sp-0", "sp-1"]


def test_concurrent_appends_to_one_playlist_are_serialized(
    file_session_factory, registry, oauth_states, encryption_key
) -> None:
    with session_scope(file_session_factory) as session:
        repo = TrackRepository(session)
        track_ids = [
            repo.find_or_create(Provider.SPOTIFY, make_track(f"sp-{i}", f"Song {i}"))[0].id
            for i in range(2)
        ]
        service = _unified_for(session, registry, oauth_states, encryption_key)
        playlist_id = service.create_playlist("u1", "Mix").id

    first_committing = threading.Event()
    errors: List[Exception] = []

    def append(session, track_id: str) -> None:
        try:
            service = _unified_for(session, registry, oauth_states, encryption_key)
            service.add_items("u1", playlist_id, [track_id])
        except Exception as exc:
            errors.append(exc)
        finally:
            session.close()

    # The first writer stalls inside its commit while the second one starts.
    first = file_session_factory()
    commit = first.commit

    def slow_commit() -> None:
        first_committing.set()
        time.sleep(0.5)
        commit()

    first.commit = slow_commit
    threads = [threading.Thread(target=append, args=(first, track_ids[0]))]
    threads[0].start()
    assert first_committing.wait(timeout=5)
    threads.append(
        threading.Thread(target=append, args=(file_session_factory(), track_ids[1]))
    )
    threads[1].start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    with session_scope(file_session_factory) as session:
        rows = session.execute(
            select(UnifiedItem.position, UnifiedItem.track_id)
            .where(UnifiedItem.unified_playlist_id == playlist_id)
            .order_by(UnifiedItem.position)
        ).all()
    assert [tuple(row) for row in rows] == [(0, track_ids[0]), (1, track_ids[1])]
