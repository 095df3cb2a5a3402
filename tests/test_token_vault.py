from datetime import timedelta

import pytest

from app.core import (
    ConfigurationError,
    DecryptionError,
    NotFoundError,
    Provider,
    ProviderError,
    decrypt,
    generate_encryption_key,
    utcnow,
)
from app.data import ProviderToken, session_scope
from app.services import TokenOutcome, TokenVault


def _stored(session, account_id: str) -> ProviderToken:
    session.expire_all()
    return session.query(ProviderToken).filter_by(provider_account_id=account_id).one()


def test_tokens_are_encrypted_at_rest(session, vault, connect, encryption_key) -> None:
    account = connect("u1", Provider.SPOTIFY)

    token = _stored(session, account.id)

    assert "access-spotify" not in token.access_token_encrypted
    assert decrypt(token.access_token_encrypted, encryption_key) == "access-spotify"
    assert decrypt(token.refresh_token_encrypted, encryption_key) == "refresh-spotify"
    assert "access-spotify" not in repr(token)


def test_save_token_upserts_one_row_per_account(session, vault, connect) -> None:
    account = connect("u1", Provider.SPOTIFY)

    vault.save_token(account.id, "second", None, None)

    assert session.query(ProviderToken).count() == 1
    token = _stored(session, account.id)
    assert token.refresh_token_encrypted is None
    assert token.expires_at is None


def test_token_far_from_expiry_is_not_refreshed(vault, connect, spotify) -> None:
    account = connect("u1", Provider.SPOTIFY, expires_in=timedelta(minutes=10))

    result = vault.get_access_token(account.id)

    assert result.value == "access-spotify"
    assert result.outcome is TokenOutcome.VALID
    assert spotify.refresh_calls == []


def test_token_near_expiry_is_refreshed_and_persisted(
    session, vault, connect, spotify, encryption_key
) -> None:
    account = connect("u1", Provider.SPOTIFY, expires_in=timedelta(minutes=4))

    result = vault.get_access_token(account.id)

    assert result.outcome is TokenOutcome.REFRESHED
    assert result.value == "refreshed-1"
    assert spotify.refresh_calls == ["refresh-spotify"]

    token = _stored(session, account.id)
    assert decrypt(token.access_token_encrypted, encryption_key) == "refreshed-1"
    # The provider did not rotate, so the old refresh token is kept.
    assert decrypt(token.refresh_token_encrypted, encryption_key) == "refresh-spotify"
    assert vault.get_access_token(account.id).outcome is TokenOutcome.VALID


def test_rotated_refresh_token_replaces_old_one(
    session, vault, connect, spotify, encryption_key
) -> None:
    spotify.rotated_refresh_token = "rotated"
    account = connect("u1", Provider.SPOTIFY, expires_in=timedelta(minutes=-1))

    vault.get_valid_access_token(account.id)

    token = _stored(session, account.id)
    assert decrypt(token.refresh_token_encrypted, encryption_key) == "rotated"


def test_refresh_failure_returns_stale_token(vault, connect, spotify) -> None:
    spotify.refresh_error = ProviderError("spotify", "invalid_grant", status_code=400)
    account = connect("u1", Provider.SPOTIFY, expires_in=timedelta(minutes=1))

    result = vault.get_access_token(account.id)

    assert result.outcome is TokenOutcome.STALE
    assert result.is_stale
    assert result.value == "access-spotify"
    assert vault.get_valid_access_token(account.id) == "access-spotify"


def test_unexpected_refresh_error_returns_stale_token(vault, connect, spotify) -> None:
    spotify.refresh_error = ValueError("invalid literal for int() with base 10: 'soon'")
    account = connect("u1", Provider.SPOTIFY, expires_in=timedelta(minutes=4))

    assert vault.get_valid_access_token(account.id) == "access-spotify"
    assert vault.get_access_token(account.id).is_stale


def test_refresh_is_kept_when_the_callers_transaction_rolls_back(
    file_session_factory, file_connect, registry, spotify, encryption_key
) -> None:
    spotify.rotated_refresh_token = "rotated"
    account_id = file_connect("u1", Provider.SPOTIFY, expires_in=timedelta(minutes=4))

    session = file_session_factory()
    vault = TokenVault(
        session, registry, key=encryption_key, session_factory=file_session_factory
    )
    assert vault.get_valid_access_token(account_id) == "refreshed-1"
    session.rollback()
    # The caller sees the committed row, so no second refresh is attempted.
    assert vault.get_access_token(account_id).outcome is TokenOutcome.VALID
    session.close()

    with session_scope(file_session_factory) as check:
        token = _stored(check, account_id)
        assert decrypt(token.access_token_encrypted, encryption_key) == "refreshed-1"
        assert decrypt(token.refresh_token_encrypted, encryption_key) == "rotated"
    assert spotify.refresh_calls == ["refresh-spotify"]


def test_expired_token_without_refresh_token_is_returned_as_is(
    session, vault, connect, spotify
) -> None:
    account = connect("u1", Provider.SPOTIFY)
    vault.save_token(account.id, "no-refresh", None, utcnow() - timedelta(hours=1))

    result = vault.get_access_token(account.id)

    assert result.outcome is TokenOutcome.VALID
    assert result.value == "no-refresh"
    assert spotify.refresh_calls == []


def test_missing_token_raises_not_found(vault) -> None:
    with pytest.raises(NotFoundError):
        vault.get_valid_access_token("no-such-account")


def test_wrong_key_raises_decryption_error(session, registry, connect) -> None:
    account = connect("u1", Provider.SPOTIFY)
    other = TokenVault(session, registry, key=generate_encryption_key())

    with pytest.raises(DecryptionError):
        other.get_valid_access_token(account.id)


def test_missing_key_fails_fast(session, registry, monkeypatch) -> None:
    monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
    monkeypatch.setattr("app.config.ENCRYPTION_KEY", None)

    with pytest.raises(ConfigurationError):
        TokenVault(session, registry)


def test_delete_token(session, vault, connect) -> None:
    account = connect("u1", Provider.SPOTIFY)

    vault.delete_token(account.id)

    assert session.query(ProviderToken).count() == 0
    with pytest.raises(NotFoundError):
        vault.get_valid_access_token(account.id)
