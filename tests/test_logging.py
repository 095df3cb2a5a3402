import logging

from app.core.logging_config import REDACTED, SecretRedactingFilter, redact


def test_redact_masks_bearer_and_query_credentials() -> None:
    line = (
        "GET https://api.soundcloud.com/me?oauth_token=abc123&limit=5 "
        "Authorization: Bearer eyJhbGciOi.x-y"
    )

    cleaned = redact(line)

    assert "abc123" not in cleaned
    assert "eyJhbGciOi" not in cleaned
    assert f"oauth_token={REDACTED}&limit=5" in cleaned
    assert f"Bearer {REDACTED}" in cleaned


def test_redact_leaves_plain_messages_alone() -> None:
    message = "Synced playlist 42: 3 tracks (2 added, 1 updated)"

    assert redact(message) == message


def test_filter_rewrites_formatted_record() -> None:
    record = logging.LogRecord(
        "playlist_unifier",
        logging.WARNING,
        __file__,
        1,
        "refresh failed for %s: %s",
        ("acc-1", "refresh_token=secret-value rejected"),
        None,
    )

    assert SecretRedactingFilter().filter(record) is True
    assert record.getMessage() == f"refresh failed for acc-1: refresh_token={REDACTED} rejected"
