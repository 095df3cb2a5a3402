"""Encrypted token storage with transparent refresh."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.config import TOKEN_REFRESH_BUFFER_SECONDS, get_encryption_key
from app.core import (
    NotFoundError,
    as_utc,
    decrypt,
    encrypt,
    log_info,
    log_warning,
    utcnow,
)
from app.data import ProviderAccount, ProviderToken, session_scope
from app.providers import ProviderRegistry, TokenGrant


class TokenOutcome(str, Enum):
    VALID = "valid"
    REFRESHED = "refreshed"
    STALE = "stale"


@dataclass
class AccessToken:
    """Plaintext access token plus how it was obtained.

    STALE means a refresh was due but failed; the value is the previous
    token and the provider may answer 401.
    """

    value: str
    outcome: TokenOutcome

    @property
    def is_stale(self) -> bool:
        return self.outcome is TokenOutcome.STALE


class TokenVault:
    """
    Encrypted token storage for linked provider accounts.

    With a `session_factory`, refresh results are committed in a session
    of their own, so a provider that rotates refresh tokens never loses the
    new one to a rollback of the caller's transaction.
    """

    def __init__(
        self,
        session: Session,
        registry: ProviderRegistry,
        key: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
        refresh_buffer_seconds: int = TOKEN_REFRESH_BUFFER_SECONDS,
        session_factory: Optional[sessionmaker] = None,
    ) -> None:
        self.session = session
        self.registry = registry
        # Fails fast when ENCRYPTION_KEY is not configured.
        self.key = key or get_encryption_key()
        self.clock = clock
        self.refresh_buffer = timedelta(seconds=refresh_buffer_seconds)
        self.session_factory = session_factory

    def _find(
        self, account_id: str, session: Optional[Session] = None
    ) -> Optional[ProviderToken]:
        session = session or self.session
        return session.scalars(
            select(ProviderToken).where(ProviderToken.provider_account_id == account_id)
        ).first()

    def _write(
        self,
        session: Session,
        account_id: str,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: Optional[datetime],
        scope: Optional[str],
        token_type: str,
    ) -> ProviderToken:
        token = self._find(account_id, session)
        if token is None:
            token = ProviderToken(provider_account_id=account_id)
            session.add(token)

        token.access_token_encrypted = encrypt(access_token, self.key)
        token.refresh_token_encrypted = (
            encrypt(refresh_token, self.key) if refresh_token else None
        )
        token.token_type = token_type or "Bearer"
        token.expires_at = expires_at
        token.scope = scope
        session.flush()
        return token

    def save_token(
        self,
        account_id: str,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: Optional[datetime],
        scope: Optional[str] = None,
        token_type: str = "Bearer",
    ) -> ProviderToken:
        """Encrypt and upsert the single token row of `account_id`."""
        return self._write(
            self.session, account_id, access_token, refresh_token, expires_at, scope, token_type
        )

    def _store_refresh(
        self, token: ProviderToken, grant: TokenGrant, refresh_token: str
    ) -> None:
        fields = (
            grant.access_token,
            grant.refresh_token or refresh_token,
            grant.expires_at,
            grant.scope if grant.scope is not None else token.scope,
            grant.token_type,
        )
        if self.session_factory is None:
            self._write(self.session, token.provider_account_id, *fields)
            return

        with session_scope(self.session_factory) as own:
            self._write(own, token.provider_account_id, *fields)
        # The caller's copy of the row is stale now.
        self.session.expire(token)

    def needs_refresh(self, token: ProviderToken) -> bool:
        expires_at = as_utc(token.expires_at)
        if expires_at is None or not token.refresh_token_encrypted:
            return False
        return expires_at - self.refresh_buffer <= self.clock()

    def get_access_token(self, account_id: str) -> AccessToken:
        """
        Return a usable access token for the account.

        Raises NotFoundError when the account has no token and
        DecryptionError when the stored ciphertext does not authenticate.
        A failed refresh is not raised, whatever the connector threw; it
        yields a STALE result instead.
        """
        token = self._find(account_id)
        if token is None:
            raise NotFoundError(f"No token stored for provider account {account_id}")

        access_token = decrypt(token.access_token_encrypted, self.key)
        if not self.needs_refresh(token):
            return AccessToken(access_token, TokenOutcome.VALID)

        refresh_token = decrypt(token.refresh_token_encrypted, self.key)
        account = self.session.get(ProviderAccount, account_id)
        try:
            grant = self.registry.connector(account.provider).refresh_access_token(
                refresh_token
            )
        except Exception as exc:
            log_warning(
                f"Token refresh failed for account {account_id}; using stored token "
                f"({type(exc).__name__}: {exc})"
            )
            return AccessToken(access_token, TokenOutcome.STALE)

        self._store_refresh(token, grant, refresh_token)
        log_info(f"Refreshed {account.provider.value} token for account {account_id}")
        return AccessToken(grant.access_token, TokenOutcome.REFRESHED)

    def get_valid_access_token(self, account_id: str) -> str:
        return self.get_access_token(account_id).value

    def delete_token(self, account_id: str) -> None:
        token = self._find(account_id)
        if token is not None:
            self.session.delete(token)
            self.session.flush()
