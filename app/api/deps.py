"""FastAPI dependencies: database session, caller identity, services.

Process-wide objects (engine, provider registry, OAuth state store) are
created once on first use. Tests replace them through
`app.dependency_overrides`.
"""

from functools import lru_cache
from typing import Iterator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session, sessionmaker

from app.data import create_session_factory, get_engine, init_db
from app.providers import (
    InMemoryOAuthStateStore,
    OAuthStateService,
    ProviderRegistry,
    default_registry,
)
from app.services import (
    AccountService,
    PlaylistService,
    SyncService,
    TokenVault,
    UnifiedService,
)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    engine = get_engine()
    init_db(engine)
    return create_session_factory(engine)


@lru_cache(maxsize=1)
def get_registry() -> ProviderRegistry:
    return default_registry()


@lru_cache(maxsize=1)
def get_oauth_states() -> OAuthStateService:
    return OAuthStateService(InMemoryOAuthStateStore())


def get_session(factory: sessionmaker = Depends(get_session_factory)) -> Iterator[Session]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Caller identity, as asserted by the upstream authentication layer.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header.")
    return x_user_id.strip()


def get_account_service(
    session: Session = Depends(get_session),
    factory: sessionmaker = Depends(get_session_factory),
    registry: ProviderRegistry = Depends(get_registry),
    oauth_states: OAuthStateService = Depends(get_oauth_states),
) -> AccountService:
    vault = TokenVault(session, registry, session_factory=factory)
    return AccountService(session, registry, oauth_states, vault)


def get_playlist_service(
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service),
) -> PlaylistService:
    return PlaylistService(session, accounts)


def get_sync_service(
    session: Session = Depends(get_session),
    playlists: PlaylistService = Depends(get_playlist_service),
) -> SyncService:
    return SyncService(session, playlists)


def get_unified_service(
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service),
) -> UnifiedService:
    return UnifiedService(session, accounts)
