"""Engine, session factory and schema bootstrap."""

from contextlib import contextmanager
import logging
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import DATABASE_URL
from app.core import ensure_parent_dir

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE / RESTRICT unless this is set per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(url: Optional[str] = None) -> Engine:
    """
    Create an engine for `url` (defaults to DATABASE_URL).

    In-memory SQLite databases share one connection across threads so that
    every session sees the same data.
    """
    url = url or DATABASE_URL

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            ensure_parent_dir(url.split("sqlite:///", 1)[-1])
        engine = create_engine(url, echo=False, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(url, echo=False, pool_pre_ping=True)

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    # autoflush stays off: position rewrites are flushed explicitly, in two
    # phases, by app.data.collections.write_positions.
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    from . import entities  # noqa: F401  (registers the mappers)

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready (%s)", engine.url.render_as_string(hide_password=True))


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
