"""Engine lifecycle and the SQLAlchemy-backed resource store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ipool.adapters.events import EventBroadcaster
from ipool.adapters.sqlalchemy.migrations import upgrade_head
from ipool.adapters.sqlalchemy.repositories import (
    SqlAlchemyAddressRequestRepository,
    SqlAlchemyPoolRepository,
)
from ipool.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from ipool.domain.events import EventHandler

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call ipool.adapters.sqlalchemy."
                "startup() before creating a SqlAlchemyResourceStore."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def create_store_engine(database_uri: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""

    url = make_url(database_uri)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(
            database_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(database_uri, future=True)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the engine, migrate the schema to head and build the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_store_engine(
        database_uri or get_database_config().uri
    )
    log.info("Migrating database schema at %s", resolved_engine.url)
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyResourceStore:
    """Resource store persisted through SQLAlchemy.

    Watch handlers only see writes made through this store instance.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        factory = session_factory or _STATE.session_factory
        self._events = EventBroadcaster()
        self.pools = SqlAlchemyPoolRepository(factory, self._events)
        self.requests = SqlAlchemyAddressRequestRepository(factory, self._events)

    def watch(self, handler: EventHandler) -> None:
        self._events.subscribe(handler)
