"""SQLAlchemy adapter package for ipool."""

from __future__ import annotations

from .mappings import (
    address_request_table,
    create_all_tables,
    metadata,
    pool_table,
)
from .repositories import (
    SqlAlchemyAddressRequestRepository,
    SqlAlchemyPoolRepository,
)
from .store import (
    SqlAlchemyResourceStore,
    StartupError,
    configured_engine,
    create_store_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAddressRequestRepository",
    "SqlAlchemyPoolRepository",
    "SqlAlchemyResourceStore",
    "StartupError",
    "address_request_table",
    "configured_engine",
    "create_all_tables",
    "create_store_engine",
    "is_started",
    "metadata",
    "pool_table",
    "shutdown",
    "startup",
]
