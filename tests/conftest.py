from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from ipool.adapters.memory import InMemoryResourceStore
from ipool.adapters.sqlalchemy import SqlAlchemyResourceStore, shutdown, startup
from ipool.adapters.sqlalchemy.migrations import upgrade_head
from ipool.adapters.sqlalchemy.store import create_store_engine
from ipool.domain.reconciliation import AddressReconciler, PoolReconciler
from tests.helpers.resources import StepClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def store() -> InMemoryResourceStore:
    return InMemoryResourceStore()


@pytest.fixture
def pool_reconciler(store: InMemoryResourceStore, clock: StepClock) -> PoolReconciler:
    return PoolReconciler(store, clock=clock)


@pytest.fixture
def address_reconciler(store: InMemoryResourceStore, clock: StepClock) -> AddressReconciler:
    return AddressReconciler(store, clock=clock)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_store_engine("sqlite+pysqlite:///:memory:")
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlalchemy_store(sqlite_engine: Engine) -> Iterator[SqlAlchemyResourceStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyResourceStore()
    finally:
        shutdown()
