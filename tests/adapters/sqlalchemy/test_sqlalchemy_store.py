from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect

from ipool.adapters.sqlalchemy import (
    SqlAlchemyResourceStore,
    StartupError,
    configured_engine,
    create_all_tables,
    create_store_engine,
    shutdown,
)
from ipool.domain.errors import AlreadyExistsError, ConflictError, NotFoundError
from ipool.domain.events import Created, Deleted, Updated
from ipool.domain.model import PoolPhase, RequestPhase
from tests.helpers.resources import START, make_pool, make_request

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from ipool.domain.events import ResourceEvent


def test_migrations_create_resource_tables(sqlite_engine: Engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())

    assert {"pool", "address_request", "alembic_version"} <= tables


def test_store_requires_startup() -> None:
    shutdown()

    with pytest.raises(StartupError):
        SqlAlchemyResourceStore()


def test_pool_round_trip_keeps_status(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    pool = make_pool(exclude=["172.22.132.3"])
    pool.meta.finalizers = ["ipool.io/finalizer"]
    pool.status.phase = PoolPhase.ACTIVE
    pool.status.last_update = START
    pool.status.capacity = 5
    pool.status.allocate("172.22.132.2", "default/b")
    pool.status.allocate("172.22.132.1", "default/a")

    sqlalchemy_store.pools.create(pool)
    loaded = sqlalchemy_store.pools.get("lab")

    assert loaded.spec == pool.spec
    assert loaded.meta.finalizers == ["ipool.io/finalizer"]
    assert loaded.status.phase is PoolPhase.ACTIVE
    assert loaded.status.last_update == START
    assert loaded.status.allocated == ["172.22.132.2", "172.22.132.1"]
    assert loaded.status.owned_by("default/a") == "172.22.132.1"
    assert loaded.status.allocatable == 3


def test_request_round_trip(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    request = make_request("web", namespace="team", wanted="172.22.132.4")
    request.status.phase = RequestPhase.ACTIVE
    request.status.address = "172.22.132.4"
    request.status.pool_name = "lab"

    sqlalchemy_store.requests.create(request)
    loaded = sqlalchemy_store.requests.get("team/web")

    assert loaded.namespace == "team"
    assert loaded.spec.wanted_address == "172.22.132.4"
    assert loaded.status.phase is RequestPhase.ACTIVE
    assert loaded.status.pool_name == "lab"
    assert loaded.status.last_update is None


def test_request_without_namespace_is_stored_in_default(
    sqlalchemy_store: SqlAlchemyResourceStore,
) -> None:
    request = make_request("a")
    request.meta.namespace = None

    sqlalchemy_store.requests.create(request)

    assert sqlalchemy_store.requests.get("default/a").namespace == "default"
    assert sqlalchemy_store.requests.get("a").key == "default/a"


def test_create_rejects_existing_key(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    sqlalchemy_store.pools.create(make_pool())

    with pytest.raises(AlreadyExistsError):
        sqlalchemy_store.pools.create(make_pool())


def test_update_is_version_checked(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    created = sqlalchemy_store.pools.create(make_pool())
    stale = created.copy()
    created.spec.avoid_gateway = True

    assert sqlalchemy_store.pools.update(created).meta.resource_version == 2
    with pytest.raises(ConflictError):
        sqlalchemy_store.pools.update(stale)
    assert sqlalchemy_store.pools.get("lab").spec.avoid_gateway is True


def test_soft_delete_then_finalizer_release(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    created = sqlalchemy_store.requests.create(make_request("a"))
    created.meta.add_finalizer("ipool.io/finalizer")
    sqlalchemy_store.requests.update(created)

    sqlalchemy_store.requests.delete("default/a")
    marked = sqlalchemy_store.requests.get("default/a")
    assert marked.meta.deletion_requested is True

    marked.meta.remove_finalizer("ipool.io/finalizer")
    sqlalchemy_store.requests.update(marked)

    with pytest.raises(NotFoundError):
        sqlalchemy_store.requests.get("default/a")


def test_hard_delete_without_finalizers(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    sqlalchemy_store.pools.create(make_pool())

    sqlalchemy_store.pools.delete("lab")

    assert sqlalchemy_store.pools.list_all() == []
    with pytest.raises(NotFoundError):
        sqlalchemy_store.pools.delete("lab")


def test_list_all_orders_requests_by_namespace_and_name(
    sqlalchemy_store: SqlAlchemyResourceStore,
) -> None:
    for namespace, name in [("team", "b"), ("default", "z"), ("team", "a")]:
        sqlalchemy_store.requests.create(make_request(name, namespace=namespace))

    keys = [request.key for request in sqlalchemy_store.requests.list_all()]

    assert keys == ["default/z", "team/a", "team/b"]


def test_watch_sees_writes_of_this_store(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    events: list[ResourceEvent] = []
    sqlalchemy_store.watch(events.append)

    created = sqlalchemy_store.pools.create(make_pool())
    created.status.phase = PoolPhase.FAILED
    sqlalchemy_store.pools.update(created)
    sqlalchemy_store.pools.delete("lab")

    assert [type(event) for event in events] == [Created, Updated, Deleted]


def test_metadata_matches_migrated_columns(sqlite_engine: Engine) -> None:
    plain_engine = create_store_engine("sqlite+pysqlite:///:memory:")
    create_all_tables(plain_engine)
    try:
        for table in ("pool", "address_request"):
            migrated = {column["name"] for column in inspect(sqlite_engine).get_columns(table)}
            created = {column["name"] for column in inspect(plain_engine).get_columns(table)}
            assert migrated == created
    finally:
        plain_engine.dispose()


def test_startup_exposes_configured_engine(
    sqlite_engine: Engine, sqlalchemy_store: SqlAlchemyResourceStore
) -> None:
    assert sqlalchemy_store.pools.list_all() == []
    assert configured_engine() is sqlite_engine


def test_generation_follows_spec_edits(sqlalchemy_store: SqlAlchemyResourceStore) -> None:
    created = sqlalchemy_store.pools.create(make_pool())
    assert created.meta.generation == 1

    created.status.observed_generation = 1
    status_only = sqlalchemy_store.pools.update(created)
    status_only.spec.avoid_gateway = True
    edited = sqlalchemy_store.pools.update(status_only)
    loaded = sqlalchemy_store.pools.get("lab")

    assert status_only.meta.generation == 1
    assert edited.meta.generation == 2
    assert loaded.meta.generation == 2
    assert loaded.status.observed_generation == 1
    assert loaded.spec_outdated
