from __future__ import annotations

import json
import threading
from typing import TYPE_CHECKING

import pytest

from ipool import app
from ipool.config import OperatorConfig
from ipool.domain.errors import ConflictError, NotFoundError
from ipool.domain.model import ResourceKind
from tests.helpers.resources import create_active_pool, make_pool, make_request

if TYPE_CHECKING:
    from pathlib import Path

    from ipool.adapters.memory import InMemoryResourceStore


def test_apply_creates_then_reports_unchanged(store: InMemoryResourceStore) -> None:
    first = app.apply_resource(store, make_pool())
    second = app.apply_resource(store, make_pool())

    assert first == app.ApplyOutcome(kind=ResourceKind.POOL, key="lab", action="created")
    assert second.action == "unchanged"
    assert store.pools.get("lab").meta.resource_version == 1


def test_apply_replaces_spec_and_keeps_status(store: InMemoryResourceStore) -> None:
    create_active_pool(store)

    outcome = app.apply_resource(store, make_pool(avoid_gateway=True))

    assert outcome.action == "updated"
    pool = store.pools.get("lab")
    assert pool.spec.avoid_gateway is True
    assert pool.status.capacity == 5
    assert pool.meta.finalizers == ["ipool.io/finalizer"]


def test_apply_retries_conflicts(store: InMemoryResourceStore) -> None:
    store.requests.create(make_request("a"))
    store.inject_conflicts(ResourceKind.ADDRESS_REQUEST, count=2)

    outcome = app.apply_resource(store, make_request("a", pool_name="other"))

    assert outcome.action == "updated"
    assert store.requests.get("default/a").spec.pool_name == "other"


def test_apply_gives_up_after_repeated_conflicts(store: InMemoryResourceStore) -> None:
    store.requests.create(make_request("a"))
    store.inject_conflicts(ResourceKind.ADDRESS_REQUEST, count=app.APPLY_ATTEMPTS)

    with pytest.raises(ConflictError):
        app.apply_resource(store, make_request("a", pool_name="other"))


def test_apply_manifest_reads_file(store: InMemoryResourceStore, tmp_path: Path) -> None:
    path = tmp_path / "lab.json"
    path.write_text(
        json.dumps(
            [
                {"kind": "Pool", "metadata": {"name": "lab"}, "spec": {"addresses": ["10.0.0.0/30"]}},
                {
                    "kind": "AddressRequest",
                    "metadata": {"name": "a", "namespace": "team"},
                    "spec": {"poolName": "lab"},
                },
            ]
        ),
        encoding="utf-8",
    )

    outcomes = app.apply_manifest(path, store=store)

    assert [(outcome.key, outcome.action) for outcome in outcomes] == [
        ("lab", "created"),
        ("team/a", "created"),
    ]


def test_delete_resource_marks_held_request(store: InMemoryResourceStore) -> None:
    created = store.requests.create(make_request("a"))
    created.meta.add_finalizer("ipool.io/finalizer")
    store.requests.update(created)

    app.delete_resource(ResourceKind.ADDRESS_REQUEST, "default/a", store=store)

    assert store.requests.get("default/a").meta.deletion_requested is True


def test_delete_resource_missing_raises(store: InMemoryResourceStore) -> None:
    with pytest.raises(NotFoundError):
        app.delete_resource(ResourceKind.POOL, "ghost", store=store)


def test_list_resources(store: InMemoryResourceStore) -> None:
    store.pools.create(make_pool())
    store.requests.create(make_request("a"))

    pools, requests = app.list_resources(store=store)

    assert [pool.key for pool in pools] == ["lab"]
    assert [request.key for request in requests] == ["default/a"]


def test_run_operator_returns_once_stopped(store: InMemoryResourceStore) -> None:
    stop = threading.Event()
    stop.set()

    app.run_operator(stop, store=store, config=OperatorConfig(threads=1, resync_seconds=3600))

    assert store.pools.list_all() == []
