"""Application orchestration entry points."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from ipool.adapters.manifest import load_resources
from ipool.adapters.sqlalchemy import SqlAlchemyResourceStore, is_started, startup
from ipool.config import get_operator_config
from ipool.domain.errors import AlreadyExistsError, ConflictError
from ipool.domain.model import AddressRequest, Pool, ResourceKind
from ipool.runtime import Operator

if TYPE_CHECKING:
    from pathlib import Path

    from ipool.config import OperatorConfig
    from ipool.domain.model import Resource
    from ipool.domain.ports import Repository, ResourceStore

log = getLogger(__name__)

APPLY_ATTEMPTS = 5

type ApplyAction = Literal["created", "updated", "unchanged"]


@dataclass(frozen=True, slots=True)
class ApplyOutcome:
    kind: ResourceKind
    key: str
    action: ApplyAction


def open_store(*, database_uri: str | None = None) -> SqlAlchemyResourceStore:
    """Return a store on the configured database, migrating it on first use."""

    if not is_started():
        startup(database_uri=database_uri)
    return SqlAlchemyResourceStore()


def build_operator(
    *,
    store: ResourceStore | None = None,
    config: OperatorConfig | None = None,
) -> Operator:
    return Operator(store or open_store(), config or get_operator_config())


def run_operator(
    stop: threading.Event,
    *,
    store: ResourceStore | None = None,
    config: OperatorConfig | None = None,
) -> None:
    """Run the operator until ``stop`` is set, then shut it down gracefully."""

    operator = build_operator(store=store, config=config)
    operator.run()
    try:
        stop.wait()
    finally:
        operator.stop()
    log.info("Operator stopped")


def apply_resource(store: ResourceStore, resource: Resource) -> ApplyOutcome:
    """Create ``resource`` or replace the spec of the stored object."""

    match resource:
        case Pool():
            action = _apply(store.pools, resource)
        case AddressRequest():
            action = _apply(store.requests, resource)
    log.info("%s %s %s", resource.KIND, resource.key, action)
    return ApplyOutcome(kind=resource.KIND, key=resource.key, action=action)


def _apply[T: (Pool, AddressRequest)](repository: Repository[T], resource: T) -> ApplyAction:
    try:
        repository.create(resource)
    except AlreadyExistsError:
        pass
    else:
        return "created"

    attempt = 1
    while True:
        current = repository.get(resource.key)
        if current.spec == resource.spec:
            return "unchanged"
        updated = current.copy()
        updated.spec = resource.copy().spec
        try:
            repository.update(updated)
        except ConflictError:
            if attempt >= APPLY_ATTEMPTS:
                raise
            log.debug("Conflict applying %s, attempt %d", resource.key, attempt)
            attempt += 1
        else:
            return "updated"


def apply_manifest(path: Path, *, store: ResourceStore | None = None) -> list[ApplyOutcome]:
    """Create or update every resource of a JSON manifest file."""

    resources = load_resources(path)
    effective_store = store or open_store()
    return [apply_resource(effective_store, resource) for resource in resources]


def delete_resource(
    kind: ResourceKind,
    key: str,
    *,
    store: ResourceStore | None = None,
) -> None:
    """Request deletion; finalizers keep the object until it has been released."""

    effective_store = store or open_store()
    if kind is ResourceKind.POOL:
        effective_store.pools.delete(key)
    else:
        effective_store.requests.delete(key)
    log.info("Deletion of %s %s requested", kind, key)


def list_resources(
    *,
    store: ResourceStore | None = None,
) -> tuple[list[Pool], list[AddressRequest]]:
    effective_store = store or open_store()
    return effective_store.pools.list_all(), effective_store.requests.list_all()
