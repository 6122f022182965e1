from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ipool.domain.errors import NotFoundError
from ipool.domain.model import PoolPhase
from ipool.domain.reconciliation import FINALIZER, UpdatePool, plan_pool
from tests.helpers.resources import START, create_active_pool, make_pool

if TYPE_CHECKING:
    from ipool.adapters.memory import InMemoryResourceStore
    from ipool.domain.reconciliation import PoolReconciler


def test_new_pool_becomes_active(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    created = store.pools.create(make_pool())

    result = pool_reconciler.reconcile(created)

    assert result is not None
    stored = store.pools.get("lab")
    assert stored.status.phase is PoolPhase.ACTIVE
    assert stored.status.capacity == 5
    assert stored.status.allocatable == 5
    assert stored.status.reason == ""
    assert stored.status.last_update is not None
    assert stored.meta.finalizers == [FINALIZER]


def test_reconcile_of_settled_pool_writes_nothing(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    active = create_active_pool(store)

    pool_reconciler.reconcile(active)
    pool_reconciler.reconcile(store.pools.get("lab"), spec_changed=True)

    assert store.pools.get("lab").meta.resource_version == active.meta.resource_version


def test_invalid_spec_marks_pool_failed(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    created = store.pools.create(make_pool(addresses=["10.0.0.9-10.0.0.1"]))

    pool_reconciler.reconcile(created)

    stored = store.pools.get("lab")
    assert stored.status.phase is PoolPhase.FAILED
    assert "10.0.0.9-10.0.0.1" in stored.status.reason
    assert stored.status.capacity == 0
    assert stored.meta.finalizers == []


def test_failed_pool_is_not_rewritten_until_spec_changes(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    created = store.pools.create(make_pool(addresses=["bogus/24"]))
    pool_reconciler.reconcile(created)
    failed = store.pools.get("lab")

    pool_reconciler.reconcile(failed)

    assert store.pools.get("lab").meta.resource_version == failed.meta.resource_version


def test_fixed_spec_moves_failed_pool_to_active(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    created = store.pools.create(make_pool(addresses=["bogus/24"]))
    pool_reconciler.reconcile(created)
    failed = store.pools.get("lab")
    failed.spec.addresses = ["10.0.0.0/30"]
    edited = store.pools.update(failed)

    pool_reconciler.reconcile(edited, spec_changed=True)

    stored = store.pools.get("lab")
    assert stored.status.phase is PoolPhase.ACTIVE
    assert stored.status.reason == ""
    assert stored.status.capacity == 3


def test_spec_update_recomputes_capacity_and_keeps_allocations(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    active = create_active_pool(store)
    active.status.allocate("172.22.132.1", "default/a")
    active = store.pools.update(active)
    active.spec.addresses = ["172.22.132.0/29"]
    edited = store.pools.update(active)

    pool_reconciler.reconcile(edited, spec_changed=True)

    stored = store.pools.get("lab")
    assert stored.status.capacity == 7
    assert stored.status.allocatable == 6
    assert stored.status.allocated == ["172.22.132.1"]


def test_invalid_spec_update_keeps_allocations_and_finalizer(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    active = create_active_pool(store)
    active.status.allocate("172.22.132.1", "default/a")
    active.spec.addresses = ["172.22.132.0/40"]
    edited = store.pools.update(active)

    pool_reconciler.reconcile(edited, spec_changed=True)

    stored = store.pools.get("lab")
    assert stored.status.phase is PoolPhase.FAILED
    assert stored.status.allocated == ["172.22.132.1"]
    assert stored.meta.finalizers == [FINALIZER]


def test_active_pool_missing_finalizer_gets_it_back(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    active = create_active_pool(store)
    active.meta.finalizers = []
    stripped = store.pools.update(active)

    pool_reconciler.reconcile(stripped)

    assert store.pools.get("lab").meta.finalizers == [FINALIZER]


def test_deleting_pool_with_allocations_keeps_it_terminating(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    active = create_active_pool(store)
    active.status.allocate("172.22.132.1", "default/a")
    store.pools.update(active)
    store.pools.delete("lab")

    result = pool_reconciler.reconcile(store.pools.get("lab"))

    assert result is not None
    stored = store.pools.get("lab")
    assert stored.status.phase is PoolPhase.TERMINATING
    assert stored.meta.deletion_requested
    assert stored.meta.finalizers == [FINALIZER]
    assert stored.status.allocated == ["172.22.132.1"]


def test_deleting_drained_pool_removes_it(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    create_active_pool(store)
    store.pools.delete("lab")

    result = pool_reconciler.reconcile(store.pools.get("lab"))

    assert result is None
    with pytest.raises(NotFoundError):
        store.pools.get("lab")


def test_plan_pool_is_pure() -> None:
    pool = make_pool()

    result = plan_pool(pool, spec_changed=False, now=START)

    assert pool.status.phase is None
    assert result.state.status.phase is PoolPhase.ACTIVE
    assert result.state.status.last_update == START
    assert result.effects == (UpdatePool(result.state),)


def test_plan_pool_without_changes_has_no_effects() -> None:
    settled = plan_pool(make_pool(), spec_changed=False, now=START).state

    result = plan_pool(settled, spec_changed=True, now=START.replace(year=2027))

    assert result.effects == ()
    assert result.state is settled


def test_spec_edit_is_applied_without_change_flag(
    store: InMemoryResourceStore, pool_reconciler: PoolReconciler
) -> None:
    active = create_active_pool(store, make_pool(addresses=["10.0.0.0/30"]))
    assert active.status.observed_generation == 1
    active.spec.addresses = ["10.0.0.0/29"]
    edited = store.pools.update(active)

    pool_reconciler.reconcile(edited)

    stored = store.pools.get("lab")
    assert stored.status.capacity == 7
    assert stored.status.observed_generation == stored.meta.generation == 2
    assert not stored.spec_outdated


def test_large_block_capacity_is_counted_not_enumerated() -> None:
    pool = make_pool(addresses=["10.0.0.0/8"], avoid_buggy=True)

    planned = plan_pool(pool, spec_changed=True, now=START).state

    assert planned.status.capacity == 2**24 - 2 * 2**16
