"""Pool lifecycle: candidate-set bookkeeping and finalizer-gated deletion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ipool.domain.addresses import capacity
from ipool.domain.errors import ValidationError
from ipool.domain.model import Pool, PoolPhase

from .state import (
    Clock,
    ReconcileResult,
    UpdatePool,
    ensure_finalizer,
    release_finalizer,
    stamp,
    utcnow,
)

if TYPE_CHECKING:
    from datetime import datetime

    from ipool.domain.ports import ResourceStore

log = logging.getLogger(__name__)


def plan_pool(pool: Pool, *, spec_changed: bool, now: datetime) -> ReconcileResult[Pool]:
    """Compute the desired state of ``pool`` and the writes needed to reach it.

    The candidate set is re-expanded when ``spec_changed`` is set or when the
    stored generation is ahead of the one the status was computed from.
    """

    desired = pool.copy()
    status = desired.status

    if desired.meta.deletion_requested:
        status.phase = PoolPhase.TERMINATING
        if not status.allocations:
            release_finalizer(desired.meta)
        return _settle(pool, desired, now)

    if status.phase is PoolPhase.ACTIVE and not (spec_changed or pool.spec_outdated):
        ensure_finalizer(desired.meta)
        return _settle(pool, desired, now)

    status.observed_generation = desired.meta.generation
    try:
        status.capacity = capacity(desired.spec)
    except ValidationError as exc:
        status.phase = PoolPhase.FAILED
        status.reason = str(exc)
        return _settle(pool, desired, now)

    status.recompute()
    status.phase = PoolPhase.ACTIVE
    status.reason = ""
    ensure_finalizer(desired.meta)
    return _settle(pool, desired, now)


def _settle(current: Pool, desired: Pool, now: datetime) -> ReconcileResult[Pool]:
    state, changed = stamp(current, desired, now)
    if not changed:
        return ReconcileResult(state=current)
    return ReconcileResult(state=state, effects=(UpdatePool(state),))


class PoolReconciler:
    """Drive one pool towards its desired state.

    A parse failure is recorded on the pool (phase ``Failed``) and the call
    returns normally: it stays failed until the spec is edited. Store errors
    propagate so the caller retries the key.
    """

    def __init__(self, store: ResourceStore, *, clock: Clock = utcnow) -> None:
        self.store = store
        self._clock = clock

    def reconcile(self, pool: Pool, *, spec_changed: bool = False) -> Pool | None:
        """Reconcile ``pool``; returns the stored state, or None once removed."""

        result = plan_pool(pool, spec_changed=spec_changed, now=self._clock())
        if not result.changed:
            log.debug("Pool %s already up to date", pool.name)
            return pool

        stored = self.store.pools.update(result.state)
        _log_transition(pool, result.state)
        if result.state.meta.deletion_requested and not result.state.meta.finalizers:
            return None
        return stored


def _log_transition(before: Pool, after: Pool) -> None:
    status = after.status
    if after.meta.deletion_requested:
        if after.meta.finalizers:
            log.info(
                "Pool %s terminating, waiting for %d allocated addresses",
                after.name,
                len(status.allocations),
            )
        else:
            log.info("Pool %s drained, finalizer released", after.name)
    elif status.phase is PoolPhase.FAILED:
        log.error("Pool %s failed: %s", after.name, status.reason)
    elif before.status.phase is not PoolPhase.ACTIVE or before.status != status:
        log.info(
            "Pool %s active: capacity=%s, allocatable=%s",
            after.name,
            status.capacity,
            status.allocatable,
        )
    else:
        log.debug("Pool %s metadata updated", after.name)
