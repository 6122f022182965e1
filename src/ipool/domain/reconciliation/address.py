"""AddressRequest lifecycle: allocation from and release back to a pool.

Concurrent requests against the same pool are not serialised. The pool write
is a compare-and-swap: when it loses a race it raises ``ConflictError`` before
the request is touched, and the caller retries the key with a freshly read
pool. That write is the only thing that keeps two requests from claiming the
same address.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ipool.domain.addresses import is_candidate, iter_candidates
from ipool.domain.errors import (
    AddressOutOfRangeError,
    AllocationError,
    DuplicateAllocationError,
    NotFoundError,
    PoolExhaustedError,
    PoolNotActiveError,
    PoolTerminatedError,
    ValidationError,
)
from ipool.domain.model import UNKNOWN_OWNER, AddressRequest, PoolPhase, RequestPhase

from .state import (
    FINALIZER,
    Clock,
    Effect,
    ReconcileResult,
    UpdatePool,
    UpdateRequest,
    apply_effects,
    ensure_finalizer,
    release_finalizer,
    stamp,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from ipool.domain.model import Pool
    from ipool.domain.ports import ResourceStore

log = logging.getLogger(__name__)


# Planning ---------------------------------------------------------------------


def free_addresses(pool: Pool) -> Iterator[str]:
    """Lazily yield the candidates of ``pool`` that are neither allocated nor excluded."""

    taken = set(pool.status.allocations) | set(pool.spec.exclude)
    return (address for address in iter_candidates(pool.spec) if address not in taken)


def choose_address(request: AddressRequest, pool: Pool) -> tuple[str, Pool | None]:
    """Pick the address ``request`` should hold in ``pool``.

    Returns the address and the updated pool, or ``None`` for the pool when the
    request already owns a matching allocation there. An allocation the request
    owns that no longer matches its wanted address is released in the same
    pool write that records the new one.
    """

    match pool.status.phase:
        case PoolPhase.ACTIVE:
            pass
        case PoolPhase.TERMINATING:
            raise PoolTerminatedError(pool.name)
        case _:
            raise PoolNotActiveError(pool.name)

    owner = request.key
    wanted = request.spec.wanted_address
    held = request.status.address
    if (
        held
        and pool.status.allocations.get(held) in (owner, UNKNOWN_OWNER)
        and wanted in (None, "", held)
    ):
        return held, None
    adopted = pool.status.owned_by(owner)
    if adopted is not None and wanted in (None, "", adopted):
        return adopted, None

    updated = pool.copy()
    status = updated.status
    status.release_owner(owner)
    if status.allocatable <= 0:
        raise PoolExhaustedError(pool.name)

    if wanted:
        if wanted in status.allocations:
            raise DuplicateAllocationError(pool.name, wanted)
        if wanted in pool.spec.exclude or not is_candidate(pool.spec, wanted):
            raise AddressOutOfRangeError(pool.name, wanted)
        chosen = wanted
    else:
        chosen = next(free_addresses(updated), None)
        if chosen is None:
            # capacity counts excluded and duplicated candidates
            raise PoolExhaustedError(pool.name)

    status.allocate(chosen, owner)
    return chosen, updated


def plan_allocation(
    request: AddressRequest,
    pool: Pool,
    *,
    now: datetime,
) -> ReconcileResult[AddressRequest]:
    """Plan the pool and request writes that give ``request`` an address."""

    try:
        address, updated_pool = choose_address(request, pool)
    except (AllocationError, ValidationError) as exc:
        return plan_failure(request, exc, now=now)

    effects: list[Effect] = []
    if updated_pool is not None:
        updated_pool.status.last_update = now
        effects.append(UpdatePool(updated_pool))

    desired = request.copy()
    desired.status.phase = RequestPhase.ACTIVE
    desired.status.address = address
    desired.status.pool_name = pool.name
    desired.status.reason = ""
    desired.status.observed_generation = request.meta.generation
    ensure_finalizer(desired.meta)
    state, changed = stamp(request, desired, now)
    if changed:
        effects.append(UpdateRequest(state))
    return ReconcileResult(state=state, effects=tuple(effects))


def plan_failure(
    request: AddressRequest,
    error: Exception,
    *,
    now: datetime,
) -> ReconcileResult[AddressRequest]:
    """Record ``error`` on the request.

    ``status.pool_name`` is kept: the pool it names may still record the
    request as an owner, and deallocation has to visit it.
    """

    desired = request.copy()
    desired.status.phase = RequestPhase.FAILED
    desired.status.reason = str(error)
    desired.status.address = ""
    desired.status.observed_generation = request.meta.generation
    state, changed = stamp(request, desired, now)
    return ReconcileResult(state=state, effects=(UpdateRequest(state),) if changed else ())


def plan_deallocation(
    request: AddressRequest,
    pool: Pool | None,
    *,
    now: datetime,
    release: bool = False,
) -> ReconcileResult[AddressRequest]:
    """Plan returning the request's address to ``pool``.

    With ``release`` the request's finalizer is dropped in the same write,
    which lets the store remove a deletion-requested request.
    """

    effects: list[Effect] = []
    if pool is not None:
        updated_pool = pool.copy()
        released = updated_pool.status.release_owner(request.key)
        address = request.status.address
        if address and updated_pool.status.release(address, owner=request.key):
            released.append(address)
        if released:
            updated_pool.status.last_update = now
            effects.append(UpdatePool(updated_pool))

    desired = request.copy()
    desired.status.phase = RequestPhase.TERMINATING
    desired.status.address = ""
    desired.status.pool_name = ""
    if release:
        release_finalizer(desired.meta)
    state, changed = stamp(request, desired, now)
    if changed:
        effects.append(UpdateRequest(state))
    return ReconcileResult(state=state, effects=tuple(effects))


def needs_move(request: AddressRequest) -> bool:
    """Whether the held address no longer satisfies the request spec."""

    status = request.status
    if not status.address:
        return False
    if status.pool_name and status.pool_name != request.spec.pool_name:
        return True
    wanted = request.spec.wanted_address
    return bool(wanted) and wanted != status.address


# Reconciler -------------------------------------------------------------------


class AddressReconciler:
    """Drive one address request towards its desired state."""

    def __init__(self, store: ResourceStore, *, clock: Clock = utcnow) -> None:
        self.store = store
        self._clock = clock

    def reconcile(
        self,
        request: AddressRequest,
        *,
        spec_changed: bool = False,
    ) -> AddressRequest | None:
        """Reconcile ``request``; returns the stored state, or None once removed."""

        if request.meta.deletion_requested:
            self.deallocate(request, release=True)
            return None

        spec_changed = spec_changed or request.spec_outdated
        if request.status.phase is RequestPhase.ACTIVE:
            if spec_changed and needs_move(request):
                log.info(
                    "Request %s moves from pool %s to pool %s",
                    request.key,
                    request.holding_pool,
                    request.spec.pool_name,
                )
                return self.allocate(self.deallocate(request))
            if spec_changed:
                return self.allocate(request)
            if not request.meta.has_finalizer(FINALIZER):
                updated = request.copy()
                ensure_finalizer(updated.meta)
                return self.store.requests.update(updated)
            log.debug("Request %s already up to date", request.key)
            return request

        return self.allocate(request)

    def allocate(self, request: AddressRequest) -> AddressRequest:
        """Give ``request`` an address from the pool its spec names.

        A claim left in another pool by an interrupted earlier attempt is
        released first. The finalizer and the target pool name are stored on
        the request before the pool records it as an owner, so a later
        deallocation always knows which pool to visit.
        """

        if request.status.pool_name and request.status.pool_name != request.spec.pool_name:
            request = self.deallocate(request)

        claim = request.copy()
        ensure_finalizer(claim.meta)
        claim.status.pool_name = claim.spec.pool_name
        if claim != request:
            request = self.store.requests.update(claim)

        try:
            pool = self.store.pools.get(request.spec.pool_name)
        except NotFoundError as exc:
            result = plan_failure(request, exc, now=self._clock())
        else:
            result = plan_allocation(request, pool, now=self._clock())

        stored = self._apply(request, result)
        status = stored.status
        if not result.changed:
            log.debug("Request %s already up to date", stored.key)
        elif status.phase is RequestPhase.ACTIVE:
            log.info(
                "Request %s allocated %s from pool %s",
                stored.key,
                status.address,
                status.pool_name,
            )
        else:
            log.warning("Request %s failed: %s", stored.key, status.reason)
        return stored

    def deallocate(self, request: AddressRequest, *, release: bool = False) -> AddressRequest:
        pool_name = request.holding_pool
        try:
            pool = self.store.pools.get(pool_name)
        except NotFoundError:
            log.debug("Pool %s of request %s is gone, nothing to release", pool_name, request.key)
            pool = None

        result = plan_deallocation(request, pool, now=self._clock(), release=release)
        stored = self._apply(request, result)
        if any(isinstance(effect, UpdatePool) for effect in result.effects):
            log.info("Request %s released its address to pool %s", request.key, pool_name)
        return stored

    def _apply(
        self,
        request: AddressRequest,
        result: ReconcileResult[AddressRequest],
    ) -> AddressRequest:
        stored = request
        for item in apply_effects(self.store, result.effects):
            if isinstance(item, AddressRequest):
                stored = item
        return stored
