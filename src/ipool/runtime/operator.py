"""Operator: both controllers, the change-feed handler and periodic resync."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from ipool.config import OperatorConfig
from ipool.domain.errors import StoreError
from ipool.domain.events import Created, Deleted, Updated, spec_changed
from ipool.domain.model import AddressRequest, Pool, PoolPhase, RequestPhase
from ipool.domain.reconciliation import AddressReconciler, PoolReconciler, utcnow

from .controller import Controller

if TYPE_CHECKING:
    from ipool.domain.events import ResourceEvent
    from ipool.domain.ports import ResourceStore
    from ipool.domain.reconciliation import Clock

log = logging.getLogger(__name__)


class Operator:
    def __init__(
        self,
        store: ResourceStore,
        config: OperatorConfig | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.config = config or OperatorConfig()
        self.pool_controller: Controller[Pool] = Controller(
            "pool",
            store.pools,
            PoolReconciler(store, clock=clock),
            threads=self.config.threads,
            retry=self.config.retry,
        )
        self.request_controller: Controller[AddressRequest] = Controller(
            "address-request",
            store.requests,
            AddressReconciler(store, clock=clock),
            threads=self.config.threads,
            retry=self.config.retry,
        )
        self._stopped = threading.Event()
        self._resync_thread: threading.Thread | None = None
        store.watch(self.handle_event)

    def handle_event(self, event: ResourceEvent) -> None:
        match event:
            case Created(resource=Pool() as pool):
                self.pool_controller.enqueue(pool.key)
                self._enqueue_waiting_requests(pool)
            case Updated(previous=Pool() as previous, current=Pool() as current):
                self.pool_controller.enqueue(current.key, spec_changed=spec_changed(event))
                if _gained_room(previous, current):
                    self._enqueue_waiting_requests(current)
            case Deleted(resource=Pool() as pool):
                log.debug("Pool %s removed", pool.name)
            case Created(resource=AddressRequest() as request):
                self.request_controller.enqueue(request.key)
            case Updated(current=AddressRequest() as request):
                self.request_controller.enqueue(request.key, spec_changed=spec_changed(event))
            case Deleted(resource=AddressRequest() as request):
                log.debug("Request %s removed", request.key)
            case _:
                log.warning("Ignoring unexpected event %r", event)

    def _enqueue_waiting_requests(self, pool: Pool) -> None:
        """Queue requests for ``pool`` that are not holding an address yet."""

        if pool.status.phase is not PoolPhase.ACTIVE:
            return
        for request in self.store.requests.list_all():
            if request.spec.pool_name != pool.name:
                continue
            if request.status.phase is not RequestPhase.ACTIVE:
                self.request_controller.enqueue(request.key)

    def resync(self) -> None:
        """Queue every stored object; retries anything stuck in a failed state.

        Objects whose spec generation is ahead of their status are flagged as
        changed, which covers edits made by other processes or while the
        operator was stopped.
        """

        try:
            pools = self.store.pools.list_all()
            requests = self.store.requests.list_all()
        except StoreError as exc:
            log.warning("Resync failed, will retry next period: %s", exc)
            return
        for pool in pools:
            self.pool_controller.enqueue(pool.key, spec_changed=pool.spec_outdated)
        for request in requests:
            self.request_controller.enqueue(request.key, spec_changed=request.spec_outdated)
        log.debug("Resynced %d pools and %d requests", len(pools), len(requests))

    def _resync_loop(self) -> None:
        while not self._stopped.wait(self.config.resync_seconds):
            self.resync()

    def run(self) -> None:
        """Start workers and the resync timer; returns immediately."""

        log.info(
            "Starting operator (threads=%d, resync=%ss)",
            self.config.threads,
            self.config.resync_seconds,
        )
        self._stopped.clear()
        self.resync()
        self.pool_controller.start()
        self.request_controller.start()
        self._resync_thread = threading.Thread(
            target=self._resync_loop, name="resync", daemon=True
        )
        self._resync_thread.start()

    def stop(self, timeout: float | None = None) -> None:
        log.info("Stopping operator")
        self._stopped.set()
        self.pool_controller.stop(timeout)
        self.request_controller.stop(timeout)
        if self._resync_thread is not None:
            self._resync_thread.join(timeout)
            self._resync_thread = None

    def wait_idle(self, timeout: float = 5.0, *, poll: float = 0.01) -> bool:
        """Block until both queues are drained; False on timeout."""

        deadline = time.monotonic() + timeout
        settled = False
        while time.monotonic() < deadline:
            idle = self._idle()
            # one controller can refill the other right after a check
            if idle and settled:
                return True
            settled = idle
            time.sleep(poll)
        return False

    def _idle(self) -> bool:
        return self.pool_controller.queue.is_idle() and self.request_controller.queue.is_idle()


def _gained_room(previous: Pool, current: Pool) -> bool:
    if current.status.phase is not PoolPhase.ACTIVE:
        return False
    return (
        previous.status.phase is not PoolPhase.ACTIVE
        or current.status.allocatable > previous.status.allocatable
        or previous.spec != current.spec
    )
