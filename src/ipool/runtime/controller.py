"""Worker pool draining one resource kind's work queue."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import TYPE_CHECKING, Protocol

from ipool.domain.errors import NotFoundError

from .queue import RateLimitingQueue

if TYPE_CHECKING:
    from ipool.config import RetryPolicy
    from ipool.domain.ports import Repository

log = logging.getLogger(__name__)


class Reconciler[T](Protocol):
    def reconcile(self, item: T, *, spec_changed: bool = False) -> T | None: ...


class Controller[T]:
    """Reconcile keys of one repository with a fixed number of worker threads.

    A key whose spec changed keeps that flag until a reconcile of it succeeds,
    so the change is not lost when events coalesce or the first attempt fails.
    """

    def __init__(
        self,
        name: str,
        repository: Repository[T],
        reconciler: Reconciler[T],
        *,
        threads: int = 1,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.name = name
        self.repository = repository
        self.reconciler = reconciler
        self.threads = threads
        self.queue = RateLimitingQueue(retry)
        self._workers: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._spec_changes: dict[str, int] = {}
        self._tokens = itertools.count(1)

    def enqueue(self, key: str, *, spec_changed: bool = False) -> None:
        if spec_changed:
            with self._lock:
                self._spec_changes[key] = next(self._tokens)
        self.queue.add(key)

    def pending_spec_change(self, key: str) -> bool:
        with self._lock:
            return key in self._spec_changes

    def process(self, key: str) -> bool:
        """Reconcile ``key`` once; returns False when it was requeued."""

        with self._lock:
            token = self._spec_changes.get(key)
        try:
            item = self.repository.get(key)
        except NotFoundError:
            log.debug("%s %s no longer exists", self.name, key)
            self._settle(key, token)
            return True
        except Exception as exc:
            self._requeue(key, exc)
            return False

        try:
            self.reconciler.reconcile(item, spec_changed=token is not None)
        except Exception as exc:
            self._requeue(key, exc)
            return False

        self._settle(key, token)
        log.debug("Successfully synced %s %s", self.name, key)
        return True

    def _settle(self, key: str, token: int | None) -> None:
        with self._lock:
            # a newer spec change arrived while this one was being handled
            if token is not None and self._spec_changes.get(key) == token:
                del self._spec_changes[key]
        self.queue.forget(key)

    def _requeue(self, key: str, exc: Exception) -> None:
        delay = self.queue.add_rate_limited(key)
        log.warning(
            "Error syncing %s %s, retrying in %.3fs: %s",
            self.name,
            key,
            delay,
            exc,
            exc_info=log.isEnabledFor(logging.DEBUG),
        )

    def process_next(self, timeout: float | None = None) -> bool:
        """Take one key from the queue and process it; False when none was ready."""

        key = self.queue.get(timeout)
        if key is None:
            return False
        try:
            self.process(key)
        finally:
            self.queue.done(key)
        return True

    def _run_worker(self) -> None:
        while (key := self.queue.get()) is not None:
            try:
                self.process(key)
            finally:
                self.queue.done(key)

    def start(self) -> None:
        if self._workers:
            raise RuntimeError(f"{self.name} controller already started")
        log.info("Starting %s controller with %d workers", self.name, self.threads)
        for index in range(self.threads):
            worker = threading.Thread(
                target=self._run_worker,
                name=f"{self.name}-worker-{index}",
                daemon=True,
            )
            worker.start()
            self._workers.append(worker)

    def stop(self, timeout: float | None = None) -> None:
        """Stop handing out keys and wait for in-flight reconciles to finish."""

        self.queue.shut_down()
        for worker in self._workers:
            worker.join(timeout)
        self._workers.clear()
        log.info("Stopped %s controller", self.name)
