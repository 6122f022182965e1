"""In-process resource store with the same versioning rules as the database."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from ipool.adapters.events import (
    EventBroadcaster,
    check_version,
    first_revision,
    is_removable,
    next_revision,
)
from ipool.domain.errors import AlreadyExistsError, ConflictError, NotFoundError
from ipool.domain.events import Created, Deleted, Updated
from ipool.domain.model import AddressRequest, Pool, ResourceKind

if TYPE_CHECKING:
    from ipool.domain.events import EventHandler, ResourceEvent


class InMemoryRepository[T: (Pool, AddressRequest)]:
    """Dictionary-backed repository guarded by the store lock."""

    def __init__(
        self,
        kind: ResourceKind,
        *,
        lock: threading.RLock,
        events: EventBroadcaster,
    ) -> None:
        self.kind = kind
        self._items: dict[str, T] = {}
        self._lock = lock
        self._events = events
        self._pending_conflicts = 0

    def get(self, key: str) -> T:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                raise NotFoundError(self.kind, key)
            return item.copy()

    def list_all(self) -> list[T]:
        with self._lock:
            return [self._items[key].copy() for key in sorted(self._items)]

    def create(self, item: T) -> T:
        with self._lock:
            if item.key in self._items:
                raise AlreadyExistsError(self.kind, item.key)
            stored = first_revision(item)
            self._items[stored.key] = stored
        self._events.publish(Created(stored.copy()))
        return stored.copy()

    def update(self, item: T) -> T:
        event: ResourceEvent
        with self._lock:
            current = self._items.get(item.key)
            if current is None:
                raise NotFoundError(self.kind, item.key)
            if self._pending_conflicts:
                self._pending_conflicts -= 1
                raise ConflictError(
                    self.kind,
                    item.key,
                    expected=item.meta.resource_version,
                    actual=current.meta.resource_version,
                )
            stored = next_revision(current, item)
            if is_removable(stored):
                del self._items[stored.key]
                event = Deleted(stored.copy())
            else:
                self._items[stored.key] = stored
                event = Updated(current.copy(), stored.copy())
        self._events.publish(event)
        return stored.copy()

    def delete(self, key: str) -> None:
        event: ResourceEvent
        with self._lock:
            current = self._items.get(key)
            if current is None:
                raise NotFoundError(self.kind, key)
            if not current.meta.finalizers:
                del self._items[key]
                event = Deleted(current.copy())
            elif current.meta.deletion_requested:
                return
            else:
                marked = current.copy()
                marked.meta.deletion_requested = True
                check_version(current, marked)
                marked.meta.resource_version += 1
                self._items[key] = marked
                event = Updated(current.copy(), marked.copy())
        self._events.publish(event)

    def inject_conflicts(self, count: int = 1) -> None:
        """Make the next ``count`` updates fail with ``ConflictError``."""

        with self._lock:
            self._pending_conflicts += count


class InMemoryResourceStore:
    """Resource store kept in process memory, used by tests and dry runs."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._events = EventBroadcaster()
        self.pools: InMemoryRepository[Pool] = InMemoryRepository(
            ResourceKind.POOL, lock=self._lock, events=self._events
        )
        self.requests: InMemoryRepository[AddressRequest] = InMemoryRepository(
            ResourceKind.ADDRESS_REQUEST, lock=self._lock, events=self._events
        )

    def watch(self, handler: EventHandler) -> None:
        self._events.subscribe(handler)

    def inject_conflicts(self, kind: ResourceKind, count: int = 1) -> None:
        """Fail the next ``count`` updates of ``kind`` as if another writer won."""

        repository = self.pools if kind is ResourceKind.POOL else self.requests
        repository.inject_conflicts(count)


if TYPE_CHECKING:
    from ipool.domain.ports import ResourceStore

    _store_check: ResourceStore = InMemoryResourceStore()
