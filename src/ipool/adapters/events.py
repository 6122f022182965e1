"""Change-feed plumbing and write rules shared by the store adapters."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ipool.domain.errors import ConflictError

if TYPE_CHECKING:
    from ipool.domain.events import EventHandler, ResourceEvent
    from ipool.domain.model import Resource

log = logging.getLogger(__name__)


class EventBroadcaster:
    """Fan committed-write events out to registered handlers."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def publish(self, event: ResourceEvent) -> None:
        with self._lock:
            handlers = tuple(self._handlers)
        for handler in handlers:
            handler(event)


def check_version[T: Resource](current: T, incoming: T) -> None:
    expected = incoming.meta.resource_version
    actual = current.meta.resource_version
    if expected != actual:
        raise ConflictError(incoming.KIND, incoming.key, expected=expected, actual=actual)


def next_revision[T: Resource](current: T, incoming: T) -> T:
    """Return the object to store for a version-checked write of ``incoming``.

    The deletion flag is sticky: a writer holding a copy read before deletion
    was requested cannot clear it. The generation moves only with the spec.
    """

    check_version(current, incoming)
    stored = incoming.copy()
    stored.meta.resource_version = current.meta.resource_version + 1
    stored.meta.generation = current.meta.generation + int(incoming.spec != current.spec)
    stored.meta.deletion_requested = current.meta.deletion_requested
    return stored


def first_revision[T: Resource](item: T) -> T:
    """Return the object to store for the creation of ``item``."""

    stored = item.copy()
    stored.meta.resource_version = 1
    stored.meta.generation = 1
    stored.meta.deletion_requested = False
    return stored


def is_removable(resource: Resource) -> bool:
    return resource.meta.deletion_requested and not resource.meta.finalizers
