"""Change events emitted by resource stores after each committed write."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from ipool.domain.model import Resource


@dataclass(frozen=True, slots=True)
class Created[T]:
    resource: T


@dataclass(frozen=True, slots=True)
class Updated[T]:
    previous: T
    current: T


@dataclass(frozen=True, slots=True)
class Deleted[T]:
    resource: T


type ResourceEvent = Created[Resource] | Updated[Resource] | Deleted[Resource]
type EventHandler = Callable[[ResourceEvent], None]


def spec_changed(event: ResourceEvent) -> bool:
    """Return whether ``event`` carries a change of the resource spec."""

    match event:
        case Updated(previous=previous, current=current):
            return previous.spec != current.spec
        case _:
            return False


__all__ = ["Created", "Deleted", "EventHandler", "ResourceEvent", "Updated", "spec_changed"]
