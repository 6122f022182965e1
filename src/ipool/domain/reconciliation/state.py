"""State helpers shared by the pool and address reconcilers.

Reconcile decisions are computed by pure ``plan_*`` functions returning a
``ReconcileResult``: the desired next state plus the ordered store writes
(effects) that realise it. The reconcilers apply the effects in order and stop
at the first failing write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final, Protocol

from ipool.domain.model import AddressRequest, Pool

if TYPE_CHECKING:
    from ipool.domain.model import ObjectMeta
    from ipool.domain.ports import ResourceStore

FINALIZER: Final[str] = "ipool.io/finalizer"


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_finalizer(meta: ObjectMeta) -> bool:
    return meta.add_finalizer(FINALIZER)


def release_finalizer(meta: ObjectMeta) -> bool:
    return meta.remove_finalizer(FINALIZER)


@dataclass(frozen=True, slots=True)
class UpdatePool:
    pool: Pool


@dataclass(frozen=True, slots=True)
class UpdateRequest:
    request: AddressRequest


type Effect = UpdatePool | UpdateRequest


@dataclass(slots=True)
class ReconcileResult[T]:
    state: T
    effects: tuple[Effect, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.effects)


def stamp[T: (Pool, AddressRequest)](current: T, desired: T, now: datetime) -> tuple[T, bool]:
    """Move ``last_update`` only when something else about ``desired`` changed."""

    desired.status.last_update = current.status.last_update
    if desired == current:
        return current, False
    desired.status.last_update = now
    return desired, True


def apply_effects(
    store: ResourceStore,
    effects: tuple[Effect, ...],
) -> list[Pool | AddressRequest]:
    """Persist ``effects`` in order, returning the stored objects."""

    stored: list[Pool | AddressRequest] = []
    for effect in effects:
        match effect:
            case UpdatePool(pool=pool):
                stored.append(store.pools.update(pool))
            case UpdateRequest(request=request):
                stored.append(store.requests.update(request))
    return stored


__all__ = [
    "FINALIZER",
    "Clock",
    "Effect",
    "ReconcileResult",
    "UpdatePool",
    "UpdateRequest",
    "apply_effects",
    "ensure_finalizer",
    "release_finalizer",
    "stamp",
    "utcnow",
]
