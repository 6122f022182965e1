"""Pool resource: a reservable address range and its allocation state."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from ipool.domain.model.enums import PoolPhase, ResourceKind
from ipool.domain.model.meta import ObjectMeta

if TYPE_CHECKING:
    from datetime import datetime

# owner recorded for allocations whose request is not known
UNKNOWN_OWNER = ""


@dataclass(slots=True, kw_only=True)
class PoolSpec:
    addresses: list[str] = field(default_factory=list[str])
    avoid_buggy: bool = False
    avoid_gateway: bool = False
    exclude: list[str] = field(default_factory=list[str])
    # read by the namespace-assignment collaborator only
    assign_to_namespace: bool = False


@dataclass(slots=True, kw_only=True)
class PoolStatus:
    """Observed state of a pool.

    ``allocations`` maps each allocated address to the key of the request that
    owns it, in allocation order. It is the single source of truth for address
    ownership.
    """

    phase: PoolPhase | None = None
    reason: str = ""
    last_update: datetime | None = None
    allocations: dict[str, str] = field(default_factory=dict[str, str])
    capacity: int = 0
    allocatable: int = 0
    # meta.generation whose spec produced capacity
    observed_generation: int = 0

    @property
    def allocated(self) -> list[str]:
        return list(self.allocations)

    def recompute(self) -> None:
        self.allocatable = self.capacity - len(self.allocations)

    def owned_by(self, owner: str) -> str | None:
        """Return the first address held by ``owner``."""

        for address, holder in self.allocations.items():
            if holder == owner:
                return address
        return None

    def allocate(self, address: str, owner: str) -> None:
        self.allocations[address] = owner
        self.recompute()

    def release(self, address: str, *, owner: str | None = None) -> bool:
        """Drop ``address`` unless it belongs to somebody other than ``owner``."""

        holder = self.allocations.get(address)
        if holder is None:
            return False
        if owner is not None and holder not in (owner, UNKNOWN_OWNER):
            return False
        del self.allocations[address]
        self.recompute()
        return True

    def release_owner(self, owner: str) -> list[str]:
        released = [address for address, holder in self.allocations.items() if holder == owner]
        for address in released:
            del self.allocations[address]
        if released:
            self.recompute()
        return released


@dataclass(slots=True, kw_only=True)
class Pool:
    KIND: ClassVar[ResourceKind] = ResourceKind.POOL

    meta: ObjectMeta
    spec: PoolSpec = field(default_factory=PoolSpec)
    status: PoolStatus = field(default_factory=PoolStatus)

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def key(self) -> str:
        return self.meta.key

    @property
    def spec_outdated(self) -> bool:
        """Whether the spec was edited after the status last reflected it."""

        return self.status.observed_generation != self.meta.generation

    def copy(self) -> Pool:
        return copy.deepcopy(self)


def new_pool(name: str, spec: PoolSpec | None = None) -> Pool:
    return Pool(meta=ObjectMeta(name=name), spec=spec or PoolSpec())
