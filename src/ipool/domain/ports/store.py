"""Ports for the resource store consumed by the reconcilers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ipool.domain.model import AddressRequest, Pool

if TYPE_CHECKING:
    from ipool.domain.events import EventHandler


@runtime_checkable
class Repository[T](Protocol):
    """Versioned store of one resource kind.

    Every method returns copies; mutating a returned object has no effect until
    it is passed back to ``update``.
    """

    def get(self, key: str) -> T:
        """Return the stored object or raise ``NotFoundError``."""
        ...

    def list_all(self) -> list[T]: ...

    def create(self, item: T) -> T:
        """Insert a new object or raise ``AlreadyExistsError``."""
        ...

    def update(self, item: T) -> T:
        """Compare-and-swap write.

        Raises ``ConflictError`` when ``item.meta.resource_version`` differs from
        the stored version. A deletion-requested object left without finalizers
        is removed instead of stored.
        """
        ...

    def delete(self, key: str) -> None:
        """Mark the object for deletion, or remove it when it has no finalizers."""
        ...


@runtime_checkable
class PoolRepository(Repository[Pool], Protocol):
    """Repository contract for pools (keyed by name)."""


@runtime_checkable
class AddressRequestRepository(Repository[AddressRequest], Protocol):
    """Repository contract for address requests (keyed by ``namespace/name``)."""


@runtime_checkable
class ResourceStore(Protocol):
    """Both repositories plus the change feed."""

    @property
    def pools(self) -> PoolRepository: ...

    @property
    def requests(self) -> AddressRequestRepository: ...

    def watch(self, handler: EventHandler) -> None: ...
