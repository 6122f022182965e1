"""Object metadata shared by every stored resource."""

from __future__ import annotations

from dataclasses import dataclass, field


def make_key(name: str, namespace: str | None = None) -> str:
    """Return the store key: ``name`` or ``namespace/name``."""

    if namespace is None:
        return name
    return f"{namespace}/{name}"


def split_key(key: str) -> tuple[str | None, str]:
    """Split a store key into ``(namespace, name)``."""

    namespace, sep, name = key.partition("/")
    if not sep:
        return None, key
    if not namespace or not name:
        raise ValueError(f"invalid resource key: {key!r}")
    return namespace, name


@dataclass(slots=True, kw_only=True)
class ObjectMeta:
    """Identity, version and deletion state of a stored resource.

    ``resource_version`` is owned by the store: it is bumped on every committed
    write and a write carrying a stale value is rejected. ``deletion_requested``
    is the soft-delete flag; the store removes the object once it is set and
    ``finalizers`` is empty.

    ``generation`` is also owned by the store. It starts at 1 and is bumped
    only by writes that change the spec, so a reconciler compares it with the
    ``observed_generation`` it recorded in the status to see spec edits made
    while nobody was watching.
    """

    name: str
    namespace: str | None = None
    resource_version: int = 0
    generation: int = 0
    finalizers: list[str] = field(default_factory=list[str])
    deletion_requested: bool = False

    @property
    def key(self) -> str:
        return make_key(self.name, self.namespace)

    def has_finalizer(self, token: str) -> bool:
        return token in self.finalizers

    def add_finalizer(self, token: str) -> bool:
        if token in self.finalizers:
            return False
        self.finalizers.append(token)
        return True

    def remove_finalizer(self, token: str) -> bool:
        if token not in self.finalizers:
            return False
        self.finalizers = [item for item in self.finalizers if item != token]
        return True
