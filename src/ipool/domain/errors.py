"""Error hierarchy shared by the domain, the store adapters and the driver."""

from __future__ import annotations


class IpoolError(Exception):
    """Base class for all ipool errors."""


class ValidationError(IpoolError, ValueError):
    """Raised when an address specification or address is malformed."""

    def __init__(self, spec: str, message: str) -> None:
        super().__init__(message)
        self.spec = spec


# Store errors -----------------------------------------------------------------


class StoreError(IpoolError):
    """Raised by resource store adapters."""


class NotFoundError(StoreError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f'{kind} "{key}" not found')
        self.kind = kind
        self.key = key


class AlreadyExistsError(StoreError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f'{kind} "{key}" already exists')
        self.kind = kind
        self.key = key


class TransientStoreError(StoreError):
    """A failure that goes away by retrying the same key (transport, locking)."""


class ConflictError(TransientStoreError):
    """Optimistic-concurrency rejection: the write was based on a stale version."""

    def __init__(self, kind: str, key: str, *, expected: int, actual: int | None) -> None:
        super().__init__(
            f'{kind} "{key}" was modified concurrently '
            f"(read version {expected}, stored version {actual})"
        )
        self.kind = kind
        self.key = key
        self.expected = expected
        self.actual = actual


# Allocation outcomes ----------------------------------------------------------


class AllocationError(IpoolError):
    """A request cannot be satisfied by its pool; recorded as the request reason."""

    reason = "allocation failed"

    def __init__(self, pool_name: str, detail: str) -> None:
        super().__init__(f"{self.reason}: {detail}")
        self.pool_name = pool_name


class PoolExhaustedError(AllocationError):
    reason = "pool exhausted"

    def __init__(self, pool_name: str) -> None:
        super().__init__(pool_name, f'pool "{pool_name}" has no allocatable addresses')


class PoolTerminatedError(AllocationError):
    reason = "pool terminated"

    def __init__(self, pool_name: str) -> None:
        super().__init__(pool_name, f'pool "{pool_name}" is being deleted')


class PoolNotActiveError(AllocationError):
    reason = "pool not active"

    def __init__(self, pool_name: str) -> None:
        super().__init__(pool_name, f'pool "{pool_name}" is not ready for allocation')


class DuplicateAllocationError(AllocationError):
    reason = "duplicate allocation"

    def __init__(self, pool_name: str, address: str) -> None:
        super().__init__(
            pool_name, f'address {address} is already allocated from pool "{pool_name}"'
        )
        self.address = address


class AddressOutOfRangeError(AllocationError):
    reason = "address out of range"

    def __init__(self, pool_name: str, address: str) -> None:
        super().__init__(
            pool_name, f'address {address} is not allocatable from pool "{pool_name}"'
        )
        self.address = address
