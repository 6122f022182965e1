"""Public domain model surface."""

from __future__ import annotations

from ipool.domain.model.enums import PoolPhase, RequestPhase, ResourceKind
from ipool.domain.model.meta import ObjectMeta, make_key, split_key
from ipool.domain.model.pool import UNKNOWN_OWNER, Pool, PoolSpec, PoolStatus, new_pool
from ipool.domain.model.request import (
    DEFAULT_NAMESPACE,
    AddressRequest,
    AddressRequestSpec,
    AddressRequestStatus,
    new_address_request,
)

type Resource = Pool | AddressRequest

__all__ = [
    "DEFAULT_NAMESPACE",
    "UNKNOWN_OWNER",
    "AddressRequest",
    "AddressRequestSpec",
    "AddressRequestStatus",
    "ObjectMeta",
    "Pool",
    "PoolPhase",
    "PoolSpec",
    "PoolStatus",
    "RequestPhase",
    "Resource",
    "ResourceKind",
    "make_key",
    "new_address_request",
    "new_pool",
    "split_key",
]
