"""AddressRequest resource: one allocation claim against a pool."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from ipool.domain.model.enums import RequestPhase, ResourceKind
from ipool.domain.model.meta import ObjectMeta, make_key

if TYPE_CHECKING:
    from datetime import datetime

DEFAULT_NAMESPACE = "default"


@dataclass(slots=True, kw_only=True)
class AddressRequestSpec:
    pool_name: str
    wanted_address: str | None = None
    # read by the namespace-annotation collaborator only
    update_namespace: bool = False


@dataclass(slots=True, kw_only=True)
class AddressRequestStatus:
    phase: RequestPhase | None = None
    reason: str = ""
    address: str = ""
    # pool that may record this request as an owner; written before that pool is
    pool_name: str = ""
    last_update: datetime | None = None
    observed_generation: int = 0


@dataclass(slots=True, kw_only=True)
class AddressRequest:
    KIND: ClassVar[ResourceKind] = ResourceKind.ADDRESS_REQUEST

    meta: ObjectMeta
    spec: AddressRequestSpec
    status: AddressRequestStatus = field(default_factory=AddressRequestStatus)

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def namespace(self) -> str:
        return self.meta.namespace or DEFAULT_NAMESPACE

    @property
    def key(self) -> str:
        return make_key(self.meta.name, self.namespace)

    @property
    def spec_outdated(self) -> bool:
        """Whether the spec was edited after the status last reflected it."""

        return self.status.observed_generation != self.meta.generation

    @property
    def holding_pool(self) -> str:
        """Pool that currently holds (or would hold) this request's address."""

        return self.status.pool_name or self.spec.pool_name

    def copy(self) -> AddressRequest:
        return copy.deepcopy(self)


def new_address_request(
    name: str,
    pool_name: str,
    *,
    namespace: str = DEFAULT_NAMESPACE,
    wanted_address: str | None = None,
) -> AddressRequest:
    return AddressRequest(
        meta=ObjectMeta(name=name, namespace=namespace),
        spec=AddressRequestSpec(pool_name=pool_name, wanted_address=wanted_address),
    )
