"""SQLAlchemy table metadata for pools and address requests.

Resources are stored as flat rows; lists and the allocation mapping are JSON
text columns. The row <-> domain conversion lives next to the tables so the
repositories only deal with statements.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from ipool.domain.model import (
    AddressRequest,
    AddressRequestSpec,
    AddressRequestStatus,
    ObjectMeta,
    Pool,
    PoolPhase,
    PoolSpec,
    PoolStatus,
    RequestPhase,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """Ordered list of strings stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or []))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


class AllocationMapType(TypeDecorator[dict[str, str]]):
    """Address -> owner mapping stored as a JSON array of pairs.

    Pairs keep the allocation order intact on every backend.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Mapping[str, str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps([[address, owner] for address, owner in (value or {}).items()])

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, str]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return {}
        allocations: dict[str, str] = {}
        for item in cast(list[Any], loaded):
            if isinstance(item, list) and len(cast(list[Any], item)) == 2:
                address, owner = cast(list[Any], item)
                allocations[str(address)] = str(owner)
        return allocations


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

pool_table = Table(
    "pool",
    metadata,
    Column("name", String, primary_key=True),
    Column("resource_version", Integer, nullable=False),
    Column("generation", Integer, nullable=False, default=1),
    Column("finalizers", StringListType, nullable=False),
    Column("deletion_requested", Boolean, nullable=False, default=False),
    # spec
    Column("addresses", StringListType, nullable=False),
    Column("avoid_buggy", Boolean, nullable=False, default=False),
    Column("avoid_gateway", Boolean, nullable=False, default=False),
    Column("exclude", StringListType, nullable=False),
    Column("assign_to_namespace", Boolean, nullable=False, default=False),
    # status
    Column("phase", Enum(PoolPhase, native_enum=False), nullable=True),
    Column("reason", Text, nullable=False, default=""),
    Column("last_update", UTCDateTime, nullable=True),
    Column("allocations", AllocationMapType, nullable=False),
    Column("capacity", Integer, nullable=False, default=0),
    Column("allocatable", Integer, nullable=False, default=0),
    Column("observed_generation", Integer, nullable=False, default=0),
)

address_request_table = Table(
    "address_request",
    metadata,
    Column("namespace", String, primary_key=True),
    Column("name", String, primary_key=True),
    Column("resource_version", Integer, nullable=False),
    Column("generation", Integer, nullable=False, default=1),
    Column("finalizers", StringListType, nullable=False),
    Column("deletion_requested", Boolean, nullable=False, default=False),
    # spec
    Column("pool_name", String, nullable=False, index=True),
    Column("wanted_address", String, nullable=True),
    Column("update_namespace", Boolean, nullable=False, default=False),
    # status
    Column("phase", Enum(RequestPhase, native_enum=False), nullable=True),
    Column("reason", Text, nullable=False, default=""),
    Column("address", String, nullable=False, default=""),
    Column("status_pool_name", String, nullable=False, default=""),
    Column("last_update", UTCDateTime, nullable=True),
    Column("observed_generation", Integer, nullable=False, default=0),
)


def create_all_tables(engine: Engine) -> None:
    """Create all tables."""
    log.info("Creating all tables")
    metadata.create_all(engine)


# Row conversion ----------------------------------------------------------------


def pool_to_row(pool: Pool) -> dict[str, Any]:
    return {
        "name": pool.meta.name,
        "resource_version": pool.meta.resource_version,
        "generation": pool.meta.generation,
        "finalizers": list(pool.meta.finalizers),
        "deletion_requested": pool.meta.deletion_requested,
        "addresses": list(pool.spec.addresses),
        "avoid_buggy": pool.spec.avoid_buggy,
        "avoid_gateway": pool.spec.avoid_gateway,
        "exclude": list(pool.spec.exclude),
        "assign_to_namespace": pool.spec.assign_to_namespace,
        "phase": pool.status.phase,
        "reason": pool.status.reason,
        "last_update": pool.status.last_update,
        "allocations": dict(pool.status.allocations),
        "capacity": pool.status.capacity,
        "allocatable": pool.status.allocatable,
        "observed_generation": pool.status.observed_generation,
    }


def pool_from_row(row: Mapping[str, Any]) -> Pool:
    return Pool(
        meta=ObjectMeta(
            name=row["name"],
            resource_version=row["resource_version"],
            generation=row["generation"],
            finalizers=list(row["finalizers"]),
            deletion_requested=bool(row["deletion_requested"]),
        ),
        spec=PoolSpec(
            addresses=list(row["addresses"]),
            avoid_buggy=bool(row["avoid_buggy"]),
            avoid_gateway=bool(row["avoid_gateway"]),
            exclude=list(row["exclude"]),
            assign_to_namespace=bool(row["assign_to_namespace"]),
        ),
        status=PoolStatus(
            phase=row["phase"],
            reason=row["reason"],
            last_update=row["last_update"],
            allocations=dict(row["allocations"]),
            capacity=row["capacity"],
            allocatable=row["allocatable"],
            observed_generation=row["observed_generation"],
        ),
    )


def request_to_row(request: AddressRequest) -> dict[str, Any]:
    return {
        "namespace": request.namespace,
        "name": request.meta.name,
        "resource_version": request.meta.resource_version,
        "generation": request.meta.generation,
        "finalizers": list(request.meta.finalizers),
        "deletion_requested": request.meta.deletion_requested,
        "pool_name": request.spec.pool_name,
        "wanted_address": request.spec.wanted_address,
        "update_namespace": request.spec.update_namespace,
        "phase": request.status.phase,
        "reason": request.status.reason,
        "address": request.status.address,
        "status_pool_name": request.status.pool_name,
        "last_update": request.status.last_update,
        "observed_generation": request.status.observed_generation,
    }


def request_from_row(row: Mapping[str, Any]) -> AddressRequest:
    return AddressRequest(
        meta=ObjectMeta(
            name=row["name"],
            namespace=row["namespace"],
            resource_version=row["resource_version"],
            generation=row["generation"],
            finalizers=list(row["finalizers"]),
            deletion_requested=bool(row["deletion_requested"]),
        ),
        spec=AddressRequestSpec(
            pool_name=row["pool_name"],
            wanted_address=row["wanted_address"],
            update_namespace=bool(row["update_namespace"]),
        ),
        status=AddressRequestStatus(
            phase=row["phase"],
            reason=row["reason"],
            address=row["address"],
            pool_name=row["status_pool_name"],
            last_update=row["last_update"],
            observed_generation=row["observed_generation"],
        ),
    )
