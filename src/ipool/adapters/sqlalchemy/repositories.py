"""Version-checked repositories backed by SQLAlchemy Core statements."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError

from ipool.adapters.events import check_version, first_revision, is_removable, next_revision
from ipool.adapters.sqlalchemy.mappings import (
    address_request_table,
    pool_from_row,
    pool_table,
    pool_to_row,
    request_from_row,
    request_to_row,
)
from ipool.domain.errors import AlreadyExistsError, ConflictError, NotFoundError, TransientStoreError
from ipool.domain.events import Created, Deleted, Updated
from ipool.domain.model import DEFAULT_NAMESPACE, AddressRequest, Pool, ResourceKind, split_key

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from sqlalchemy import ColumnElement, CursorResult, Table
    from sqlalchemy.orm import Session, sessionmaker

    from ipool.adapters.events import EventBroadcaster
    from ipool.domain.events import ResourceEvent

log = logging.getLogger(__name__)


class SqlAlchemyRepository[T: (Pool, AddressRequest)](ABC):
    """Shared compare-and-swap logic; subclasses map keys and rows."""

    kind: ResourceKind
    table: Table
    key_columns: tuple[str, ...]

    def __init__(self, session_factory: sessionmaker[Session], events: EventBroadcaster) -> None:
        self.session_factory = session_factory
        self._events = events

    @abstractmethod
    def _key_clause(self, key: str) -> ColumnElement[bool]: ...

    @abstractmethod
    def _to_row(self, item: T) -> dict[str, Any]: ...

    @abstractmethod
    def _from_row(self, row: Mapping[str, Any]) -> T: ...

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        try:
            with self.session_factory.begin() as session:
                yield session
        except OperationalError as exc:
            log.warning("Database error on %s: %s", self.kind, exc)
            raise TransientStoreError(f"{self.kind} store unavailable: {exc}") from exc

    def _load(self, session: Session, key: str) -> T:
        row = session.execute(select(self.table).where(self._key_clause(key))).mappings().first()
        if row is None:
            raise NotFoundError(self.kind, key)
        return self._from_row(row)

    def get(self, key: str) -> T:
        with self._transaction() as session:
            return self._load(session, key)

    def list_all(self) -> list[T]:
        order = [self.table.c[name] for name in self.key_columns]
        with self._transaction() as session:
            rows = session.execute(select(self.table).order_by(*order)).mappings().all()
            return [self._from_row(row) for row in rows]

    def create(self, item: T) -> T:
        stored = first_revision(item)
        try:
            with self._transaction() as session:
                session.execute(insert(self.table).values(**self._to_row(stored)))
        except IntegrityError as exc:
            raise AlreadyExistsError(self.kind, item.key) from exc
        self._events.publish(Created(stored.copy()))
        return stored

    def update(self, item: T) -> T:
        event: ResourceEvent
        with self._transaction() as session:
            current = self._load(session, item.key)
            stored = next_revision(current, item)
            guard = and_(
                self._key_clause(item.key),
                self.table.c.resource_version == item.meta.resource_version,
            )
            if is_removable(stored):
                result = session.execute(delete(self.table).where(guard))
                event = Deleted(stored.copy())
            else:
                result = session.execute(
                    update(self.table).where(guard).values(**self._values(stored))
                )
                event = Updated(current, stored.copy())
            self._check_rowcount(result, item)
        self._events.publish(event)
        return stored

    def delete(self, key: str) -> None:
        event: ResourceEvent
        with self._transaction() as session:
            current = self._load(session, key)
            guard = and_(
                self._key_clause(key),
                self.table.c.resource_version == current.meta.resource_version,
            )
            if not current.meta.finalizers:
                result = session.execute(delete(self.table).where(guard))
                event = Deleted(current)
            elif current.meta.deletion_requested:
                return
            else:
                marked = current.copy()
                marked.meta.deletion_requested = True
                check_version(current, marked)
                marked.meta.resource_version += 1
                result = session.execute(
                    update(self.table).where(guard).values(**self._values(marked))
                )
                event = Updated(current, marked)
            self._check_rowcount(result, current)
        self._events.publish(event)

    def _values(self, item: T) -> dict[str, Any]:
        row = self._to_row(item)
        for name in self.key_columns:
            row.pop(name)
        return row

    def _check_rowcount(self, result: Any, item: T) -> None:
        # another writer committed between our read and our write
        if cast("CursorResult[Any]", result).rowcount == 0:
            raise ConflictError(
                self.kind, item.key, expected=item.meta.resource_version, actual=None
            )


class SqlAlchemyPoolRepository(SqlAlchemyRepository[Pool]):
    kind = ResourceKind.POOL
    table = pool_table
    key_columns = ("name",)

    def _key_clause(self, key: str) -> ColumnElement[bool]:
        return pool_table.c.name == key

    def _to_row(self, item: Pool) -> dict[str, Any]:
        return pool_to_row(item)

    def _from_row(self, row: Mapping[str, Any]) -> Pool:
        return pool_from_row(row)


class SqlAlchemyAddressRequestRepository(SqlAlchemyRepository[AddressRequest]):
    kind = ResourceKind.ADDRESS_REQUEST
    table = address_request_table
    key_columns = ("namespace", "name")

    def _key_clause(self, key: str) -> ColumnElement[bool]:
        namespace, name = split_key(key)
        return and_(
            address_request_table.c.namespace == (namespace or DEFAULT_NAMESPACE),
            address_request_table.c.name == name,
        )

    def _to_row(self, item: AddressRequest) -> dict[str, Any]:
        return request_to_row(item)

    def _from_row(self, row: Mapping[str, Any]) -> AddressRequest:
        return request_from_row(row)
