"""Partition-scoped record store primitives.

Thin helpers over the SQLAlchemy session: every read filters by partition and,
unless asked otherwise, by the soft-delete marker. Transport and storage
failures surface as BackendUnavailableError; integrity errors are left to the
caller, which is the only place that knows whether a conflict is retryable.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from assettrack.services.errors import BackendUnavailableError

T = TypeVar("T")

TRANSPORT_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


@contextmanager
def store_call(action: str) -> Iterator[None]:
    """Translate transport-level failures into BackendUnavailableError."""
    try:
        yield
    except TRANSPORT_ERRORS as exc:
        raise BackendUnavailableError(f"Record store unavailable during {action}") from exc


def _partition_value(partition: Any) -> str:
    return partition.value if hasattr(partition, "value") else str(partition)


def _active_clause(model: type, include_deleted: bool) -> list:
    if include_deleted or not hasattr(model, "deleted_at"):
        return []
    return [model.deleted_at.is_(None)]


def query_rows(
    db: Session,
    model: type[T],
    partition: Any,
    *criteria: Any,
    include_deleted: bool = False,
    order_by: Any = None,
    limit: int | None = None,
) -> list[T]:
    """Select rows of one table in one partition matching the given criteria."""
    stmt = select(model).where(
        model.partition == _partition_value(partition),
        *_active_clause(model, include_deleted),
        *criteria,
    )
    if order_by is not None:
        stmt = stmt.order_by(order_by)
    if limit is not None:
        stmt = stmt.limit(limit)
    with store_call(f"query {model.__tablename__}"):
        return list(db.execute(stmt).scalars().all())


def get_row(
    db: Session,
    model: type[T],
    partition: Any,
    row_id: UUID,
    *,
    include_deleted: bool = False,
) -> T | None:
    """Fetch a single row by id within a partition."""
    stmt = select(model).where(
        model.id == row_id,
        model.partition == _partition_value(partition),
        *_active_clause(model, include_deleted),
    )
    with store_call(f"get {model.__tablename__}"):
        return db.execute(stmt).scalar_one_or_none()


def insert_row(db: Session, model: type[T], partition: Any, **fields: Any) -> T:
    """Insert a row and flush so store-generated values are populated."""
    row = model(partition=_partition_value(partition), **fields)
    db.add(row)
    with store_call(f"insert {model.__tablename__}"):
        db.flush()
    return row


def update_row(db: Session, row: T, **fields: Any) -> T:
    """Update fields of a loaded row in place."""
    for key, value in fields.items():
        setattr(row, key, value)
    with store_call(f"update {type(row).__tablename__}"):
        db.flush()
    return row


def soft_delete_row(db: Session, row: T) -> T:
    """Set the delete marker. The row is never removed."""
    if getattr(row, "deleted_at", None) is None:
        row.deleted_at = datetime.now(timezone.utc)
    with store_call(f"soft delete {type(row).__tablename__}"):
        db.flush()
    return row


def restore_row(db: Session, row: T) -> T:
    """Clear the delete marker."""
    row.deleted_at = None
    with store_call(f"restore {type(row).__tablename__}"):
        db.flush()
    return row
