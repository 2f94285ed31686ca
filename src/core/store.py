"""Document store over SQLAlchemy.

The domain services talk to storage only through :class:`DocumentStore`:
get / query / set / update / delete and an all-or-nothing batch commit.
:class:`SqlDocumentStore` keeps each document as one JSON row of the
``document`` table and turns every row change into a compare-and-set on its
``version`` column, so a batch built from stale reads fails instead of
overwriting a concurrent commit.
"""
from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import (
    ConcurrentModificationError,
    DatabaseError,
    InvalidArgumentError,
    NotFoundError,
)
from core.logging_config import get_logger
from core.models import DocumentRecord
from core.utils import generate_document_id, union_preserving_order, utcnow_iso

LOGGER = get_logger(__name__)

CollectionName = Union[str, enum.Enum]
Filter = Tuple[str, str, Any]

FILTER_OPERATORS = ("==", "in", "array-contains")


# =============================================================================
# Field transforms
# =============================================================================


class ArrayUnion:
    """Append values to a list field, skipping ones already present."""

    def __init__(self, *values: Any) -> None:
        self.values = list(values)

    def __repr__(self) -> str:
        return f"ArrayUnion({self.values!r})"


class ArrayRemove:
    """Drop every occurrence of the given values from a list field."""

    def __init__(self, *values: Any) -> None:
        self.values = list(values)

    def __repr__(self) -> str:
        return f"ArrayRemove({self.values!r})"


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


class _DeleteField:
    def __repr__(self) -> str:
        return "DELETE_FIELD"


SERVER_TIMESTAMP = _ServerTimestamp()
DELETE_FIELD = _DeleteField()


def apply_fields(current: Dict[str, Any], changes: Dict[str, Any], now_iso: str) -> Dict[str, Any]:
    """Return a copy of ``current`` with top-level ``changes`` and transforms applied."""
    result = copy.deepcopy(current)
    for key, value in changes.items():
        if value is DELETE_FIELD:
            result.pop(key, None)
        elif value is SERVER_TIMESTAMP:
            result[key] = now_iso
        elif isinstance(value, ArrayUnion):
            result[key] = union_preserving_order(result.get(key) or [], value.values)
        elif isinstance(value, ArrayRemove):
            result[key] = [item for item in result.get(key) or [] if item not in value.values]
        else:
            result[key] = copy.deepcopy(value)
    return result


def matches_filters(data: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    """Evaluate equality / membership filters against one document."""
    for field_name, op, value in filters:
        actual = data.get(field_name)
        if op == "==":
            if actual != value:
                return False
        elif op == "in":
            if actual not in value:
                return False
        elif op == "array-contains":
            if not isinstance(actual, list) or value not in actual:
                return False
        else:
            raise InvalidArgumentError(f"Unsupported filter operator: {op!r}")
    return True


def collection_name(collection: CollectionName) -> str:
    if isinstance(collection, enum.Enum):
        return str(collection.value)
    return collection


# =============================================================================
# Snapshots and writes
# =============================================================================


@dataclass(frozen=True)
class Snapshot:
    """A document as read from the store, with the version it was read at."""

    collection: str
    id: str
    data: Dict[str, Any]
    version: int

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.data}


class WriteOp(str, enum.Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Write:
    """
    One write in an atomic batch.

    ``expected_version`` pins the version the caller last read; 0 means the
    document must not exist yet.
    """

    op: WriteOp
    collection: str
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    expected_version: Optional[int] = None

    @classmethod
    def set(
        cls,
        collection: CollectionName,
        doc_id: str,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> "Write":
        return cls(WriteOp.SET, collection_name(collection), doc_id, dict(data), expected_version)

    @classmethod
    def update(
        cls,
        collection: CollectionName,
        doc_id: str,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> "Write":
        return cls(WriteOp.UPDATE, collection_name(collection), doc_id, dict(data), expected_version)

    @classmethod
    def delete(
        cls,
        collection: CollectionName,
        doc_id: str,
        expected_version: Optional[int] = None,
    ) -> "Write":
        return cls(WriteOp.DELETE, collection_name(collection), doc_id, {}, expected_version)


class DocumentStore(Protocol):
    """Storage interface the domain services depend on."""

    def new_id(self) -> str: ...

    def get(self, collection: CollectionName, doc_id: str) -> Optional[Snapshot]: ...

    def query(self, collection: CollectionName, filters: Sequence[Filter] = ()) -> List[Snapshot]: ...

    def set(self, collection: CollectionName, doc_id: str, data: Dict[str, Any]) -> None: ...

    def update(self, collection: CollectionName, doc_id: str, data: Dict[str, Any]) -> None: ...

    def delete(self, collection: CollectionName, doc_id: str) -> None: ...

    def run_atomic_batch(self, writes: Sequence[Write]) -> None: ...


# =============================================================================
# SQLAlchemy implementation
# =============================================================================


def _to_snapshot(record: DocumentRecord) -> Snapshot:
    return Snapshot(
        collection=record.collection,
        id=record.doc_id,
        data=copy.deepcopy(record.data or {}),
        version=record.version,
    )


class SqlDocumentStore:
    """Document store backed by the ``document`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def new_id(self) -> str:
        return generate_document_id()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, collection: CollectionName, doc_id: str) -> Optional[Snapshot]:
        name = collection_name(collection)
        try:
            with self._session_factory() as session:
                record = self._load(session, name, doc_id)
                return _to_snapshot(record) if record is not None else None
        except SQLAlchemyError as e:
            LOGGER.exception(f"Document read failed: {name}/{doc_id}")
            raise DatabaseError("Document store read failed.") from e

    def query(self, collection: CollectionName, filters: Sequence[Filter] = ()) -> List[Snapshot]:
        for _, op, _ in filters:
            if op not in FILTER_OPERATORS:
                raise InvalidArgumentError(f"Unsupported filter operator: {op!r}")

        name = collection_name(collection)
        try:
            with self._session_factory() as session:
                records = session.execute(
                    select(DocumentRecord)
                    .where(DocumentRecord.collection == name)
                    .order_by(DocumentRecord.id)
                ).scalars().all()
                return [
                    _to_snapshot(record)
                    for record in records
                    if matches_filters(record.data or {}, filters)
                ]
        except SQLAlchemyError as e:
            LOGGER.exception(f"Document query failed: {name}")
            raise DatabaseError("Document store query failed.") from e

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set(self, collection: CollectionName, doc_id: str, data: Dict[str, Any]) -> None:
        self.run_atomic_batch([Write.set(collection, doc_id, data)])

    def update(self, collection: CollectionName, doc_id: str, data: Dict[str, Any]) -> None:
        self.run_atomic_batch([Write.update(collection, doc_id, data)])

    def delete(self, collection: CollectionName, doc_id: str) -> None:
        self.run_atomic_batch([Write.delete(collection, doc_id)])

    def run_atomic_batch(self, writes: Sequence[Write]) -> None:
        """
        Apply every write in one transaction.

        Any failed precondition, missing update target or lost
        compare-and-set rolls the whole batch back.
        """
        if not writes:
            return

        now_iso = utcnow_iso()
        try:
            with self._session_factory() as session, session.begin():
                for write in writes:
                    self._apply(session, write, now_iso)
        except IntegrityError as e:
            raise ConcurrentModificationError(
                "A document in this batch was created concurrently."
            ) from e
        except SQLAlchemyError as e:
            LOGGER.exception("Atomic batch failed", extra={"extra_data": {"writes": len(writes)}})
            raise DatabaseError("Document store write failed.") from e

        LOGGER.debug(
            f"Committed batch of {len(writes)} write(s)",
            extra={"extra_data": {"targets": [f"{w.collection}/{w.doc_id}" for w in writes]}},
        )

    @staticmethod
    def _load(session: Session, name: str, doc_id: str) -> Optional[DocumentRecord]:
        return session.execute(
            select(DocumentRecord)
            .where(DocumentRecord.collection == name, DocumentRecord.doc_id == doc_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _apply(self, session: Session, write: Write, now_iso: str) -> None:
        record = self._load(session, write.collection, write.doc_id)
        current_version = record.version if record is not None else 0

        if write.expected_version is not None and write.expected_version != current_version:
            raise ConcurrentModificationError(
                f"{write.collection}/{write.doc_id} changed since it was read "
                f"(expected version {write.expected_version}, found {current_version})."
            )

        if write.op is WriteOp.DELETE:
            if record is None:
                return
            result = session.execute(
                delete(DocumentRecord).where(
                    DocumentRecord.id == record.id,
                    DocumentRecord.version == current_version,
                )
            )
            self._check_swapped(result.rowcount, write)
            return

        if write.op is WriteOp.UPDATE and record is None:
            raise NotFoundError(f"No document to update: {write.collection}/{write.doc_id}")

        base = record.data if (record is not None and write.op is WriteOp.UPDATE) else {}
        new_data = apply_fields(base or {}, write.data, now_iso)

        if record is None:
            session.add(
                DocumentRecord(
                    collection=write.collection,
                    doc_id=write.doc_id,
                    data=new_data,
                    version=1,
                )
            )
            session.flush()
            return

        result = session.execute(
            update(DocumentRecord)
            .where(
                DocumentRecord.id == record.id,
                DocumentRecord.version == current_version,
            )
            .values(data=new_data, version=current_version + 1)
        )
        self._check_swapped(result.rowcount, write)

    @staticmethod
    def _check_swapped(rowcount: int, write: Write) -> None:
        if rowcount != 1:
            raise ConcurrentModificationError(
                f"{write.collection}/{write.doc_id} was modified by another writer."
            )


__all__ = [
    "ArrayUnion",
    "ArrayRemove",
    "SERVER_TIMESTAMP",
    "DELETE_FIELD",
    "Filter",
    "Snapshot",
    "Write",
    "WriteOp",
    "DocumentStore",
    "SqlDocumentStore",
    "apply_fields",
    "matches_filters",
    "collection_name",
]
