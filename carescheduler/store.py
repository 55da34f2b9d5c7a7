# File: store.py
"""Document store used by the Care Scheduler managers.

The managers only talk to the abstract `DocumentStore`: documents addressed by
(collection, id), point reads, equality/range/membership queries with
ordering, and single-document conditional writes. `async_create_if_absent`
is the only concurrency guard materialization needs.

`MemoryDocumentStore` is the bundled implementation. It keeps everything in
memory, serializes each primitive with an asyncio.Lock so check-and-write is
atomic, and can optionally mirror its contents to a JSON file so the state is
preserved across restarts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import copy
from dataclasses import dataclass
import json
import operator
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from . import const
from .exceptions import NotFoundError, PreconditionFailedError, StoreError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from .type_defs import Document


class _DeleteField:
    """Sentinel marking a field for removal in async_update()."""

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD: Final = _DeleteField()

_MISSING: Final = object()

_OPERATORS: Final[dict[str, Callable[[Any, Any], bool]]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
    "array_contains": lambda value, item: item in value,
}


@dataclass(frozen=True)
class QueryFilter:
    """One query condition: `document[field] <op> value`.

    Documents that lack the field never match.
    """

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        """Reject unknown operators early."""
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported query operator: {self.op}")

    def matches(self, document: Mapping[str, Any]) -> bool:
        """Return True if the document satisfies this condition."""
        current = document.get(self.field, _MISSING)
        if current is _MISSING:
            return False
        try:
            return bool(_OPERATORS[self.op](current, self.value))
        except TypeError:
            return False


def where(field: str, op: str, value: Any) -> QueryFilter:
    """Shorthand for QueryFilter(field, op, value)."""
    return QueryFilter(field, op, value)


class DocumentStore(ABC):
    """Abstract async document store.

    Every method returns or accepts plain dicts. Returned documents are
    copies; mutating them never changes stored data.
    """

    @abstractmethod
    async def async_get(self, collection: str, doc_id: str) -> Document | None:
        """Return a document, or None if it does not exist."""

    @abstractmethod
    async def async_query(
        self,
        collection: str,
        filters: Iterable[QueryFilter] = (),
        order_by: Sequence[str] = (),
    ) -> list[Document]:
        """Return documents matching every filter.

        Args:
            collection: Collection name
            filters: Conditions combined with AND
            order_by: Field names; prefix with "-" for descending
        """

    @abstractmethod
    async def async_create_if_absent(
        self, collection: str, doc_id: str, data: Mapping[str, Any]
    ) -> bool:
        """Atomically create a document unless the id already exists.

        Returns:
            True if created, False if a document was already there (it is
            left untouched)
        """

    @abstractmethod
    async def async_set(
        self, collection: str, doc_id: str, data: Mapping[str, Any]
    ) -> None:
        """Create or fully replace a document."""

    @abstractmethod
    async def async_update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> Document:
        """Apply top-level field changes in one write.

        A value of DELETE_FIELD removes that field.

        Raises:
            NotFoundError: If the document does not exist
            PreconditionFailedError: If any `expected` field differs
        """

    @abstractmethod
    async def async_delete(
        self,
        collection: str,
        doc_id: str,
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        """Delete a document.

        Raises:
            NotFoundError: If the document does not exist
            PreconditionFailedError: If any `expected` field differs
        """


class MemoryDocumentStore(DocumentStore):
    """In-memory DocumentStore with an optional JSON snapshot on disk."""

    def __init__(self, path: str | Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: JSON file mirroring the data; None keeps it memory-only
        """
        self._path = Path(path) if path is not None else None
        self._data: dict[str, Any] = self.get_default_structure()
        self._lock = asyncio.Lock()

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return the default structure of a fresh store."""
        return {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.STORAGE_VERSION,
            },
            "collections": {
                const.COLLECTION_TEMPLATES: {},
                const.COLLECTION_INSTANCES: {},
                const.COLLECTION_SETTINGS: {},
            },
        }

    async def async_initialize(self) -> None:
        """Load the JSON snapshot if one exists, else keep the default structure.

        Raises:
            StoreError: If the snapshot cannot be read or parsed
        """
        if self._path is None:
            const.LOGGER.debug("Memory-only document store initialized")
            return

        try:
            loaded = await asyncio.to_thread(self._read_snapshot, self._path)
        except (OSError, ValueError) as err:
            raise StoreError(translation_placeholders={"error": err}) from err

        if loaded is None:
            const.LOGGER.info("No snapshot at %s, starting empty", self._path)
            return

        data = self.get_default_structure()
        data[const.DATA_META].update(loaded.get(const.DATA_META, {}))
        for name, documents in loaded.get("collections", {}).items():
            data["collections"][name] = dict(documents)
        async with self._lock:
            self._data = data
        const.LOGGER.info(
            "Loaded snapshot %s (schema version %s)",
            self._path,
            data[const.DATA_META].get(const.DATA_META_SCHEMA_VERSION),
        )

    @staticmethod
    def _read_snapshot(path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        with path.open(encoding="utf-8") as handle:
            return json.load(handle)

    @staticmethod
    def _write_snapshot(path: Path, data: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, sort_keys=True)
        tmp_path.replace(path)

    async def _async_persist(self) -> None:
        """Mirror current data to disk. Caller holds the lock."""
        if self._path is None:
            return
        snapshot = copy.deepcopy(self._data)
        try:
            await asyncio.to_thread(self._write_snapshot, self._path, snapshot)
        except OSError as err:
            const.LOGGER.error("Failed to write snapshot %s: %s", self._path, err)
            raise StoreError(translation_placeholders={"error": err}) from err

    def _collection(self, collection: str) -> dict[str, Document]:
        return self._data["collections"].setdefault(collection, {})

    async def _async_commit(
        self, collection: str, doc_id: str, document: Document | None
    ) -> None:
        """Write (or delete, when None) one document and persist it.

        The in-memory change is rolled back if the snapshot write fails.
        Caller holds the lock.
        """
        documents = self._collection(collection)
        previous = documents.get(doc_id, _MISSING)
        if document is None:
            documents.pop(doc_id, None)
        else:
            documents[doc_id] = document
        try:
            await self._async_persist()
        except StoreError:
            if previous is _MISSING:
                documents.pop(doc_id, None)
            else:
                documents[doc_id] = previous
            raise

    @staticmethod
    def _check_expected(
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
        expected: Mapping[str, Any] | None,
    ) -> None:
        for key, value in (expected or {}).items():
            if document.get(key, _MISSING) != value:
                raise PreconditionFailedError(
                    translation_placeholders={
                        "collection": collection,
                        "entity": doc_id,
                    }
                )

    # -------------------------------------------------------------------------
    # DocumentStore API
    # -------------------------------------------------------------------------

    async def async_get(self, collection: str, doc_id: str) -> Document | None:
        """Return a copy of a document, or None."""
        async with self._lock:
            document = self._collection(collection).get(doc_id)
            return copy.deepcopy(document) if document is not None else None

    async def async_query(
        self,
        collection: str,
        filters: Iterable[QueryFilter] = (),
        order_by: Sequence[str] = (),
    ) -> list[Document]:
        """Return copies of the matching documents in the requested order."""
        conditions = list(filters)
        async with self._lock:
            results = [
                copy.deepcopy(document)
                for document in self._collection(collection).values()
                if all(condition.matches(document) for condition in conditions)
            ]

        # Stable sorts applied from the last key to the first
        for key in reversed(order_by):
            descending = key.startswith("-")
            name = key.lstrip("-")
            results.sort(
                key=lambda doc, name=name: (
                    doc.get(name) is None,
                    doc.get(name) if doc.get(name) is not None else "",
                ),
                reverse=descending,
            )
        return results

    async def async_create_if_absent(
        self, collection: str, doc_id: str, data: Mapping[str, Any]
    ) -> bool:
        """Create the document unless the id is taken."""
        async with self._lock:
            documents = self._collection(collection)
            if doc_id in documents:
                return False
            await self._async_commit(collection, doc_id, copy.deepcopy(dict(data)))
            return True

    async def async_set(
        self, collection: str, doc_id: str, data: Mapping[str, Any]
    ) -> None:
        """Create or replace the document."""
        async with self._lock:
            await self._async_commit(collection, doc_id, copy.deepcopy(dict(data)))

    async def async_update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> Document:
        """Apply changes to an existing document."""
        async with self._lock:
            documents = self._collection(collection)
            current = documents.get(doc_id)
            if current is None:
                raise NotFoundError(
                    translation_placeholders={"kind": collection, "entity": doc_id}
                )
            self._check_expected(collection, doc_id, current, expected)

            updated = copy.deepcopy(current)
            for key, value in changes.items():
                if value is DELETE_FIELD:
                    updated.pop(key, None)
                else:
                    updated[key] = copy.deepcopy(value)
            await self._async_commit(collection, doc_id, updated)
            return copy.deepcopy(updated)

    async def async_delete(
        self,
        collection: str,
        doc_id: str,
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        """Delete the document."""
        async with self._lock:
            documents = self._collection(collection)
            current = documents.get(doc_id)
            if current is None:
                raise NotFoundError(
                    translation_placeholders={"kind": collection, "entity": doc_id}
                )
            self._check_expected(collection, doc_id, current, expected)
            await self._async_commit(collection, doc_id, None)
