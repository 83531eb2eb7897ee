"""
Document Store Abstract Base Class

Defines the interface contract for all document store implementations.
Both MemoryDocumentStore and SqlDocumentStore implement a handful of
storage primitives; everything else (ids, server timestamps, query
evaluation and live query subscriptions) lives here so the two backends
behave identically.

Collections hold schemaless documents keyed by a string id. The id is
never part of the stored data.
"""

import copy
import inspect
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class StoreError(Exception):
    """Base error for document store failures."""

    code = "unknown"


class DocumentNotFoundError(StoreError):
    """Raised when updating a document that does not exist."""

    code = "not-found"

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"No document to update: {collection}/{document_id}")


class QueryError(StoreError):
    """Raised when a query cannot be evaluated (bad operator, unorderable field)."""

    code = "failed-precondition"


class PermissionDeniedError(StoreError):
    """Raised by backends that refuse access to a collection."""

    code = "permission-denied"


# =============================================================================
# VALUE TYPES
# =============================================================================

class _ServerTimestamp:
    """Sentinel replaced with the store's clock at write time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __deepcopy__(self, memo):
        return self


SERVER_TIMESTAMP = _ServerTimestamp()

OPERATORS = ("==", "!=", "in")


@dataclass
class Document:
    """A document read from a collection."""
    id: str
    data: dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Flatten into ``{"id": ..., **data}``."""
        return {"id": self.id, **self.data}


@dataclass(frozen=True)
class Query:
    """
    A collection query.

    Attributes:
        collection: Collection name
        where: Filters as ``(field, operator, value)`` tuples
        order_by: Field to sort on; documents missing it are excluded
        descending: Sort direction
        limit: Maximum number of documents returned
    """
    collection: str
    where: tuple = ()
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    @property
    def is_sorted(self) -> bool:
        return self.order_by is not None

    def without_sort(self) -> "Query":
        return replace(self, order_by=None, descending=False)


@dataclass
class DocumentChange:
    type: str  # added, modified, removed
    document: Document


@dataclass
class Snapshot:
    """Full result set of a live query plus the changes since the last one."""
    query: Query
    documents: list[Document] = field(default_factory=list)
    changes: list[DocumentChange] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.documents)

    def added(self) -> list[Document]:
        return [c.document for c in self.changes if c.type == "added"]


SnapshotCallback = Callable[[Snapshot], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[StoreError], Union[None, Awaitable[None]]]


def apply_query(documents: list[Document], query: Query) -> list[Document]:
    """
    Evaluate filters, ordering and limit over a collection's documents.

    Raises:
        QueryError: Unknown operator, or values of the sort field that
            cannot be compared with each other
    """
    results = [doc for doc in documents if _matches_all(doc, query.where)]

    if query.order_by:
        key = query.order_by
        results = [doc for doc in results if doc.data.get(key) is not None]
        try:
            results.sort(key=lambda doc: doc.data[key], reverse=query.descending)
        except TypeError as e:
            raise QueryError(
                f"Cannot order '{query.collection}' by '{key}': {e}"
            ) from e

    if query.limit is not None:
        results = results[:query.limit]

    return results


def _matches_all(doc: Document, filters: tuple) -> bool:
    for field_name, op, value in filters:
        actual = doc.data.get(field_name)
        if op == "==":
            matched = actual == value
        elif op == "!=":
            matched = actual != value
        elif op == "in":
            matched = actual in value
        else:
            raise QueryError(f"Unsupported operator '{op}'. Options: {list(OPERATORS)}")
        if not matched:
            return False
    return True


def _resolve_timestamps(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_timestamps(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_timestamps(v, now) for v in value]
    return value


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

class Subscription:
    """
    A live query subscription.

    Pushes the full result set to ``on_snapshot`` on creation and after
    every write to the queried collection. A failed evaluation is passed
    to ``on_error`` and closes the subscription.
    """

    def __init__(
        self,
        store: "BaseDocumentStore",
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.store = store
        self.query = query
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True
        self._previous: dict[str, dict] = {}

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._detach(self)

    async def _refresh(self) -> None:
        if not self.active:
            return

        try:
            documents = await self.store.query_documents(self.query)
        except StoreError as e:
            self.unsubscribe()
            if self.on_error is None:
                logger.error(f"Listener on '{self.query.collection}' failed: {e}")
                return
            await _call(self.on_error, e)
            return

        current = {doc.id: doc.data for doc in documents}
        changes = []
        for doc in documents:
            if doc.id not in self._previous:
                changes.append(DocumentChange("added", doc))
            elif self._previous[doc.id] != doc.data:
                changes.append(DocumentChange("modified", doc))
        for doc_id, data in self._previous.items():
            if doc_id not in current:
                changes.append(DocumentChange("removed", Document(doc_id, data)))
        self._previous = current

        await _call(
            self.on_snapshot,
            Snapshot(query=self.query, documents=documents, changes=changes),
        )


async def _call(callback: Callable, arg: Any) -> None:
    result = callback(arg)
    if inspect.isawaitable(result):
        await result


# =============================================================================
# STORE
# =============================================================================

class BaseDocumentStore(ABC):
    """
    Abstract base class for document stores.

    Subclasses implement the storage primitives (``_read``, ``_read_all``,
    ``_write``, ``_remove``); writes made through the public methods
    notify live subscriptions on the affected collection.

    Example:
        >>> store = get_document_store()
        >>> order_id = await store.add("orders", {"total": 12.5, "timestamp": SERVER_TIMESTAMP})
        >>> doc = await store.get("orders", order_id)
    """

    def __init__(self):
        self._subscriptions: list[Subscription] = []

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name (e.g., "memory", "sql")."""
        pass

    # -------------------------------------------------------------------------
    # Storage primitives
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _read(self, collection: str, document_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    async def _read_all(self, collection: str) -> list[Document]:
        pass

    @abstractmethod
    async def _write(self, collection: str, document_id: str, data: dict) -> None:
        pass

    @abstractmethod
    async def _remove(self, collection: str, document_id: str) -> bool:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify the backend is reachable."""
        pass

    async def close(self) -> None:
        """Release backend resources and drop all subscriptions."""
        for sub in list(self._subscriptions):
            sub.unsubscribe()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex[:20]

    async def add(self, collection: str, data: dict) -> str:
        """Create a document with a generated id and return the id."""
        document_id = self.new_id()
        await self.set(collection, document_id, data)
        return document_id

    async def set(self, collection: str, document_id: str, data: dict) -> None:
        """Create or overwrite a document."""
        body = self._prepare(data)
        await self._write(collection, document_id, body)
        logger.debug(f"Wrote {collection}/{document_id}")
        await self._notify(collection)

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        data = await self._read(collection, document_id)
        if data is None:
            return None
        return Document(document_id, data)

    async def update(self, collection: str, document_id: str, fields: dict) -> None:
        """
        Merge fields into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        current = await self._read(collection, document_id)
        if current is None:
            raise DocumentNotFoundError(collection, document_id)
        current.update(self._prepare(fields))
        await self._write(collection, document_id, current)
        logger.debug(f"Updated {collection}/{document_id}: {sorted(fields)}")
        await self._notify(collection)

    async def delete(self, collection: str, document_id: str) -> None:
        """Delete a document; deleting a missing document is not an error."""
        if await self._remove(collection, document_id):
            logger.debug(f"Deleted {collection}/{document_id}")
            await self._notify(collection)

    async def query(
        self,
        collection: str,
        where: Optional[list] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        return await self.query_documents(
            Query(
                collection=collection,
                where=tuple(where or ()),
                order_by=order_by,
                descending=descending,
                limit=limit,
            )
        )

    async def query_documents(self, query: Query) -> list[Document]:
        documents = await self._read_all(query.collection)
        return apply_query(documents, query)

    async def listen(
        self,
        query: Union[Query, str],
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Subscribe to a live query.

        The first snapshot is delivered before this returns.
        """
        if isinstance(query, str):
            query = Query(collection=query)
        sub = Subscription(self, query, on_snapshot, on_error)
        self._subscriptions.append(sub)
        await sub._refresh()
        return sub

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _prepare(self, data: dict) -> dict:
        body = {k: v for k, v in data.items() if k != "id"}
        return copy.deepcopy(_resolve_timestamps(body, datetime.now(timezone.utc)))

    def _detach(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    async def _notify(self, collection: str) -> None:
        for sub in list(self._subscriptions):
            if sub.query.collection != collection:
                continue
            try:
                await sub._refresh()
            except Exception as e:
                # A broken listener must not fail the write that triggered it
                logger.exception(f"Snapshot listener on '{collection}' raised: {e}")
