"""
In-Memory Document Store Implementation

Keeps every collection in process memory. Used in development mode
(ENV_MODE=development) and by the test suite to:
    - Run the full order flow without a database
    - Exercise live query subscriptions deterministically

Documents are deep-copied on the way in and out, so callers never share
state with the store.
"""

import copy
import logging
from typing import Optional

from storefront.services.store.base import (
    BaseDocumentStore,
    Document,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)


class MemoryDocumentStore(BaseDocumentStore):
    """
    In-memory implementation of the document store.

    Attributes:
        denied_collections: Collections whose reads raise
            PermissionDeniedError, for exercising listener error paths

    Example:
        >>> store = MemoryDocumentStore()
        >>> product_id = await store.add("products", {"name": "Panadol", "price": 4.5})
    """

    def __init__(self, denied_collections: Optional[set[str]] = None):
        super().__init__()
        self._collections: dict[str, dict[str, dict]] = {}
        self.denied_collections = set(denied_collections or ())

        logger.info("MemoryDocumentStore initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    def _check_access(self, collection: str) -> None:
        if collection in self.denied_collections:
            raise PermissionDeniedError(
                f"Missing or insufficient permissions for '{collection}'"
            )

    async def _read(self, collection: str, document_id: str) -> Optional[dict]:
        self._check_access(collection)
        data = self._collections.get(collection, {}).get(document_id)
        return copy.deepcopy(data) if data is not None else None

    async def _read_all(self, collection: str) -> list[Document]:
        self._check_access(collection)
        return [
            Document(doc_id, copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
        ]

    async def _write(self, collection: str, document_id: str, data: dict) -> None:
        self._check_access(collection)
        self._collections.setdefault(collection, {})[document_id] = copy.deepcopy(data)

    async def _remove(self, collection: str, document_id: str) -> bool:
        self._check_access(collection)
        return self._collections.get(collection, {}).pop(document_id, None) is not None

    async def health_check(self) -> bool:
        """In-memory store is always available."""
        return True

    async def close(self) -> None:
        await super().close()
        logger.debug("MemoryDocumentStore closed")
