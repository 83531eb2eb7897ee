"""
Document Store Factory

Provides a single entry point for obtaining a document store instance.
The rest of the application stays agnostic about which backend is in use.

Usage:
    from storefront.services.store import get_document_store

    # Returns MemoryDocumentStore or SqlDocumentStore based on ENV_MODE
    store = get_document_store()

    order_id = await store.add("orders", {...})

Environment Switching:
    - ENV_MODE=development → MemoryDocumentStore (no database)
    - ENV_MODE=staging → SqlDocumentStore (DATABASE_URL)
    - ENV_MODE=production → SqlDocumentStore (DATABASE_URL)
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.store.base import (
    SERVER_TIMESTAMP,
    BaseDocumentStore,
    Document,
    DocumentChange,
    DocumentNotFoundError,
    PermissionDeniedError,
    Query,
    QueryError,
    Snapshot,
    StoreError,
    Subscription,
)
from storefront.services.store.memory import MemoryDocumentStore
from storefront.services.store.sql import SqlDocumentStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_document_store() -> BaseDocumentStore:
    """
    Get the configured document store instance.

    The instance is cached so every caller shares the same store and the
    same set of live subscriptions.

    Returns:
        BaseDocumentStore: Configured document store
    """
    settings = get_settings()

    if settings.use_real_services:
        logger.info(
            f"Document Store: Using SqlDocumentStore "
            f"({settings.env_mode.value} mode)"
        )
        return SqlDocumentStore(settings.database_url)
    else:
        logger.info("Document Store: Using MemoryDocumentStore (development mode)")
        return MemoryDocumentStore()


def reset_document_store() -> None:
    """
    Clear the cached store instance.

    The next call to get_document_store() will create a new instance.
    """
    get_document_store.cache_clear()
    logger.debug("Document store cache cleared")


__all__ = [
    "get_document_store",
    "reset_document_store",
    "BaseDocumentStore",
    "MemoryDocumentStore",
    "SqlDocumentStore",
    "Document",
    "DocumentChange",
    "Query",
    "Snapshot",
    "Subscription",
    "SERVER_TIMESTAMP",
    "StoreError",
    "DocumentNotFoundError",
    "QueryError",
    "PermissionDeniedError",
]
