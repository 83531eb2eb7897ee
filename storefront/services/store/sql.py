"""
SQL Document Store Implementation

Persists documents through SQLAlchemy's async engine into the single
``documents`` table (see storefront.models.DocumentRecord). Used in
staging and production (ENV_MODE=staging|production).

Behavior:
    - Tables are created on first use
    - Datetimes are tagged inside the JSON body and restored on read
    - Database failures surface as StoreError so listeners can react
"""

import logging
from datetime import datetime
from functools import wraps
from typing import Any, Optional

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError

from storefront.database import build_engine, build_session_maker, init_db
from storefront.models import DocumentRecord
from storefront.services.store.base import BaseDocumentStore, Document, StoreError

logger = logging.getLogger(__name__)

DATETIME_TAG = "$date"


def encode_value(value: Any) -> Any:
    """Make a document body JSON-safe."""
    if isinstance(value, datetime):
        return {DATETIME_TAG: value.isoformat()}
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {DATETIME_TAG}:
            return datetime.fromisoformat(value[DATETIME_TAG])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def _wrap_db_errors(func):
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            await self._ensure_schema()
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Database error in {func.__name__}: {e}")
            raise StoreError(str(e)) from e
    return wrapper


class SqlDocumentStore(BaseDocumentStore):
    """
    SQLAlchemy-backed document store.

    Example:
        >>> store = SqlDocumentStore("postgresql+psycopg://user:pw@localhost/storefront")
        >>> await store.add("tickets", {"subject": "Late order", "status": "open"})
    """

    def __init__(self, database_url: Optional[str] = None):
        super().__init__()
        self.engine = build_engine(database_url)
        self.session_maker = build_session_maker(self.engine)
        self._schema_ready = False

        logger.info(f"SqlDocumentStore initialized ({self.engine.url.drivername})")

    @property
    def provider_name(self) -> str:
        return "sql"

    async def _ensure_schema(self) -> None:
        if not self._schema_ready:
            await init_db(self.engine)
            self._schema_ready = True

    @_wrap_db_errors
    async def _read(self, collection: str, document_id: str) -> Optional[dict]:
        async with self.session_maker() as session:
            record = await session.get(DocumentRecord, (collection, document_id))
            if record is None:
                return None
            return decode_value(record.data)

    @_wrap_db_errors
    async def _read_all(self, collection: str) -> list[Document]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(DocumentRecord)
                .where(DocumentRecord.collection == collection)
                .order_by(DocumentRecord.created_at)
            )
            return [
                Document(record.id, decode_value(record.data))
                for record in result.scalars().all()
            ]

    @_wrap_db_errors
    async def _write(self, collection: str, document_id: str, data: dict) -> None:
        async with self.session_maker() as session:
            record = await session.get(DocumentRecord, (collection, document_id))
            if record is None:
                session.add(
                    DocumentRecord(
                        collection=collection,
                        id=document_id,
                        data=encode_value(data),
                    )
                )
            else:
                record.data = encode_value(data)
            await session.commit()

    @_wrap_db_errors
    async def _remove(self, collection: str, document_id: str) -> bool:
        async with self.session_maker() as session:
            result = await session.execute(
                delete(DocumentRecord).where(
                    DocumentRecord.collection == collection,
                    DocumentRecord.id == document_id,
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        await super().close()
        await self.engine.dispose()
        logger.info("SqlDocumentStore closed")
