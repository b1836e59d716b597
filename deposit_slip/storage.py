"""
Async Document Store Module

Provides the async document store interface used by the submission handler,
with an in-memory implementation for tests and local runs and a PostgreSQL
implementation (asyncpg, one JSONB document per row) for production.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any
from decimal import Decimal
from datetime import datetime, date, timezone
import asyncio
import json
import re
import uuid

import asyncpg

from .config import COLLECTION_NAME, DATABASE_NAME, DepositSlipConfig


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Failures raised by asyncpg for unreachable servers and rejected statements
_DRIVER_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


class StorageError(RuntimeError):
    """Raised when the document store cannot be reached or a write fails"""


class AsyncDocumentStore(ABC):
    """Abstract interface for async document stores"""

    backend_name = "abstract"

    async def initialize(self) -> None:
        """Acquire connections; raise StorageError when the store is unreachable"""
        pass

    async def close(self) -> None:
        """Release connections (default no-op)"""
        pass

    @abstractmethod
    async def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document and return its generated id"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the store is reachable"""
        pass


def _serialize_value(value: Any) -> Any:
    """Serialize a value for JSON document storage"""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _serialize_value(value) for key, value in document.items()}


class AsyncInMemoryStore(AsyncDocumentStore):
    """In-memory document store for testing"""

    backend_name = "memory"

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document into memory"""
        document_id = str(uuid.uuid4())
        # Deep copy to prevent external mutation
        stored = json.loads(json.dumps(serialize_document(document)))
        async with self._lock:
            self._collections.setdefault(collection, {})[document_id] = stored
        return document_id

    async def find_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every document of a collection in insertion order"""
        async with self._lock:
            documents = self._collections.get(collection, {})
            return [dict(doc) for doc in documents.values()]

    async def count(self, collection: str) -> int:
        async with self._lock:
            return len(self._collections.get(collection, {}))

    async def ping(self) -> bool:
        return True


class AsyncPostgreSQLStore(AsyncDocumentStore):
    """
    PostgreSQL document store using asyncpg.

    Each collection is a table in the `schema` namespace holding one JSONB
    document per row, keyed by a generated id. Tables for `collections` are
    created at startup; any other collection is created on first insert.
    """

    backend_name = "postgresql"

    def __init__(self, connection_string: str, pool_size: int = 10,
                 schema: str = DATABASE_NAME, collections=(COLLECTION_NAME,)):
        if not _IDENTIFIER.match(schema):
            raise ValueError(f"Invalid schema name: {schema}")
        self.connection_string = connection_string
        self.pool_size = pool_size
        self.schema = schema
        self.pool = None
        self.collections = tuple(collections)
        self._known_collections = set()

    async def initialize(self) -> None:
        """Create connection pool — call on app startup"""
        try:
            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=1,
                max_size=self.pool_size,
                command_timeout=60
            )
            async with self.pool.acquire() as conn:
                await conn.execute(f'CREATE SCHEMA IF NOT EXISTS "{self.schema}"')
                for collection in self.collections:
                    await self._ensure_collection(conn, collection)
        except _DRIVER_ERRORS as e:
            await self.close()
            raise StorageError(f"Could not connect to document store: {e}") from e

    async def close(self) -> None:
        """Close pool — call on app shutdown"""
        if self.pool:
            await self.pool.close()
            self.pool = None

    def _table(self, collection: str) -> str:
        if not _IDENTIFIER.match(collection):
            raise ValueError(f"Invalid collection name: {collection}")
        return f'"{self.schema}"."{collection}"'

    async def _ensure_collection(self, conn, collection: str) -> str:
        table = self._table(collection)
        if collection not in self._known_collections:
            await conn.execute(f'''
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data JSONB NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            ''')
            self._known_collections.add(collection)
        return table

    def _require_pool(self):
        if not self.pool:
            raise StorageError("Pool not initialized. Call initialize() first.")
        return self.pool

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document into PostgreSQL"""
        pool = self._require_pool()
        document_id = str(uuid.uuid4())
        payload = json.dumps(serialize_document(document))

        try:
            async with pool.acquire() as conn:
                table = await self._ensure_collection(conn, collection)
                await conn.execute(
                    f'INSERT INTO {table} (id, data, created_at) VALUES ($1, $2::jsonb, $3)',
                    document_id, payload, datetime.now(timezone.utc)
                )
        except _DRIVER_ERRORS as e:
            raise StorageError(f"Insert into {collection} failed: {e}") from e

        return document_id

    async def ping(self) -> bool:
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval('SELECT 1')
            return True
        except _DRIVER_ERRORS:
            return False


def create_document_store(config: DepositSlipConfig) -> AsyncDocumentStore:
    """Factory function to create the configured document store"""
    storage_type = config.storage_type.lower()

    if storage_type == "memory":
        return AsyncInMemoryStore()
    if storage_type == "postgresql":
        return AsyncPostgreSQLStore(
            config.database_url,
            pool_size=config.database_pool_size
        )
    raise ValueError(f"Unknown storage type: {config.storage_type}")
