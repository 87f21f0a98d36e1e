"""Storage backends for the contract's keyed collections.

Every backend exposes the same two-level layout: a namespace (raw bytes
derived from a collection name and the version salt) holding string keys
that map to JSON documents, plus a single contract state document.

All access happens through a session obtained from ``Store.transaction()``.
A session either commits as a whole when the block exits normally or leaves
no trace when it raises.
"""

import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import asyncpg
from asyncpg.exceptions import PostgresError

from .exceptions import DatabaseError, StorageBackendError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

STATE_ROW_ID = 1

class StorageSession(ABC):
    """Transactional view of a store."""

    @abstractmethod
    async def get(self, namespace: bytes, key: str) -> Optional[Document]:
        """Return the document stored under key, or None."""

    @abstractmethod
    async def put(self, namespace: bytes, key: str, value: Document) -> None:
        """Insert or replace a document. New keys are appended in order."""

    @abstractmethod
    async def items(self, namespace: bytes) -> List[Tuple[str, Document]]:
        """Return all (key, document) pairs in insertion order."""

    @abstractmethod
    async def get_state(self) -> Optional[Document]:
        """Return the contract state document, or None before first write."""

    @abstractmethod
    async def put_state(self, value: Document) -> None:
        """Replace the contract state document."""

class Store(ABC):
    """Backend holding collections and the contract state."""

    async def open(self) -> None:
        """Prepare the backend for use."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    def transaction(self, readonly: bool = False):
        """Async context manager yielding a StorageSession."""

class _MemorySession(StorageSession):

    def __init__(self, entries: Dict[bytes, Dict[str, str]], state: Optional[str]):
        self.entries = entries
        self.state = state
        # Namespaces copied on first write; the committed ones stay untouched
        self.written: Dict[bytes, Dict[str, str]] = {}

    def _read(self, namespace: bytes) -> Dict[str, str]:
        if namespace in self.written:
            return self.written[namespace]
        return self.entries.get(namespace, {})

    def _write(self, namespace: bytes) -> Dict[str, str]:
        if namespace not in self.written:
            # Dicts preserve insertion order, so copying keeps item ordering
            self.written[namespace] = dict(self.entries.get(namespace, {}))
        return self.written[namespace]

    async def get(self, namespace, key):
        raw = self._read(namespace).get(key)
        return json.loads(raw) if raw is not None else None

    async def put(self, namespace, key, value):
        self._write(namespace)[key] = json.dumps(value)

    async def items(self, namespace):
        return [(key, json.loads(raw)) for key, raw in self._read(namespace).items()]

    async def get_state(self):
        return json.loads(self.state) if self.state is not None else None

    async def put_state(self, value):
        self.state = json.dumps(value)

class MemoryStore(Store):
    """In-process store for sandbox runs and tests.

    Documents are kept JSON-encoded so values round-trip exactly as they do
    through PostgreSQL. Orphaned namespaces are kept until the process exits.
    """

    def __init__(self) -> None:
        self._entries: Dict[bytes, Dict[str, str]] = {}
        self._state: Optional[str] = None

    @asynccontextmanager
    async def transaction(self, readonly: bool = False) -> AsyncIterator[StorageSession]:
        session = _MemorySession(self._entries, self._state)
        yield session
        if not readonly:
            self._entries.update(session.written)
            self._state = session.state

    def namespaces(self) -> List[bytes]:
        """Return every namespace ever written, including orphaned ones."""
        return list(self._entries)

    def snapshot(self) -> Dict[bytes, Dict[str, Document]]:
        """Return a decoded copy of all entries."""
        return {
            ns: {key: json.loads(raw) for key, raw in entries.items()}
            for ns, entries in self._entries.items()
        }

class _PostgresSession(StorageSession):

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def get(self, namespace, key):
        raw = await self.conn.fetchval(
            'SELECT value FROM collection_entries WHERE namespace = $1 AND key = $2',
            namespace,
            key
        )
        return json.loads(raw) if raw is not None else None

    async def put(self, namespace, key, value):
        await self.conn.execute(
            '''
            INSERT INTO collection_entries (namespace, key, value, position)
            VALUES (
                $1, $2, $3::jsonb,
                (SELECT COALESCE(MAX(position), 0) + 1
                 FROM collection_entries WHERE namespace = $1)
            )
            ON CONFLICT (namespace, key)
            DO UPDATE SET value = EXCLUDED.value
            ''',
            namespace,
            key,
            json.dumps(value)
        )

    async def items(self, namespace):
        rows = await self.conn.fetch(
            '''
            SELECT key, value FROM collection_entries
            WHERE namespace = $1
            ORDER BY position
            ''',
            namespace
        )
        return [(row['key'], json.loads(row['value'])) for row in rows]

    async def get_state(self):
        raw = await self.conn.fetchval(
            'SELECT value FROM contract_state WHERE id = $1',
            STATE_ROW_ID
        )
        return json.loads(raw) if raw is not None else None

    async def put_state(self, value):
        await self.conn.execute(
            '''
            INSERT INTO contract_state (id, value) VALUES ($1, $2::jsonb)
            ON CONFLICT (id) DO UPDATE SET value = EXCLUDED.value, updated_at = now()
            ''',
            STATE_ROW_ID,
            json.dumps(value)
        )

class PostgresStore(Store):
    """Store backed by the collection_entries and contract_state tables."""

    def __init__(self, pool: Optional[asyncpg.Pool] = None, db_url: Optional[str] = None) -> None:
        """Initialize the store.

        Args:
            pool: Optional database pool. If not provided, one is created on open().
            db_url: Optional database URL used when creating the pool
        """
        self.pool = pool
        self.db_url = db_url
        self._owns_pool = pool is None

    async def open(self) -> None:
        if not self.pool:
            from . import init_db
            self.pool = await init_db(self.db_url)

    async def close(self) -> None:
        if self.pool and self._owns_pool:
            from . import close as close_db
            await close_db()
        self.pool = None

    @asynccontextmanager
    async def transaction(self, readonly: bool = False) -> AsyncIterator[StorageSession]:
        if not self.pool:
            raise StorageBackendError("PostgresStore used before open()")
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction(readonly=readonly):
                    yield _PostgresSession(conn)
        except PostgresError as e:
            logger.error(f"Database error in contract transaction: {e}")
            raise DatabaseError(f"Storage transaction failed: {e}") from e

def create_store(settings: Dict[str, Any]) -> Store:
    """Create the store selected by the storage_backend setting."""
    backend = settings.get('storage_backend', 'memory')
    if backend == 'memory':
        return MemoryStore()
    if backend == 'postgres':
        return PostgresStore(db_url=settings.get('db_url'))
    raise StorageBackendError(f"Unknown storage backend: {backend}")
