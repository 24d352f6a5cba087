"""SQLite driver built on aiosqlite."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from weakref import WeakKeyDictionary

try:
    import aiosqlite
except ImportError as err:
    raise ImportError(
        "aiosqlite package is required for SQLite integration. "
        "Install it with: pip install projectionguard[sqlite]"
    ) from err

from .driver import Driver

# Extended result codes reported in IntegrityError.sqlite_errorcode
SQLITE_CONSTRAINT_PRIMARYKEY = 1555
SQLITE_CONSTRAINT_UNIQUE = 2067

TABLE_NAME = "projection_resource_version"

# One lock per connection, shared by every driver instance
_CONNECTION_LOCKS: WeakKeyDictionary[Any, asyncio.Lock] = WeakKeyDictionary()


class SQLiteDriver(Driver):
    """Driver for SQLite through ``aiosqlite.Connection``.

    SQLite has no schemas, so the version table carries a ``projection_``
    prefix instead.

    A connection can only run one transaction at a time. The driver keeps a
    lock per connection and holds it for every transaction and read, so
    concurrent coroutines sharing a connection never interleave statements
    or observe each other's uncommitted writes. Transactions start with
    ``BEGIN IMMEDIATE`` to take the write lock up front when several
    connections share a database file.

    Examples:
        >>> db = await aiosqlite.connect("projections.db")
        >>> driver = SQLiteDriver()
        >>> await driver.create_schema(db)
    """

    name = "sqlite"

    def _lock(self, db: aiosqlite.Connection) -> asyncio.Lock:
        lock = _CONNECTION_LOCKS.get(db)
        if lock is None:
            lock = _CONNECTION_LOCKS[db] = asyncio.Lock()
        return lock

    def is_compatible_with(self, db: Any) -> bool:
        return isinstance(db, aiosqlite.Connection)

    async def create_schema(self, db: Any) -> None:
        async with self.transaction(db) as tx:
            await tx.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    handler  TEXT NOT NULL,
                    resource BLOB NOT NULL,
                    version  BLOB NOT NULL,

                    PRIMARY KEY (handler, resource)
                ) WITHOUT ROWID
                """
            )

    async def drop_schema(self, db: Any) -> None:
        async with self.transaction(db) as tx:
            await tx.execute(f"DROP TABLE IF EXISTS {TABLE_NAME}")

    @asynccontextmanager
    async def transaction(self, db: Any) -> AsyncIterator[aiosqlite.Connection]:
        async with self._lock(db):
            try:
                await db.execute("BEGIN IMMEDIATE")
                yield db
            except BaseException:
                # A cancelled BEGIN still runs on the worker thread. The
                # rollback is queued behind it and is a no-op without a
                # transaction.
                await db.rollback()
                raise
            await db.commit()

    async def store_version(self, db: Any, handler: str, resource: bytes, version: bytes) -> None:
        async with self.transaction(db) as tx:
            await tx.execute(
                f"""
                INSERT INTO {TABLE_NAME} (handler, resource, version)
                VALUES (?, ?, ?)
                ON CONFLICT (handler, resource) DO UPDATE SET
                    version = excluded.version
                """,
                (handler, resource, version),
            )

    async def query_version(self, db: Any, handler: str, resource: bytes) -> bytes:
        async with self._lock(db):
            async with db.execute(
                f"SELECT version FROM {TABLE_NAME} WHERE handler = ? AND resource = ?",
                (handler, resource),
            ) as cursor:
                row = await cursor.fetchone()
        return bytes(row[0]) if row is not None else b""

    async def delete_resource(self, db: Any, handler: str, resource: bytes) -> None:
        async with self.transaction(db) as tx:
            await tx.execute(
                f"DELETE FROM {TABLE_NAME} WHERE handler = ? AND resource = ?",
                (handler, resource),
            )

    def is_duplicate_key_error(self, error: BaseException) -> bool:
        return isinstance(error, aiosqlite.IntegrityError) and getattr(
            error, "sqlite_errorcode", None
        ) in (SQLITE_CONSTRAINT_PRIMARYKEY, SQLITE_CONSTRAINT_UNIQUE)

    async def _insert(self, tx: Any, handler: str, resource: bytes, version: bytes) -> None:
        await tx.execute(
            f"INSERT INTO {TABLE_NAME} (handler, resource, version) VALUES (?, ?, ?)",
            (handler, resource, version),
        )

    async def _update(
        self, tx: Any, handler: str, resource: bytes, current: bytes, next: bytes
    ) -> int:
        cursor = await tx.execute(
            f"""
            UPDATE {TABLE_NAME} SET version = ?
            WHERE handler = ? AND resource = ? AND version = ?
            """,
            (next, handler, resource, current),
        )
        return cursor.rowcount

    async def _delete(self, tx: Any, handler: str, resource: bytes, current: bytes) -> int:
        cursor = await tx.execute(
            f"DELETE FROM {TABLE_NAME} WHERE handler = ? AND resource = ? AND version = ?",
            (handler, resource, current),
        )
        return cursor.rowcount

    async def _exists(self, tx: Any, handler: str, resource: bytes) -> bool:
        async with tx.execute(
            f"SELECT 1 FROM {TABLE_NAME} WHERE handler = ? AND resource = ?",
            (handler, resource),
        ) as cursor:
            return await cursor.fetchone() is not None
