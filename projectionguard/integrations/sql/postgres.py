"""PostgreSQL driver built on asyncpg."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

try:
    import asyncpg
    from asyncpg.connection import Connection
    from asyncpg.pool import Pool
except ImportError as err:
    raise ImportError(
        "asyncpg package is required for PostgreSQL integration. "
        "Install it with: pip install projectionguard[postgres]"
    ) from err

from .driver import Driver

UNIQUE_VIOLATION = "23505"
"""SQLSTATE raised by PostgreSQL for primary key and unique constraint violations."""

SCHEMA_NAME = "projection"
TABLE_NAME = f"{SCHEMA_NAME}.resource_version"


def _affected_rows(status: str) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 1" or "DELETE 0"
    return int(status.rsplit(" ", 1)[-1])


class PostgresDriver(Driver):
    """Driver for PostgreSQL through asyncpg pools and connections.

    Version records live in ``projection.resource_version``. Inserts run in a
    savepoint so that a duplicate key rolls back only the insert and leaves
    the surrounding transaction usable.

    Examples:
        >>> pool = await asyncpg.create_pool("postgresql://localhost/app")
        >>> driver = PostgresDriver()
        >>> await driver.create_schema(pool)
        >>> async with driver.transaction(pool) as tx:
        ...     await driver.update_version(tx, "order-totals", b"order-42", b"", b"v1")
        True
    """

    name = "postgres"

    def is_compatible_with(self, db: Any) -> bool:
        return isinstance(db, (Pool, Connection))

    async def create_schema(self, db: Any) -> None:
        await db.execute(
            f"""
            CREATE SCHEMA IF NOT EXISTS {SCHEMA_NAME};
            CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                handler  TEXT  NOT NULL,
                resource BYTEA NOT NULL,
                version  BYTEA NOT NULL,

                PRIMARY KEY (handler, resource)
            );
            """
        )

    async def drop_schema(self, db: Any) -> None:
        await db.execute(f"DROP SCHEMA IF EXISTS {SCHEMA_NAME} CASCADE")

    @asynccontextmanager
    async def transaction(self, db: Any) -> AsyncIterator[Connection]:
        if isinstance(db, Pool):
            async with db.acquire() as connection:
                async with connection.transaction():
                    yield connection
        else:
            async with db.transaction():
                yield db

    async def store_version(self, db: Any, handler: str, resource: bytes, version: bytes) -> None:
        await db.execute(
            f"""
            INSERT INTO {TABLE_NAME} (handler, resource, version)
            VALUES ($1, $2, $3)
            ON CONFLICT (handler, resource) DO UPDATE SET
                version = excluded.version
            """,
            handler,
            resource,
            version,
        )

    async def query_version(self, db: Any, handler: str, resource: bytes) -> bytes:
        version = await db.fetchval(
            f"SELECT version FROM {TABLE_NAME} WHERE handler = $1 AND resource = $2",
            handler,
            resource,
        )
        return bytes(version) if version is not None else b""

    async def delete_resource(self, db: Any, handler: str, resource: bytes) -> None:
        await db.execute(
            f"DELETE FROM {TABLE_NAME} WHERE handler = $1 AND resource = $2",
            handler,
            resource,
        )

    def is_duplicate_key_error(self, error: BaseException) -> bool:
        return (
            isinstance(error, asyncpg.PostgresError)
            and getattr(error, "sqlstate", None) == UNIQUE_VIOLATION
        )

    async def _insert(self, tx: Any, handler: str, resource: bytes, version: bytes) -> None:
        async with tx.transaction():
            await tx.execute(
                f"INSERT INTO {TABLE_NAME} (handler, resource, version) VALUES ($1, $2, $3)",
                handler,
                resource,
                version,
            )

    async def _update(
        self, tx: Any, handler: str, resource: bytes, current: bytes, next: bytes
    ) -> int:
        status = await tx.execute(
            f"""
            UPDATE {TABLE_NAME} SET version = $1
            WHERE handler = $2 AND resource = $3 AND version = $4
            """,
            next,
            handler,
            resource,
            current,
        )
        return _affected_rows(status)

    async def _delete(self, tx: Any, handler: str, resource: bytes, current: bytes) -> int:
        status = await tx.execute(
            f"DELETE FROM {TABLE_NAME} WHERE handler = $1 AND resource = $2 AND version = $3",
            handler,
            resource,
            current,
        )
        return _affected_rows(status)

    async def _exists(self, tx: Any, handler: str, resource: bytes) -> bool:
        return bool(
            await tx.fetchval(
                f"SELECT EXISTS (SELECT 1 FROM {TABLE_NAME} WHERE handler = $1 AND resource = $2)",
                handler,
                resource,
            )
        )
