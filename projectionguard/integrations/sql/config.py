"""SQL backend configuration using pydantic-settings."""

from typing import Any

from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings


class PostgresConfiguration(BaseSettings):
    """Configuration and factory for a PostgreSQL connection pool.

    Implements the HasLifecycle protocol: the asyncpg pool is created on
    startup and closed on shutdown.

    All settings can be configured via environment variables with the
    PROJECTIONGUARD_POSTGRES_ prefix. For example:
    - PROJECTIONGUARD_POSTGRES_DSN=postgresql://app@localhost:5432/app
    - PROJECTIONGUARD_POSTGRES_MAX_POOL_SIZE=20

    Attributes:
        dsn: PostgreSQL connection string.
        min_pool_size: Connections opened eagerly by the pool.
        max_pool_size: Upper bound of pooled connections.
        command_timeout: Default statement timeout in seconds (None for no
            timeout).

    Example:
        >>> config = PostgresConfiguration()
        >>> await config.on_startup()
        >>> store = SQLVersionStore(config.pool, handler_key="order-totals")
        >>> ...
        >>> await config.on_shutdown()
    """

    dsn: str = "postgresql://postgres@localhost:5432/postgres"
    min_pool_size: int = Field(default=1, ge=0)
    max_pool_size: int = Field(default=10, ge=1)
    command_timeout: float | None = Field(default=None, gt=0)

    model_config = {"env_prefix": "PROJECTIONGUARD_POSTGRES_"}

    _pool: Any = PrivateAttr(default=None)

    @property
    def pool(self) -> Any:
        """The asyncpg pool created by ``on_startup``.

        Raises:
            RuntimeError: If the pool has not been started.
        """
        if self._pool is None:
            raise RuntimeError("PostgreSQL pool is not started; call on_startup() first")
        return self._pool

    async def on_startup(self) -> None:
        if self._pool is not None:
            return

        import asyncpg

        self._pool = await asyncpg.create_pool(
            self.dsn,
            min_size=self.min_pool_size,
            max_size=self.max_pool_size,
            command_timeout=self.command_timeout,
        )

    async def on_shutdown(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None


class SQLiteConfiguration(BaseSettings):
    """Configuration and factory for an aiosqlite connection.

    Implements the HasLifecycle protocol: the connection is opened on
    startup and closed on shutdown.

    Environment variables use the PROJECTIONGUARD_SQLITE_ prefix, e.g.
    PROJECTIONGUARD_SQLITE_PATH=/var/lib/app/projections.db.

    Attributes:
        path: Database file path, or ":memory:".
        busy_timeout_ms: How long SQLite waits for a lock held by another
            connection before failing.
    """

    path: str = ":memory:"
    busy_timeout_ms: int = Field(default=5000, ge=0)

    model_config = {"env_prefix": "PROJECTIONGUARD_SQLITE_"}

    _connection: Any = PrivateAttr(default=None)

    @property
    def connection(self) -> Any:
        """The aiosqlite connection opened by ``on_startup``.

        Raises:
            RuntimeError: If the connection has not been opened.
        """
        if self._connection is None:
            raise RuntimeError("SQLite connection is not open; call on_startup() first")
        return self._connection

    async def on_startup(self) -> None:
        if self._connection is not None:
            return

        import aiosqlite

        connection = await aiosqlite.connect(self.path)
        await connection.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms}")
        self._connection = connection

    async def on_shutdown(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
