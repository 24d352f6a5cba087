"""SQL implementation of VersionStore."""

import logging
from typing import Any

from projectionguard.exceptions import IncompatibleBackendError
from projectionguard.versioning.store import Mutation, VersionStore, log_extra

from .driver import Driver, select_driver

LOGGER = logging.getLogger(__name__)


class SQLVersionStore(VersionStore[Any]):
    """Version store over a relational database.

    The version swap and the caller's mutation run in one database
    transaction: the swap first, then the mutation on the same connection.
    If the swap does not apply, the mutation is never run; if the mutation
    raises, the transaction (including the swap) is rolled back.

    The unit of work handed to mutations is the connection yielded by the
    driver's transaction, e.g. an ``asyncpg.Connection`` or an
    ``aiosqlite.Connection``.

    Attributes:
        db: The database handle (pool or connection).
        handler_key: Identity of the projection handler.
        driver: Dialect driver for ``db``.

    Examples:
        >>> pool = await asyncpg.create_pool(dsn)
        >>> store = SQLVersionStore(pool, handler_key="order-totals")
        >>> await store.initialize_schema()
        >>>
        >>> async def mutation(tx):
        ...     await tx.execute("INSERT INTO order_totals VALUES ($1, $2)", "order-42", 10)
        >>> await store.compare_and_swap(b"order-42", b"", b"v1", mutation)
        True
    """

    def __init__(self, db: Any, handler_key: str, driver: Driver | None = None):
        """Initialize the store.

        Args:
            db: A pool or connection of a supported client library.
            handler_key: Identity of the projection handler.
            driver: Dialect driver. Selected from the built-in drivers when
                omitted.

        Raises:
            IncompatibleBackendError: If ``driver`` cannot use ``db``, or no
                built-in driver can.
        """
        if driver is None:
            driver = select_driver(db)
        elif not driver.is_compatible_with(db):
            raise IncompatibleBackendError(
                f"{driver.name} driver is not compatible with {type(db).__name__}"
            )

        self.db = db
        self.handler_key = handler_key
        self.driver = driver

    async def query_version(self, resource: bytes) -> bytes:
        return await self.driver.query_version(self.db, self.handler_key, resource)

    async def compare_and_swap(
        self,
        resource: bytes,
        current: bytes,
        next: bytes,
        mutation: Mutation[Any] | None = None,
    ) -> bool:
        async with self.driver.transaction(self.db) as tx:
            applied = await self.driver.update_version(
                tx, self.handler_key, resource, current, next
            )
            if applied and mutation is not None:
                await mutation(tx)

        if not applied:
            LOGGER.debug(
                "Version conflict",
                extra=log_extra(self.handler_key, resource, driver=self.driver.name),
            )
        return applied

    async def delete_resource(self, resource: bytes) -> None:
        await self.driver.delete_resource(self.db, self.handler_key, resource)

    async def store_version(self, resource: bytes, version: bytes) -> None:
        await self.driver.store_version(self.db, self.handler_key, resource, version)

    async def initialize_schema(self) -> None:
        await self.driver.create_schema(self.db)
        LOGGER.info("Created version schema", extra={"driver": self.driver.name})

    async def drop_schema(self) -> None:
        await self.driver.drop_schema(self.db)
        LOGGER.info("Dropped version schema", extra={"driver": self.driver.name})

    def is_compatible(self) -> bool:
        return self.driver.is_compatible_with(self.db)
