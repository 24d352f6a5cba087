"""Dialect driver contract for SQL version stores."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager, suppress
from typing import Any

from projectionguard.exceptions import IncompatibleBackendError

LOGGER = logging.getLogger(__name__)


class Driver(ABC):
    """Implements version-record storage for one SQL dialect.

    Every dialect keeps its records in a single table keyed by
    ``(handler, resource)`` with an opaque binary ``version`` column, inside a
    namespace of its own so it cannot collide with application tables.

    The compare-and-swap rules live in ``update_version`` and are shared by
    all dialects. Subclasses provide the statements (each returning the
    number of affected rows) and ``is_duplicate_key_error``, the only place
    where driver-specific error codes are inspected.

    ``db`` is whatever handle the dialect's client library uses for a
    database (a pool or a connection); ``tx`` is the connection yielded by
    ``transaction(db)``.
    """

    name: str

    @abstractmethod
    def is_compatible_with(self, db: Any) -> bool:
        """Report whether ``db`` is a handle this driver can use."""
        ...

    @abstractmethod
    async def create_schema(self, db: Any) -> None:
        """Create the version table (and its namespace)."""
        ...

    @abstractmethod
    async def drop_schema(self, db: Any) -> None:
        """Drop the version table (and its namespace)."""
        ...

    @abstractmethod
    def transaction(self, db: Any) -> AbstractAsyncContextManager[Any]:
        """Open a transaction on ``db``.

        The context manager yields the connection to run statements on,
        commits when the block exits normally and rolls back when it raises.
        """
        ...

    @abstractmethod
    async def store_version(self, db: Any, handler: str, resource: bytes, version: bytes) -> None:
        """Unconditionally upsert a version record."""
        ...

    @abstractmethod
    async def query_version(self, db: Any, handler: str, resource: bytes) -> bytes:
        """Return the stored version, or ``b""`` if there is no record."""
        ...

    @abstractmethod
    async def delete_resource(self, db: Any, handler: str, resource: bytes) -> None:
        """Unconditionally delete a version record."""
        ...

    @abstractmethod
    def is_duplicate_key_error(self, error: BaseException) -> bool:
        """Report whether ``error`` is a primary-key/uniqueness violation.

        Must only return True for errors positively identified by their
        dialect error code.
        """
        ...

    @abstractmethod
    async def _insert(self, tx: Any, handler: str, resource: bytes, version: bytes) -> None: ...

    @abstractmethod
    async def _update(
        self, tx: Any, handler: str, resource: bytes, current: bytes, next: bytes
    ) -> int: ...

    @abstractmethod
    async def _delete(self, tx: Any, handler: str, resource: bytes, current: bytes) -> int: ...

    @abstractmethod
    async def _exists(self, tx: Any, handler: str, resource: bytes) -> bool: ...

    async def update_version(
        self,
        tx: Any,
        handler: str,
        resource: bytes,
        current: bytes,
        next: bytes,
    ) -> bool:
        """Compare-and-swap a version record inside an open transaction.

        Args:
            tx: Connection yielded by ``transaction``.
            handler: Handler identity key.
            resource: Resource identifier.
            current: Expected stored version (``b""`` for "no record").
            next: New version (``b""`` removes the record).

        Returns:
            True if the record changed as requested, False on a conflict.

        Raises:
            Exception: Any statement error other than a duplicate key on
                insert.
        """
        if not current:
            if not next:
                return not await self._exists(tx, handler, resource)

            try:
                await self._insert(tx, handler, resource, next)
            except Exception as error:
                # A duplicate key means the "no record yet" assumption was
                # wrong: another writer got there first.
                if not self.is_duplicate_key_error(error):
                    raise
                return False
            return True

        if not next:
            return await self._delete(tx, handler, resource, current) != 0

        return await self._update(tx, handler, resource, current, next) != 0


def builtin_drivers() -> list[Driver]:
    """Instantiate the built-in drivers whose client library is installed."""
    drivers: list[Driver] = []

    with suppress(ImportError):
        from .postgres import PostgresDriver

        drivers.append(PostgresDriver())

    with suppress(ImportError):
        from .sqlite import SQLiteDriver

        drivers.append(SQLiteDriver())

    return drivers


def select_driver(db: Any, drivers: Sequence[Driver] | None = None) -> Driver:
    """Pick the driver matching a database handle.

    Args:
        db: A pool or connection of a supported client library.
        drivers: Candidate drivers, in order of preference. Defaults to the
            installed built-in drivers.

    Returns:
        The first driver compatible with ``db``.

    Raises:
        IncompatibleBackendError: If no candidate is compatible.
    """
    candidates = builtin_drivers() if drivers is None else drivers

    for driver in candidates:
        if driver.is_compatible_with(db):
            LOGGER.debug("Selected SQL driver", extra={"driver": driver.name})
            return driver

    raise IncompatibleBackendError(f"No SQL driver is compatible with {type(db).__name__}")
