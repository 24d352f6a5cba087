"""MongoDB collection wrapper with index management and session-aware helpers.

IndexedCollection wraps an AsyncCollection, creates its indexes explicitly and
threads an optional client session through every call so that operations can
join a multi-document transaction.
"""

from enum import IntEnum
from typing import Any

from pydantic import BaseModel

try:
    from pymongo import ASCENDING, DESCENDING
    from pymongo.asynchronous.client_session import AsyncClientSession
    from pymongo.asynchronous.collection import AsyncCollection
except ImportError as err:
    raise ImportError(
        "pymongo package is required for MongoDB integration. "
        "Install it with: pip install projectionguard[mongodb]"
    ) from err


class IndexDirection(IntEnum):
    """Sort direction for MongoDB index fields."""

    ASC = ASCENDING
    """Ascending order (1)."""

    DESC = DESCENDING
    """Descending order (-1)."""


class IndexSpec(BaseModel):
    """Specification for a MongoDB index.

    Example:
        >>> IndexSpec(
        ...     keys=[
        ...         ("handler", IndexDirection.ASC),
        ...         ("resource", IndexDirection.ASC),
        ...     ],
        ...     unique=True,
        ... )
    """

    keys: list[tuple[str, IndexDirection]]
    """(field_name, direction) tuples."""

    unique: bool = False
    """If True, enforce uniqueness."""

    name: str | None = None
    """Optional explicit index name."""

    async def apply(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        """Create this index on ``collection`` (no-op if it already exists)."""
        kwargs: dict[str, Any] = {}
        if self.unique:
            kwargs["unique"] = True
        if self.name is not None:
            kwargs["name"] = self.name

        await collection.create_index(self.keys, **kwargs)


class IndexedCollection:
    """A MongoDB collection wrapper with explicit index management.

    Indexes are created by ``ensure_indexes`` rather than on first use:
    index builds are not allowed inside most transactions, and every write
    of the version store happens in one.

    Write helpers return the counts the caller needs to tell whether a
    conditional statement matched.

    Example:
        >>> collection = IndexedCollection(
        ...     config.versions,
        ...     indexes=[IndexSpec(keys=[("handler", 1), ("resource", 1)], unique=True)],
        ... )
        >>> await collection.ensure_indexes()
        >>> async with config.client.start_session() as session:
        ...     async with await session.start_transaction():
        ...         await collection.insert_one(doc, session=session)
    """

    def __init__(
        self,
        collection: AsyncCollection[dict[str, Any]],
        indexes: list[IndexSpec] | None = None,
    ) -> None:
        self._collection = collection
        self._indexes = indexes or []
        self._indexes_created = False

    @property
    def collection(self) -> AsyncCollection[dict[str, Any]]:
        return self._collection

    async def ensure_indexes(self) -> None:
        """Create indexes if not already created."""
        if self._indexes_created:
            return

        for spec in self._indexes:
            await spec.apply(self._collection)

        self._indexes_created = True

    async def drop(self) -> None:
        """Drop the collection and forget that its indexes exist."""
        await self._collection.drop()
        self._indexes_created = False

    async def find_one(
        self,
        filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
        session: AsyncClientSession | None = None,
    ) -> dict[str, Any] | None:
        result: dict[str, Any] | None = await self._collection.find_one(
            filter, projection=projection, session=session
        )
        return result

    async def insert_one(
        self,
        document: dict[str, Any],
        session: AsyncClientSession | None = None,
    ) -> None:
        await self._collection.insert_one(document, session=session)

    async def update_one(
        self,
        filter: dict[str, Any],
        update: dict[str, Any],
        session: AsyncClientSession | None = None,
    ) -> int:
        """Update a single document.

        Returns:
            Number of documents matched by ``filter`` (0 or 1).
        """
        result = await self._collection.update_one(filter, update, session=session)
        return int(result.matched_count)

    async def replace_one(
        self,
        filter: dict[str, Any],
        replacement: dict[str, Any],
        upsert: bool = False,
        session: AsyncClientSession | None = None,
    ) -> None:
        await self._collection.replace_one(
            filter, replacement, upsert=upsert, session=session
        )

    async def delete_one(
        self,
        filter: dict[str, Any],
        session: AsyncClientSession | None = None,
    ) -> int:
        """Delete a single document.

        Returns:
            Number of documents deleted (0 or 1).
        """
        result = await self._collection.delete_one(filter, session=session)
        return int(result.deleted_count)
