"""MongoDB implementation of VersionStore."""

import logging
from typing import Any

from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from projectionguard.exceptions import IncompatibleBackendError
from projectionguard.versioning.store import Mutation, VersionStore, log_extra

from .collection import IndexDirection, IndexedCollection, IndexSpec
from .config import MongoConfiguration

LOGGER = logging.getLogger(__name__)

VERSION_INDEX = IndexSpec(
    keys=[("handler", IndexDirection.ASC), ("resource", IndexDirection.ASC)],
    unique=True,
    name="handler_resource",
)


class MongoVersionStore(VersionStore[AsyncClientSession]):
    """Version store over a MongoDB collection, using transactions.

    Each record is a document ``{"handler": str, "resource": bytes,
    "version": bytes}`` with a unique index on ``(handler, resource)``.

    Compare-and-swap opens a client session and a transaction. The version
    statement runs first; when it matches, the mutation runs with the same
    session and the transaction commits. A duplicate key on the version
    statement aborts the transaction and returns ``False``. Any other
    failure propagates, including a ``WriteConflict`` with another open
    transaction: that transaction may still abort, so the error carries
    the ``TransientTransactionError`` label for the caller to retry.
    Requires a replica set or a sharded cluster.

    The unit of work handed to mutations is the ``AsyncClientSession``; pass
    it as ``session=`` to every statement that must join the swap.

    Examples:
        >>> store = MongoVersionStore(MongoConfiguration(), "order-totals")
        >>> await store.initialize_schema()
        >>>
        >>> async def mutation(session):
        ...     await totals.update_one(
        ...         {"_id": "order-42"}, {"$inc": {"total": 10}}, upsert=True, session=session
        ...     )
        >>> await store.compare_and_swap(b"order-42", b"", b"v1", mutation)
        True
    """

    def __init__(self, config: MongoConfiguration, handler_key: str):
        """Initialize the store.

        Args:
            config: MongoDB settings providing the client and collection.
            handler_key: Identity of the projection handler.

        Raises:
            IncompatibleBackendError: If ``config`` does not provide an async
                pymongo collection.
        """
        self.config = config
        self.handler_key = handler_key

        if not self.is_compatible():
            raise IncompatibleBackendError(
                f"{type(config).__name__} does not provide an async MongoDB collection"
            )

        self.collection = IndexedCollection(config.versions, indexes=[VERSION_INDEX])

    def is_compatible(self) -> bool:
        return isinstance(getattr(self.config, "versions", None), AsyncCollection)

    def _key(self, resource: bytes) -> dict[str, Any]:
        return {"handler": self.handler_key, "resource": resource}

    async def query_version(self, resource: bytes) -> bytes:
        document = await self.collection.find_one(
            self._key(resource), projection={"_id": False, "version": True}
        )
        if document is None:
            return b""
        return bytes(document.get("version", b""))

    async def _swap(
        self,
        session: AsyncClientSession,
        resource: bytes,
        current: bytes,
        next: bytes,
    ) -> bool:
        key = self._key(resource)

        if not current:
            if not next:
                return await self.collection.find_one(key, session=session) is None
            await self.collection.insert_one({**key, "version": next}, session=session)
            return True

        if not next:
            deleted = await self.collection.delete_one(
                {**key, "version": current}, session=session
            )
            return deleted == 1

        matched = await self.collection.update_one(
            {**key, "version": current}, {"$set": {"version": next}}, session=session
        )
        return matched == 1

    async def compare_and_swap(
        self,
        resource: bytes,
        current: bytes,
        next: bytes,
        mutation: Mutation[AsyncClientSession] | None = None,
    ) -> bool:
        async with self.config.client.start_session() as session:
            async with await session.start_transaction():
                try:
                    applied = await self._swap(session, resource, current, next)
                except DuplicateKeyError:
                    applied = False

                if not applied:
                    await session.abort_transaction()
                    LOGGER.debug("Version conflict", extra=log_extra(self.handler_key, resource))
                    return False

                if mutation is not None:
                    await mutation(session)

        return True

    async def delete_resource(self, resource: bytes) -> None:
        await self.collection.delete_one(self._key(resource))

    async def store_version(self, resource: bytes, version: bytes) -> None:
        key = self._key(resource)
        await self.collection.replace_one(key, {**key, "version": version}, upsert=True)

    async def initialize_schema(self) -> None:
        await self.collection.ensure_indexes()
        LOGGER.info(
            "Created version collection",
            extra={"collection": self.config.versions_collection},
        )

    async def drop_schema(self) -> None:
        await self.collection.drop()
        LOGGER.info(
            "Dropped version collection",
            extra={"collection": self.config.versions_collection},
        )
