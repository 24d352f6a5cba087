"""MongoDB configuration using pydantic-settings."""

from functools import cached_property
from typing import Any

from pydantic_settings import BaseSettings
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient


class MongoConfiguration(BaseSettings):
    """Configuration and factory for MongoDB resources.

    Implements the HasLifecycle protocol. The client is created lazily and
    closed on shutdown.

    All settings can be configured via environment variables with the
    PROJECTIONGUARD_MONGO_ prefix. For example:
    - PROJECTIONGUARD_MONGO_URI=mongodb://localhost:27017/?replicaSet=rs0
    - PROJECTIONGUARD_MONGO_DATABASE=projections
    - PROJECTIONGUARD_MONGO_VERSIONS_COLLECTION=resource_versions

    Version swaps run in multi-document transactions, so the URI must point
    at a replica set or a sharded cluster.

    Attributes:
        uri: MongoDB connection URI.
        database: Database name to use.
        versions_collection: Collection name for version records.

    Example:
        >>> config = MongoConfiguration(database="projections")
        >>> store = MongoVersionStore(config, handler_key="order-totals")
        >>> await store.initialize_schema()
    """

    uri: str = "mongodb://localhost:27017"
    database: str = "projectionguard"

    versions_collection: str = "resource_versions"

    model_config = {"env_prefix": "PROJECTIONGUARD_MONGO_"}

    @cached_property
    def client(self) -> AsyncMongoClient[dict[str, Any]]:
        """Get the MongoDB async client.

        The client is lazily created and cached for reuse.
        """
        return AsyncMongoClient(self.uri)

    @cached_property
    def db(self) -> AsyncDatabase[dict[str, Any]]:
        """Get the MongoDB async database."""
        return self.client[self.database]

    @cached_property
    def versions(self) -> AsyncCollection[dict[str, Any]]:
        """Get the version records collection."""
        return self.db[self.versions_collection]

    async def on_startup(self) -> None:
        """No-op: connections are established lazily."""

    async def on_shutdown(self) -> None:
        """Close the MongoDB client if it was created."""
        if "client" in self.__dict__:
            await self.client.close()
            for name in ("client", "db", "versions"):
                self.__dict__.pop(name, None)
