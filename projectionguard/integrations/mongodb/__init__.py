"""MongoDB integration for projectionguard.

This module provides a MongoDB implementation of the VersionStore interface
using the async PyMongo driver. Version swaps run in multi-document
transactions, so a replica set (or sharded cluster) is required.

Installation:
    pip install projectionguard[mongodb]

Usage:
    >>> from projectionguard.integrations.mongodb import (
    ...     MongoConfiguration,
    ...     MongoVersionStore,
    ... )
    >>>
    >>> config = MongoConfiguration(uri="mongodb://localhost:27017/?replicaSet=rs0")
    >>> store = MongoVersionStore(config, handler_key="order-totals")
    >>> await store.initialize_schema()
"""

from .collection import IndexDirection, IndexedCollection, IndexSpec
from .config import MongoConfiguration
from .store import MongoVersionStore

__all__ = [
    "IndexDirection",
    "IndexSpec",
    "IndexedCollection",
    "MongoConfiguration",
    "MongoVersionStore",
]
