"""SQL integration for projectionguard.

This module provides the SQLVersionStore, the Driver contract and driver
selection. Dialect drivers live in their own modules so that only the client
library you use needs to be installed:

- projectionguard.integrations.sql.postgres.PostgresDriver (asyncpg)
- projectionguard.integrations.sql.sqlite.SQLiteDriver (aiosqlite)

Installation:
    pip install projectionguard[postgres]
    pip install projectionguard[sqlite]

Usage:
    >>> from projectionguard.integrations.sql import (
    ...     PostgresConfiguration,
    ...     SQLVersionStore,
    ... )
    >>>
    >>> config = PostgresConfiguration(dsn="postgresql://localhost/app")
    >>> await config.on_startup()
    >>>
    >>> # The driver is selected from the pool's type
    >>> store = SQLVersionStore(config.pool, handler_key="order-totals")
    >>> await store.initialize_schema()
"""

from .config import PostgresConfiguration, SQLiteConfiguration
from .driver import Driver, builtin_drivers, select_driver
from .store import SQLVersionStore

__all__ = [
    "Driver",
    "PostgresConfiguration",
    "SQLiteConfiguration",
    "SQLVersionStore",
    "builtin_drivers",
    "select_driver",
]
