"""DynamoDB integration for projectionguard.

This module provides a DynamoDB implementation of the VersionStore interface
using aiobotocore, together with table provisioning and request decorators.

Installation:
    pip install projectionguard[dynamodb]

Usage:
    >>> from projectionguard.integrations.dynamodb import (
    ...     DynamoDBConfiguration,
    ...     DynamoDBVersionStore,
    ...     RequestDecorators,
    ... )
    >>>
    >>> config = DynamoDBConfiguration(endpoint_url="http://localhost:8000")
    >>> await config.on_startup()
    >>>
    >>> store = DynamoDBVersionStore(
    ...     config.client,
    ...     handler_key="order-totals",
    ...     table=config.table,
    ...     decorators=RequestDecorators(
    ...         transact_write_items=lambda params: params.update(ReturnConsumedCapacity="TOTAL"),
    ...     ),
    ... )
    >>> await store.initialize_schema()
"""

from .config import DynamoDBConfiguration
from .decorators import FIRST_TRANSACT_ITEM, RequestDecorator, RequestDecorators
from .store import DynamoDBVersionStore, TransactItems
from .table import VersionTable, create_table, delete_table

__all__ = [
    "FIRST_TRANSACT_ITEM",
    "DynamoDBConfiguration",
    "DynamoDBVersionStore",
    "RequestDecorator",
    "RequestDecorators",
    "TransactItems",
    "VersionTable",
    "create_table",
    "delete_table",
]
