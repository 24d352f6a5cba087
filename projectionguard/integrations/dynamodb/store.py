"""DynamoDB implementation of VersionStore."""

import logging
from typing import Any

from botocore.exceptions import ClientError

from projectionguard.exceptions import IncompatibleBackendError
from projectionguard.versioning.store import Mutation, VersionStore, log_extra

from .decorators import FIRST_TRANSACT_ITEM, RequestDecorators
from .table import VersionTable, create_table, delete_table

LOGGER = logging.getLogger(__name__)

TransactItems = list[dict[str, Any]]
"""Unit of work for DynamoDB mutations: TransactWriteItems entries."""

# Operation name and protected request fields for each single-item write
_SINGLE_WRITES = {
    "Put": (
        "put_item",
        ("TableName", "Item", "ConditionExpression", "ExpressionAttributeNames"),
    ),
    "Update": (
        "update_item",
        (
            "TableName",
            "Key",
            "UpdateExpression",
            "ConditionExpression",
            "ExpressionAttributeNames",
            "ExpressionAttributeValues",
        ),
    ),
    "Delete": (
        "delete_item",
        (
            "TableName",
            "Key",
            "ConditionExpression",
            "ExpressionAttributeNames",
            "ExpressionAttributeValues",
        ),
    ),
}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _is_version_conflict(error: ClientError) -> bool:
    """Report whether a failed write was rejected by the version condition."""
    code = _error_code(error)

    if code == "ConditionalCheckFailedException":
        return True

    if code == "TransactionCanceledException":
        # Reasons are listed in TransactItems order; the version item is first.
        reasons = error.response.get("CancellationReasons") or []
        return bool(reasons) and reasons[0].get("Code") == "ConditionalCheckFailed"

    return False


class DynamoDBVersionStore(VersionStore[TransactItems]):
    """Version store over a DynamoDB table, using conditional writes.

    Mutations receive a list and append the ``TransactWriteItems`` entries
    that update the projection's own items (``{"Put": ...}``,
    ``{"Update": ...}``, ...). A mutation only builds requests, so it is
    called before the version condition is evaluated, on every call. When
    the condition fails its items are discarded with the transaction and
    nothing is written.

    - No business items: the version swap is a single conditional
      PutItem / UpdateItem / DeleteItem.
    - Business items: one TransactWriteItems call with the version item
      first, followed by the mutation's items in their original order.

    A failed version condition is reported as ``False``. Every other error,
    including throttling and failed conditions on the projection's own
    items, propagates.

    Attributes:
        client: aiobotocore DynamoDB client.
        handler_key: Identity of the projection handler.
        table: Version table and attribute names.
        decorators: Request decorators applied before each call.

    Examples:
        >>> store = DynamoDBVersionStore(client, handler_key="order-totals")
        >>> await store.initialize_schema()
        >>>
        >>> async def mutation(items):
        ...     items.append({
        ...         "Update": {
        ...             "TableName": "OrderTotals",
        ...             "Key": {"OrderId": {"S": "order-42"}},
        ...             "UpdateExpression": "ADD Total :amount",
        ...             "ExpressionAttributeValues": {":amount": {"N": "10"}},
        ...         }
        ...     })
        >>> await store.compare_and_swap(b"order-42", b"", b"v1", mutation)
        True
    """

    def __init__(
        self,
        client: Any,
        handler_key: str,
        table: VersionTable | str = VersionTable(),
        decorators: RequestDecorators | None = None,
    ):
        """Initialize the store.

        Args:
            client: aiobotocore DynamoDB client.
            handler_key: Identity of the projection handler.
            table: Table definition, or just the table name.
            decorators: Optional request decorators.

        Raises:
            IncompatibleBackendError: If ``client`` is not a DynamoDB client.
        """
        self.client = client
        self.handler_key = handler_key
        self.table = VersionTable(name=table) if isinstance(table, str) else table
        self.decorators = decorators or RequestDecorators()

        if not self.is_compatible():
            raise IncompatibleBackendError(f"{type(client).__name__} is not a DynamoDB client")

    def is_compatible(self) -> bool:
        meta = getattr(self.client, "meta", None)
        service_model = getattr(meta, "service_model", None)
        return getattr(service_model, "service_name", None) == "dynamodb"

    def _key(self, resource: bytes) -> dict[str, Any]:
        return {
            self.table.handler_attribute: {"S": self.handler_key},
            self.table.resource_attribute: {"B": resource},
        }

    def _version_item(self, resource: bytes, current: bytes, next: bytes) -> dict[str, Any]:
        """Build the TransactWriteItems entry that swaps the resource's version."""
        table = self.table

        if not current:
            absent = {
                "TableName": table.name,
                "ConditionExpression": "attribute_not_exists(#R)",
                "ExpressionAttributeNames": {"#R": table.resource_attribute},
            }
            if not next:
                return {"ConditionCheck": {"Key": self._key(resource), **absent}}
            item = {**self._key(resource), table.version_attribute: {"B": next}}
            return {"Put": {"Item": item, **absent}}

        names = {"#V": table.version_attribute}
        if not next:
            return {
                "Delete": {
                    "TableName": table.name,
                    "Key": self._key(resource),
                    "ConditionExpression": "#V = :c",
                    "ExpressionAttributeNames": names,
                    "ExpressionAttributeValues": {":c": {"B": current}},
                }
            }

        return {
            "Update": {
                "TableName": table.name,
                "Key": self._key(resource),
                "UpdateExpression": "SET #V = :n",
                "ConditionExpression": "#V = :c",
                "ExpressionAttributeNames": names,
                "ExpressionAttributeValues": {":c": {"B": current}, ":n": {"B": next}},
            }
        }

    async def query_version(self, resource: bytes) -> bytes:
        params: dict[str, Any] = {
            "TableName": self.table.name,
            "Key": self._key(resource),
            "ConsistentRead": True,
            "ProjectionExpression": "#V",
            "ExpressionAttributeNames": {"#V": self.table.version_attribute},
        }
        self.decorators.apply("get_item", params, protected=("TableName", "Key"))

        response = await self.client.get_item(**params)
        item = response.get("Item")
        if not item or self.table.version_attribute not in item:
            return b""
        return bytes(item[self.table.version_attribute]["B"])

    async def compare_and_swap(
        self,
        resource: bytes,
        current: bytes,
        next: bytes,
        mutation: Mutation[TransactItems] | None = None,
    ) -> bool:
        items: TransactItems = []
        if mutation is not None:
            await mutation(items)

        version_item = self._version_item(resource, current, next)
        ((kind, request),) = version_item.items()

        try:
            if items or kind not in _SINGLE_WRITES:
                await self._transact_write([version_item, *items])
            else:
                await self._single_write(kind, dict(request))
        except ClientError as error:
            if not _is_version_conflict(error):
                raise
            LOGGER.debug(
                "Version conflict",
                extra=log_extra(self.handler_key, resource, code=_error_code(error)),
            )
            return False

        return True

    async def _single_write(self, kind: str, params: dict[str, Any]) -> None:
        operation, protected = _SINGLE_WRITES[kind]
        self.decorators.apply(operation, params, protected=protected)
        await getattr(self.client, operation)(**params)

    async def _transact_write(self, items: TransactItems) -> None:
        params: dict[str, Any] = {"TransactItems": items}
        self.decorators.apply("transact_write_items", params, protected=(FIRST_TRANSACT_ITEM,))
        await self.client.transact_write_items(**params)

    async def delete_resource(self, resource: bytes) -> None:
        params: dict[str, Any] = {"TableName": self.table.name, "Key": self._key(resource)}
        self.decorators.apply("delete_item", params, protected=("TableName", "Key"))
        await self.client.delete_item(**params)

    async def store_version(self, resource: bytes, version: bytes) -> None:
        params: dict[str, Any] = {
            "TableName": self.table.name,
            "Item": {**self._key(resource), self.table.version_attribute: {"B": version}},
        }
        self.decorators.apply("put_item", params, protected=("TableName", "Item"))
        await self.client.put_item(**params)

    async def initialize_schema(self) -> None:
        await create_table(self.client, self.table, self.decorators)

    async def drop_schema(self) -> None:
        await delete_table(self.client, self.table, self.decorators)
