"""Provisioning of the DynamoDB table holding version records."""

import logging
from typing import Any

from pydantic import BaseModel

try:
    from botocore.exceptions import ClientError
except ImportError as err:
    raise ImportError(
        "aiobotocore package is required for DynamoDB integration. "
        "Install it with: pip install projectionguard[dynamodb]"
    ) from err

from .decorators import RequestDecorators

LOGGER = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "ProjectionResourceVersion"


class VersionTable(BaseModel):
    """Names of the version table and its attributes.

    Items are addressed by the composite key (handler, resource):

        {
            "Handler": {"S": "order-totals"},
            "Resource": {"B": b"order-42"},
            "Version": {"B": b"..."}
        }

    Example:
        >>> VersionTable(name="projection-versions")
    """

    model_config = {"frozen": True}

    name: str = DEFAULT_TABLE_NAME
    """Table name."""

    handler_attribute: str = "Handler"
    """Hash key attribute holding the handler identity (string)."""

    resource_attribute: str = "Resource"
    """Range key attribute holding the resource identifier (binary)."""

    version_attribute: str = "Version"
    """Attribute holding the version token (binary)."""


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


async def create_table(
    client: Any,
    table: VersionTable,
    decorators: RequestDecorators | None = None,
) -> None:
    """Create the version table and wait until it is active.

    The table uses on-demand billing. A ``create_table`` decorator may switch
    it to provisioned throughput or add tags, but not change its name or key.

    Args:
        client: An aiobotocore DynamoDB client.
        table: Table and attribute names.
        decorators: Optional request decorators.
    """
    params: dict[str, Any] = {
        "TableName": table.name,
        "AttributeDefinitions": [
            {"AttributeName": table.handler_attribute, "AttributeType": "S"},
            {"AttributeName": table.resource_attribute, "AttributeType": "B"},
        ],
        "KeySchema": [
            {"AttributeName": table.handler_attribute, "KeyType": "HASH"},
            {"AttributeName": table.resource_attribute, "KeyType": "RANGE"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if decorators is not None:
        decorators.apply("create_table", params, protected=("TableName", "KeySchema"))

    try:
        await client.create_table(**params)
    except ClientError as error:
        if _error_code(error) != "ResourceInUseException":
            raise
        LOGGER.info("Version table already exists", extra={"table": table.name})
    else:
        LOGGER.info("Created version table", extra={"table": table.name})

    waiter = client.get_waiter("table_exists")
    await waiter.wait(TableName=table.name)


async def delete_table(
    client: Any,
    table: VersionTable,
    decorators: RequestDecorators | None = None,
) -> None:
    """Delete the version table, if it exists, and wait until it is gone.

    Args:
        client: An aiobotocore DynamoDB client.
        table: Table and attribute names.
        decorators: Optional request decorators.
    """
    params: dict[str, Any] = {"TableName": table.name}
    if decorators is not None:
        decorators.apply("delete_table", params, protected=("TableName",))

    try:
        await client.delete_table(**params)
    except ClientError as error:
        if _error_code(error) != "ResourceNotFoundException":
            raise
        return

    waiter = client.get_waiter("table_not_exists")
    await waiter.wait(TableName=table.name)
    LOGGER.info("Deleted version table", extra={"table": table.name})
