"""DynamoDB configuration using pydantic-settings."""

from contextlib import AsyncExitStack
from typing import Any

from pydantic import PrivateAttr, SecretStr
from pydantic_settings import BaseSettings

from .table import DEFAULT_TABLE_NAME, VersionTable


class DynamoDBConfiguration(BaseSettings):
    """Configuration and factory for an aiobotocore DynamoDB client.

    Implements the HasLifecycle protocol: the client is opened on startup
    and closed on shutdown. Credentials fall back to the standard AWS
    provider chain when not set.

    All settings can be configured via environment variables with the
    PROJECTIONGUARD_DYNAMODB_ prefix. For example:
    - PROJECTIONGUARD_DYNAMODB_REGION_NAME=eu-west-1
    - PROJECTIONGUARD_DYNAMODB_ENDPOINT_URL=http://localhost:8000
    - PROJECTIONGUARD_DYNAMODB_TABLE_NAME=projection-versions

    Attributes:
        region_name: AWS region.
        endpoint_url: Override endpoint, e.g. DynamoDB Local.
        aws_access_key_id: Optional explicit access key.
        aws_secret_access_key: Optional explicit secret key.
        table_name: Version table name.
        handler_attribute: Hash key attribute name.
        resource_attribute: Range key attribute name.
        version_attribute: Version attribute name.

    Example:
        >>> config = DynamoDBConfiguration(endpoint_url="http://localhost:8000")
        >>> await config.on_startup()
        >>> store = DynamoDBVersionStore(config.client, "order-totals", table=config.table)
    """

    region_name: str = "us-east-1"
    endpoint_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: SecretStr | None = None

    table_name: str = DEFAULT_TABLE_NAME
    handler_attribute: str = "Handler"
    resource_attribute: str = "Resource"
    version_attribute: str = "Version"

    model_config = {"env_prefix": "PROJECTIONGUARD_DYNAMODB_"}

    _exit_stack: AsyncExitStack | None = PrivateAttr(default=None)
    _client: Any = PrivateAttr(default=None)

    @property
    def table(self) -> VersionTable:
        """Version table definition built from the configured names."""
        return VersionTable(
            name=self.table_name,
            handler_attribute=self.handler_attribute,
            resource_attribute=self.resource_attribute,
            version_attribute=self.version_attribute,
        )

    @property
    def client(self) -> Any:
        """The DynamoDB client opened by ``on_startup``.

        Raises:
            RuntimeError: If the client has not been opened.
        """
        if self._client is None:
            raise RuntimeError("DynamoDB client is not open; call on_startup() first")
        return self._client

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``AioSession.create_client``."""
        kwargs: dict[str, Any] = {"region_name": self.region_name}
        if self.endpoint_url is not None:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.aws_access_key_id is not None:
            kwargs["aws_access_key_id"] = self.aws_access_key_id
        if self.aws_secret_access_key is not None:
            kwargs["aws_secret_access_key"] = self.aws_secret_access_key.get_secret_value()
        return kwargs

    async def on_startup(self) -> None:
        if self._client is not None:
            return

        from aiobotocore.session import get_session

        stack = AsyncExitStack()
        self._client = await stack.enter_async_context(
            get_session().create_client("dynamodb", **self.client_kwargs())
        )
        self._exit_stack = stack

    async def on_shutdown(self) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
        self._exit_stack = None
        self._client = None
