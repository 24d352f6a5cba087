"""Request decorators for DynamoDB operations."""

import copy
from collections.abc import Callable, Iterable
from dataclasses import dataclass, fields
from typing import Any

from projectionguard.exceptions import ProtectedFieldModifiedError

RequestDecorator = Callable[[dict[str, Any]], None]
"""Receives the request parameters of an operation and may modify them in place."""

FIRST_TRANSACT_ITEM = "TransactItems[0]"
"""Protected-field name for the version item of a TransactWriteItems request."""

_MISSING = object()


def _read_field(params: dict[str, Any], field: str) -> Any:
    if field == FIRST_TRANSACT_ITEM:
        items = params.get("TransactItems") or []
        return items[0] if items else _MISSING
    return params.get(field, _MISSING)


def _snapshot(value: Any) -> Any:
    # _MISSING must keep its identity
    return value if value is _MISSING else copy.deepcopy(value)


@dataclass(frozen=True)
class RequestDecorators:
    """Optional hooks run on DynamoDB requests before they are sent.

    A decorator receives the request parameters dict and may add
    out-of-band options such as ``ReturnConsumedCapacity``,
    ``ReturnItemCollectionMetrics`` or ``ReturnValuesOnConditionCheckFailure``.
    It must not change the fields compare-and-swap depends on: the table,
    the key, the condition and its values, or the version item of a
    transaction.

    Warning:
        The order of ``TransactItems`` in a TransactWriteItems request is
        meaningful. The first item carries the resource's version swap and
        decides whether a canceled transaction counts as a version conflict.
        It must not be modified, removed or moved. Items after it belong to
        the projection and may be adjusted.

    Examples:
        >>> def report_capacity(params):
        ...     params["ReturnConsumedCapacity"] = "TOTAL"
        >>> decorators = RequestDecorators(
        ...     put_item=report_capacity,
        ...     transact_write_items=report_capacity,
        ... )
        >>> store = DynamoDBVersionStore(client, "order-totals", decorators=decorators)
    """

    get_item: RequestDecorator | None = None
    put_item: RequestDecorator | None = None
    update_item: RequestDecorator | None = None
    delete_item: RequestDecorator | None = None
    transact_write_items: RequestDecorator | None = None
    create_table: RequestDecorator | None = None
    delete_table: RequestDecorator | None = None

    def apply(
        self,
        operation: str,
        params: dict[str, Any],
        protected: Iterable[str] = (),
    ) -> dict[str, Any]:
        """Run the decorator registered for ``operation`` on ``params``.

        Args:
            operation: Client method name, e.g. ``"put_item"``.
            params: Request parameters; modified in place.
            protected: Fields the decorator must leave untouched. Use
                ``FIRST_TRANSACT_ITEM`` for the transaction's version item.

        Returns:
            The (decorated) request parameters.

        Raises:
            ValueError: If ``operation`` is not a decoratable operation.
            ProtectedFieldModifiedError: If the decorator changed a
                protected field.
        """
        if operation not in _OPERATIONS:
            raise ValueError(f"Unknown DynamoDB operation '{operation}'")

        decorator: RequestDecorator | None = getattr(self, operation)
        if decorator is None:
            return params

        snapshot = {field: _snapshot(_read_field(params, field)) for field in protected}
        decorator(params)

        for field, before in snapshot.items():
            if _read_field(params, field) != before:
                raise ProtectedFieldModifiedError(operation, field)

        return params


_OPERATIONS = frozenset(field.name for field in fields(RequestDecorators))
