"""In-process stand-in for an aiobotocore DynamoDB client.

Implements the subset of the low-level API the version store uses, with
enough condition and update expression support for the tests:
``attribute_exists``/``attribute_not_exists``, equality conditions,
``SET a = :v`` and ``ADD a :n`` updates. Errors are raised as botocore
``ClientError`` with the same codes DynamoDB returns.
"""

import copy
import re
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

from botocore.exceptions import ClientError

Item = dict[str, dict[str, Any]]

_FUNCTION = re.compile(r"^(attribute_exists|attribute_not_exists)\((\S+)\)$")
_EQUALS = re.compile(r"^(\S+)\s*=\s*(:\S+)$")


def client_error(operation: str, code: str, **response: Any) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}, **response}, operation)


class FakeWaiter:
    def __init__(self, client: "FakeDynamoDBClient", name: str):
        self.client = client
        self.name = name

    async def wait(self, **kwargs: Any) -> None:
        self.client.waits.append((self.name, kwargs))


class FakeDynamoDBClient:
    def __init__(self, service_name: str = "dynamodb"):
        self.meta = SimpleNamespace(service_model=SimpleNamespace(service_name=service_name))
        self.tables: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.waits: list[tuple[str, dict[str, Any]]] = []
        self.errors: dict[str, ClientError] = {}

    # ========== Helpers ==========

    def _record(self, operation: str, params: dict[str, Any]) -> None:
        self.calls.append((operation, copy.deepcopy(params)))
        error = self.errors.pop(operation, None)
        if error is not None:
            raise error

    def _table(self, operation: str, name: str) -> dict[str, Any]:
        table = self.tables.get(name)
        if table is None:
            raise client_error(operation, "ResourceNotFoundException")
        return table

    @staticmethod
    def _key(table: dict[str, Any], values: Item) -> tuple:
        return tuple(
            (name, *next(iter(values[name].items()))) for name in table["key_names"]
        )

    @staticmethod
    def _name(token: str, names: dict[str, str]) -> str:
        return names.get(token, token)

    def _check(self, item: Item | None, params: dict[str, Any]) -> bool:
        expression = params.get("ConditionExpression")
        if not expression:
            return True
        names = params.get("ExpressionAttributeNames", {})
        values = params.get("ExpressionAttributeValues", {})
        current = item or {}

        for clause in re.split(r"\s+AND\s+", expression.strip()):
            match = _FUNCTION.match(clause)
            if match:
                present = self._name(match.group(2), names) in current
                if present != (match.group(1) == "attribute_exists"):
                    return False
                continue
            match = _EQUALS.match(clause)
            if match is None:
                raise NotImplementedError(clause)
            attribute = self._name(match.group(1), names)
            if current.get(attribute) != values[match.group(2)]:
                return False
        return True

    def _update(self, item: Item, params: dict[str, Any]) -> Item:
        names = params.get("ExpressionAttributeNames", {})
        values = params.get("ExpressionAttributeValues", {})
        updated = copy.deepcopy(item)

        for action, body in re.findall(r"(SET|ADD)\s+(.+?)(?=\s+(?:SET|ADD)\s+|$)", params["UpdateExpression"]):
            for assignment in body.split(","):
                if action == "SET":
                    target, value = (part.strip() for part in assignment.split("="))
                    updated[self._name(target, names)] = values[value]
                else:
                    target, value = assignment.split()
                    attribute = self._name(target, names)
                    total = Decimal(updated.get(attribute, {"N": "0"})["N"]) + Decimal(values[value]["N"])
                    updated[attribute] = {"N": str(total)}
        return updated

    def _prepare(self, kind: str, params: dict[str, Any]) -> tuple[dict, tuple, Item | None]:
        """Evaluate one write; return (table, key, new item or None for delete)."""
        table = self._table(kind, params["TableName"])
        key_values = params["Item"] if kind == "Put" else params["Key"]
        key = self._key(table, key_values)
        existing = table["items"].get(key)

        if not self._check(existing, params):
            raise client_error(kind, "ConditionalCheckFailedException")

        if kind == "Put":
            return table, key, copy.deepcopy(params["Item"])
        if kind == "Update":
            base = existing if existing is not None else copy.deepcopy(params["Key"])
            return table, key, self._update(base, params)
        if kind == "Delete":
            return table, key, None
        # ConditionCheck
        return table, key, existing

    @staticmethod
    def _apply(kind: str, table: dict, key: tuple, item: Item | None) -> None:
        if kind == "ConditionCheck":
            return
        if item is None:
            table["items"].pop(key, None)
        else:
            table["items"][key] = item

    # ========== Item operations ==========

    async def get_item(self, **params: Any) -> dict[str, Any]:
        self._record("get_item", params)
        table = self._table("GetItem", params["TableName"])
        item = table["items"].get(self._key(table, params["Key"]))
        if item is None:
            return {}
        if "ProjectionExpression" in params:
            names = params.get("ExpressionAttributeNames", {})
            wanted = {self._name(token.strip(), names) for token in params["ProjectionExpression"].split(",")}
            item = {name: value for name, value in item.items() if name in wanted}
        return {"Item": copy.deepcopy(item)}

    async def _single(self, operation: str, kind: str, params: dict[str, Any]) -> dict[str, Any]:
        self._record(operation, params)
        table, key, item = self._prepare(kind, params)
        self._apply(kind, table, key, item)
        return {}

    async def put_item(self, **params: Any) -> dict[str, Any]:
        return await self._single("put_item", "Put", params)

    async def update_item(self, **params: Any) -> dict[str, Any]:
        return await self._single("update_item", "Update", params)

    async def delete_item(self, **params: Any) -> dict[str, Any]:
        return await self._single("delete_item", "Delete", params)

    async def transact_write_items(self, **params: Any) -> dict[str, Any]:
        self._record("transact_write_items", params)

        prepared = []
        reasons = []
        for entry in params["TransactItems"]:
            ((kind, request),) = entry.items()
            try:
                prepared.append((kind, *self._prepare(kind, request)))
                reasons.append({"Code": "None"})
            except ClientError as error:
                if error.response["Error"]["Code"] != "ConditionalCheckFailedException":
                    raise
                reasons.append({"Code": "ConditionalCheckFailed", "Message": "The conditional request failed"})

        if any(reason["Code"] != "None" for reason in reasons):
            raise client_error(
                "TransactWriteItems", "TransactionCanceledException", CancellationReasons=reasons
            )

        for kind, table, key, item in prepared:
            self._apply(kind, table, key, item)
        return {}

    # ========== Table operations ==========

    async def create_table(self, **params: Any) -> dict[str, Any]:
        self._record("create_table", params)
        name = params["TableName"]
        if name in self.tables:
            raise client_error("CreateTable", "ResourceInUseException")
        self.tables[name] = {
            "key_names": [key["AttributeName"] for key in params["KeySchema"]],
            "params": copy.deepcopy(params),
            "items": {},
        }
        return {"TableDescription": {"TableName": name, "TableStatus": "CREATING"}}

    async def delete_table(self, **params: Any) -> dict[str, Any]:
        self._record("delete_table", params)
        self._table("DeleteTable", params["TableName"])
        del self.tables[params["TableName"]]
        return {}

    def get_waiter(self, name: str) -> FakeWaiter:
        return FakeWaiter(self, name)

    # ========== Test helpers ==========

    def items(self, table_name: str) -> list[Item]:
        return list(self.tables[table_name]["items"].values())
