"""In-memory version store for tests and single-process use."""

import asyncio
import copy
from typing import Any

from .store import Mutation, VersionStore

InMemoryData = dict[str, Any]


class InMemoryVersionStore(VersionStore[InMemoryData]):
    """Version store keeping records and projection data in process memory.

    Besides version records, the store owns a ``data`` dict that projections
    can use as their read model. Mutations receive a staged deep copy of
    ``data``; the copy replaces ``data`` only when the version swap applies,
    so an event's data changes and its version become visible together.

    A single lock serializes compare-and-swap calls, which makes the swap
    atomic for concurrent coroutines in the same event loop.

    Note:
        Everything is lost on restart. Several stores may share one
        ``records`` dict to emulate multiple handlers on a single backend.

    Examples:
        >>> store = InMemoryVersionStore("order-totals")
        >>> async def mutation(data):
        ...     data["order-42"] = {"total": 10}
        >>> await store.compare_and_swap(b"order-42", b"", b"v1", mutation)
        True
        >>> await store.query_version(b"order-42")
        b'v1'
    """

    __slots__ = ("handler_key", "records", "data", "_lock")

    def __init__(
        self,
        handler_key: str,
        records: dict[tuple[str, bytes], bytes] | None = None,
    ):
        self.handler_key = handler_key
        self.records: dict[tuple[str, bytes], bytes] = records if records is not None else {}
        self.data: InMemoryData = {}
        self._lock = asyncio.Lock()

    async def query_version(self, resource: bytes) -> bytes:
        return self.records.get((self.handler_key, resource), b"")

    async def compare_and_swap(
        self,
        resource: bytes,
        current: bytes,
        next: bytes,
        mutation: Mutation[InMemoryData] | None = None,
    ) -> bool:
        key = (self.handler_key, resource)

        async with self._lock:
            stored = self.records.get(key)

            if not current:
                if stored is not None:
                    return False
            elif stored != current:
                return False

            staged = copy.deepcopy(self.data)
            if mutation is not None:
                await mutation(staged)

            if next:
                self.records[key] = next
            else:
                self.records.pop(key, None)
            self.data = staged
            return True

    async def delete_resource(self, resource: bytes) -> None:
        self.records.pop((self.handler_key, resource), None)

    async def store_version(self, resource: bytes, version: bytes) -> None:
        self.records[(self.handler_key, resource)] = version

    async def initialize_schema(self) -> None:
        pass

    async def drop_schema(self) -> None:
        self.records.clear()
        self.data = {}

    def is_compatible(self) -> bool:
        return True
