"""Backend-agnostic contract for per-resource version tracking."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .memory import InMemoryVersionStore

TUnit = TypeVar("TUnit")

Mutation = Callable[[TUnit], Awaitable[None]]
"""Caller-supplied business mutation, bundled into the same atomic unit as
the version swap. It receives the backend's unit of work."""


class VersionStore(ABC, Generic[TUnit]):
    """Stores one opaque version token per (handler, resource) pair.

    A version store is bound to a single handler key at construction. The
    only way to advance a resource's version is ``compare_and_swap``, which
    applies the caller's mutation and the version change atomically, or
    neither of them.

    Compare-and-swap rules:

    - ``current`` empty, no record: insert ``next``, applied.
    - ``current`` empty, record exists: not applied.
    - ``current`` set, ``next`` empty: delete the record if it holds
      ``current``.
    - both set: replace ``current`` with ``next`` if the record holds
      ``current``.
    - both empty: applied only when no record exists; nothing is written.

    A conflict is reported as ``False``, never raised. It is the expected
    outcome for redelivered events and for the loser of a concurrent race.
    Any other failure propagates unchanged.

    Type Parameters:
        TUnit: The unit of work handed to mutations (an open transaction, a
            client session, a list of transaction items...).

    Attributes:
        handler_key: Identity of the projection handler owning the records.
    """

    handler_key: str

    @staticmethod
    def in_memory(handler_key: str) -> "InMemoryVersionStore":
        from .memory import InMemoryVersionStore

        return InMemoryVersionStore(handler_key)

    @abstractmethod
    async def query_version(self, resource: bytes) -> bytes:
        """Return the resource's current version.

        Args:
            resource: The resource identifier.

        Returns:
            The stored version token, or ``b""`` if there is no record.
        """
        ...

    @abstractmethod
    async def compare_and_swap(
        self,
        resource: bytes,
        current: bytes,
        next: bytes,
        mutation: Mutation[TUnit] | None = None,
    ) -> bool:
        """Atomically apply ``mutation`` and move the version from ``current`` to ``next``.

        Args:
            resource: The resource identifier.
            current: The version the caller believes is stored.
            next: The version to store; ``b""`` removes the record.
            mutation: Optional business mutation to run in the same unit.
                Stores that execute statements call it only once the swap
                has matched. Stores that collect requests into the unit
                (DynamoDB) call it first and discard its requests on a
                conflict. Either way its effects persist only when the swap
                applies.

        Returns:
            True if the swap (and mutation) were applied, False on conflict.
        """
        ...

    @abstractmethod
    async def delete_resource(self, resource: bytes) -> None:
        """Unconditionally remove the resource's version record.

        Administrative cleanup only; this is not part of the optimistic path.
        """
        ...

    @abstractmethod
    async def store_version(self, resource: bytes, version: bytes) -> None:
        """Unconditionally set the resource's version.

        Used for provisioning and migrations only.
        """
        ...

    @abstractmethod
    async def initialize_schema(self) -> None:
        """Create the storage structures for version records."""
        ...

    @abstractmethod
    async def drop_schema(self) -> None:
        """Drop the storage structures for version records."""
        ...

    @abstractmethod
    def is_compatible(self) -> bool:
        """Report whether the configured backend matches this implementation."""
        ...


def describe_resource(resource: bytes) -> str:
    """Render a resource identifier for log records."""
    return resource.hex()


def log_extra(handler_key: str, resource: bytes, **fields: Any) -> dict[str, Any]:
    """Build the ``extra`` dict used by store and adapter log records."""
    extra: dict[str, Any] = {
        "handler_key": handler_key,
        "resource": describe_resource(resource),
    }
    extra.update(fields)
    return extra
