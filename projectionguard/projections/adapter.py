"""Wrapper that applies a projection handler's events at most once."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Generic, TypeVar

from ..domain import Event
from ..versioning.store import VersionStore, log_extra
from .handler import ProjectionHandler

LOGGER = logging.getLogger(__name__)

TUnit = TypeVar("TUnit")
T = TypeVar("T")


class ProjectionAdapter(Generic[TUnit]):
    """Applies events to a projection through a version store.

    For every event the adapter reads the resource's version, asks the
    handler for the next version, and submits the handler's mutation
    together with a compare-and-swap of the version as one atomic unit.

    A ``False`` result means the event was not applied because it was a
    redelivery or another worker advanced the resource first. This is the
    normal outcome under at-least-once delivery and is not logged as an
    error. Backend errors propagate unchanged; retrying is up to the caller.

    Attributes:
        handler: The projection's business logic.
        store: The version store, bound to the handler's identity key.

    Examples:
        >>> store = SQLVersionStore(pool, handler_key="order-totals")
        >>> adapter = ProjectionAdapter(OrderTotals(), store)
        >>> await adapter.apply(event)
        True
        >>> await adapter.apply(event)  # redelivered
        False
    """

    __slots__ = ("handler", "store")

    def __init__(self, handler: ProjectionHandler[TUnit], store: VersionStore[TUnit]):
        self.handler = handler
        self.store = store

    @property
    def handler_key(self) -> str:
        return self.store.handler_key

    async def resource_version(self, resource: bytes) -> bytes:
        """Return the resource's current version (``b""`` if never seen)."""
        return await self.store.query_version(resource)

    async def apply(self, event: Event[Any], resource: bytes | None = None) -> bool:
        """Apply an event to its resource if it has not been applied yet.

        The handler's ``timeout_hint`` bounds the whole call, from reading
        the version to committing the swap.

        Args:
            event: The delivered event.
            resource: The target resource. Defaults to
                ``handler.resource_for(event)``.

        Returns:
            True if the mutation was applied and the version advanced, False
            if the event had already been applied or lost a race.
        """
        if resource is None:
            resource = self.handler.resource_for(event)

        return await self._with_deadline(event, self._apply(event, resource))

    async def handle_event(
        self,
        resource: bytes,
        current: bytes,
        next: bytes,
        event: Event[Any],
    ) -> bool:
        """Apply an event with versions supplied by the host engine.

        Args:
            resource: The target resource.
            current: The version the engine expects to be stored.
            next: The version to store once the event is applied.
            event: The delivered event.

        Returns:
            True if applied, False on a version conflict.
        """
        return await self._with_deadline(event, self._swap(resource, current, next, event))

    async def close_resource(self, resource: bytes) -> None:
        """Forget a resource's version, e.g. once its read model is discarded."""
        await self.store.delete_resource(resource)

    async def _apply(self, event: Event[Any], resource: bytes) -> bool:
        current = await self.store.query_version(resource)
        next = self.handler.next_version(current, event)

        if next is None:
            LOGGER.debug(
                "Skipping previously applied event",
                extra=log_extra(self.handler_key, resource, event_id=str(event.id)),
            )
            return False

        return await self._swap(resource, current, next, event)

    async def _swap(self, resource: bytes, current: bytes, next: bytes, event: Event[Any]) -> bool:
        async def mutation(unit: TUnit) -> None:
            await self.handler.handle(event, unit)

        applied = await self.store.compare_and_swap(resource, current, next, mutation)

        extra = log_extra(self.handler_key, resource, event_id=str(event.id))
        if applied:
            LOGGER.debug("Applied event", extra=extra)
        else:
            LOGGER.debug("Skipping previously applied event", extra=extra)
        return applied

    async def _with_deadline(self, event: Event[Any], operation: Awaitable[T]) -> T:
        timeout = self.handler.timeout_hint(event)
        if timeout is None:
            return await operation
        return await asyncio.wait_for(operation, timeout)
