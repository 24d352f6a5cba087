"""Base class for the business logic of a version-tracked projection."""

import inspect
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from ..domain import Event
from ..routing import setup_event_handling
from ..versioning.tokens import decode_sequence, encode_sequence

if TYPE_CHECKING:
    from ..routing import MessageRouter

TUnit = TypeVar("TUnit")


class ProjectionHandler(Generic[TUnit]):
    """Business logic that builds a read model from events.

    Subclass it and mark methods with ``@handles_event``. Each handler
    method receives the event (payload or ``Event[...]`` envelope, depending
    on its annotation) and the backend's unit of work, and performs its
    writes through that unit so they commit together with the version swap:

    - SQL stores: the open connection/transaction
    - DynamoDB: the list of ``TransactWriteItems`` entries to append to
    - MongoDB: the client session
    - in-memory: the staged data dict

    Events without a handler method are ignored, but they still advance the
    resource's version.

    The hooks below decide which resource an event targets, which version it
    moves the resource to, and how long the backend call may take.

    Example:
        >>> class OrderTotals(ProjectionHandler[InMemoryData]):
        ...     @handles_event
        ...     async def on_item_added(self, event: ItemAdded, data: InMemoryData) -> None:
        ...         totals = data.setdefault("totals", {})
        ...         totals[event.order_id] = totals.get(event.order_id, 0) + event.amount
    """

    _event_router: ClassVar["MessageRouter"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls._event_router = setup_event_handling(cls)

    async def handle(self, event: Event[Any], unit: TUnit) -> None:
        """Route an event to its handler method.

        Args:
            event: The delivered event envelope.
            unit: The backend's unit of work.
        """
        result = self._event_router.route(self, event.data, unit, event_wrapper=event)
        if inspect.isawaitable(result):
            await result

    def resource_for(self, event: Event[Any]) -> bytes:
        """Return the resource an event targets.

        Defaults to the aggregate that produced the event.
        """
        return event.aggregate_id.bytes

    def next_version(self, current: bytes, event: Event[Any]) -> bytes | None:
        """Compute the version the resource moves to after this event.

        The default derives versions from the event's sequence number. An
        event whose sequence number is not past the current version has
        already been incorporated, so ``None`` is returned and nothing is
        written.

        Override this for projections whose versions are not sequence tokens.
        Return ``b""`` to reset the resource to "never seen".

        Args:
            current: The resource's stored version.
            event: The event being applied.

        Returns:
            The next version, or None if the event must not be applied.
        """
        if decode_sequence(current) >= event.sequence_number:
            return None
        return encode_sequence(event.sequence_number)

    def timeout_hint(self, event: Event[Any]) -> float | None:
        """Deadline in seconds for applying an event, or None for no deadline."""
        return None
