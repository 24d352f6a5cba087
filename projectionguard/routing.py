"""Annotation-based routing of events to projection handler methods."""

import inspect
from collections.abc import Callable
from functools import singledispatch
from typing import Any, TypeVar, get_args, get_origin

T = TypeVar("T")

# Marker for handlers that want the Event envelope, not just the payload
_WANTS_EVENT_WRAPPER_ATTR = "_wants_event_wrapper"
_IS_EVENT_HANDLER_ATTR = "_is_event_handler"
_HANDLES_EVENT_TYPE_ATTR = "_handles_event_type"


def _ignore(message: Any, instance: Any, *args: Any, **kwargs: Any) -> None:
    # Projections only react to the events they declare
    return None


def _extract_event_type(func: Callable[..., Any]) -> tuple[type, bool]:
    """Extract the routed event type from a handler method.

    The first parameter after ``self`` carries the event. It may be annotated
    with the payload type (``ItemAdded``) or with the envelope
    (``Event[ItemAdded]``), in which case the handler receives the envelope.

    Args:
        func: The handler method to inspect.

    Returns:
        A tuple of (payload_type, wants_wrapper).

    Raises:
        ValueError: If the event parameter is missing or lacks an annotation.
    """
    func_name = getattr(func, "__name__", repr(func))
    params = list(inspect.signature(func).parameters.values())

    if len(params) < 2:
        raise ValueError(f"Handler {func_name} must accept an event parameter")

    param = params[1]
    if param.annotation is inspect.Parameter.empty:
        raise ValueError(f"Handler {func_name} parameter '{param.name}' must have a type annotation")
    annotation = param.annotation

    from .domain import Event  # Import here to avoid circular dependency

    if get_origin(annotation) is Event:
        args = get_args(annotation)
        if not args:
            raise ValueError(
                f"Handler {func_name}: Event type must have a type argument, e.g., Event[ItemAdded]"
            )
        return (args[0], True)

    # Pydantic parametrizes Event[T] into a concrete subclass at runtime
    if isinstance(annotation, type) and issubclass(annotation, Event):
        metadata = getattr(annotation, "__pydantic_generic_metadata__", None)
        if metadata and metadata.get("origin") is Event and metadata.get("args"):
            return (metadata["args"][0], True)

    return (annotation, False)


class MessageRouter:
    """Dispatches event payloads to type-specific handler methods.

    Uses singledispatch, so a handler registered for a base class also
    receives events of its subclasses.
    """

    __slots__ = ("_dispatch",)

    def __init__(self, default_handler: Callable[..., Any] = _ignore):
        @singledispatch
        def dispatch(message: object, instance: object, *args: Any, **kwargs: Any) -> object:
            return default_handler(message, instance, *args, **kwargs)

        self._dispatch = dispatch

    def register(
        self,
        message_type: type,
        handler: Callable[..., object],
        wants_wrapper: bool = False,
    ) -> None:
        """Register a handler for a specific event payload type.

        Args:
            message_type: The payload class this handler processes.
            handler: The unbound method to call.
            wants_wrapper: If True, the handler receives the Event envelope
                passed to ``route`` as ``event_wrapper`` instead of the payload.
        """
        if wants_wrapper:

            def wrapper(
                msg: object, inst: object, *args: Any, h: Any = handler, **kwargs: Any
            ) -> object:
                event_wrapper = kwargs.pop("event_wrapper", None)
                return h(inst, event_wrapper if event_wrapper is not None else msg, *args, **kwargs)

            self._dispatch.register(message_type)(wrapper)
        else:

            def payload_wrapper(
                msg: object, inst: object, *args: Any, h: Any = handler, **kwargs: Any
            ) -> object:
                kwargs.pop("event_wrapper", None)
                return h(inst, msg, *args, **kwargs)

            self._dispatch.register(message_type)(payload_wrapper)

    def route(self, instance: Any, message: Any, *args: Any, **kwargs: Any) -> object:
        """Route a payload to its registered handler.

        Args:
            instance: The handler instance (self).
            message: The event payload to route on.
            *args: Extra positional arguments, e.g. the unit of work.
            **kwargs: Extra keyword arguments; ``event_wrapper`` carries the
                full envelope for handlers that asked for it.

        Returns:
            Whatever the handler returns (usually a coroutine).
        """
        return self._dispatch(message, instance, *args, **kwargs)


def handles_event(func: Callable[..., T]) -> Callable[..., T]:
    """Decorator marking a method as a projection event handler.

    The event type is taken from the annotation of the first parameter after
    ``self``. The second parameter receives the backend's unit of work (an
    open transaction, a session, or a list of transaction items).

    Example:
        >>> class OrderTotals(ProjectionHandler[asyncpg.Connection]):
        ...     @handles_event
        ...     async def on_item_added(self, event: ItemAdded, tx: asyncpg.Connection):
        ...         await tx.execute("UPDATE totals SET ...", ...)
    """
    message_type, wants_wrapper = _extract_event_type(func)
    setattr(func, _HANDLES_EVENT_TYPE_ATTR, message_type)
    setattr(func, _IS_EVENT_HANDLER_ATTR, True)
    setattr(func, _WANTS_EVENT_WRAPPER_ATTR, wants_wrapper)
    return func


def setup_event_handling(cls: type) -> MessageRouter:
    """Build the event routing table for a handler class.

    Scans the class hierarchy for methods decorated with ``@handles_event``.
    Subclass methods take precedence over inherited ones for the same type.

    Args:
        cls: The class to set up routing for.

    Returns:
        A configured MessageRouter. Unrouted events are ignored.
    """
    router = MessageRouter()
    seen: set[type] = set()

    for klass in cls.__mro__:
        for value in klass.__dict__.values():
            if not getattr(value, _IS_EVENT_HANDLER_ATTR, False):
                continue
            message_type = getattr(value, _HANDLES_EVENT_TYPE_ATTR)
            if message_type in seen:
                continue
            seen.add(message_type)
            wants_wrapper = getattr(value, _WANTS_EVENT_WRAPPER_ATTR, False)
            router.register(message_type, value, wants_wrapper=wants_wrapper)

    return router
