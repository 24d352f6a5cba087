from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field
from ulid import ULID

T = TypeVar("T", bound=BaseModel)


def utc_now() -> datetime:
    """Get the current UTC timestamp.

    Returns:
        Current datetime with UTC timezone information
    """
    return datetime.now(tz=timezone.utc)


class Event(BaseModel, Generic[T]):
    """Envelope for an event delivered to a projection.

    The host engine delivers events at least once, so the same envelope (same
    ``id``, same ``sequence_number``) may arrive more than once. Projections
    use the sequence number to derive the resource's next version token,
    which is what makes redelivery detectable.

    Type Parameters:
        T: Pydantic BaseModel subclass defining the event data schema

    Attributes:
        id: Unique identifier for this specific event instance
        aggregate_id: ID of the aggregate that produced this event. By
            default this is also the projection resource the event targets.
        data: Typed event payload (e.g., OrderPlaced, ItemAdded)
        sequence_number: Position in the aggregate's event stream (1-indexed)
        timestamp: When the event occurred (UTC timezone)
        correlation_id: Optional correlation ID for tracing
        causation_id: Optional ID of what caused this event

    Examples:
        >>> event = Event(
        ...     aggregate_id=order_id,
        ...     data=ItemAdded(sku="abc", quantity=2),
        ...     sequence_number=3,
        ... )
    """

    id: ULID = Field(
        default_factory=ULID,
        description="Unique identifier for this event instance",
    )
    aggregate_id: ULID = Field(description="ID of the aggregate that produced this event")
    data: T = Field(description="Typed event data conforming to schema T")
    sequence_number: int = Field(
        ge=1,
        description="Position in aggregate's event stream (1-indexed, monotonically increasing)",
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC timezone)",
    )
    correlation_id: ULID | None = Field(
        default=None,
        description="Correlation ID for tracing the entire logical operation across services",
    )
    causation_id: ULID | None = Field(
        default=None,
        description="ID of what directly caused this event (typically the command_id)",
    )
