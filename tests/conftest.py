"""Central test fixtures - event factories for the order domain."""

import pytest
from pydantic import BaseModel
from ulid import ULID

from projectionguard import Event
from tests.fixtures.orders import EventFactory


@pytest.fixture
def order_id() -> ULID:
    """Generate a unique order (aggregate) ID."""
    return ULID()


@pytest.fixture
def make_event(order_id: ULID) -> EventFactory:
    """Build events for ``order_id`` with an explicit sequence number."""

    def factory(data: BaseModel, sequence_number: int, aggregate_id: ULID | None = None) -> Event:
        return Event(
            aggregate_id=aggregate_id or order_id,
            data=data,
            sequence_number=sequence_number,
        )

    return factory
