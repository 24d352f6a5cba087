"""Tests for @handles_event routing in projection handlers."""

import pytest
from pydantic import BaseModel
from ulid import ULID

from projectionguard import Event, ProjectionHandler, handles_event
from projectionguard.routing import MessageRouter, setup_event_handling
from tests.fixtures.orders import ItemAdded, ItemRemoved, OrderNoted


class Recorder(ProjectionHandler[list]):
    @handles_event
    async def on_item_added(self, event: ItemAdded, unit: list) -> None:
        unit.append(("payload", event))

    @handles_event
    async def on_item_removed(self, event: Event[ItemRemoved], unit: list) -> None:
        unit.append(("envelope", event))


class OverridingRecorder(Recorder):
    @handles_event
    async def on_item_added_twice(self, event: ItemAdded, unit: list) -> None:
        unit.append(("override", event))


class SyncRecorder(ProjectionHandler[list]):
    @handles_event
    def on_note(self, event: OrderNoted, unit: list) -> None:
        unit.append(event.note)


def envelope(data: BaseModel) -> Event:
    return Event(aggregate_id=ULID(), data=data, sequence_number=1)


@pytest.mark.asyncio
async def test_payload_annotation_receives_payload():
    unit: list = []
    event = envelope(ItemAdded(sku="abc", amount=2))

    await Recorder().handle(event, unit)

    assert unit == [("payload", event.data)]


@pytest.mark.asyncio
async def test_envelope_annotation_receives_event():
    unit: list = []
    event = envelope(ItemRemoved(sku="abc", amount=2))

    await Recorder().handle(event, unit)

    assert unit == [("envelope", event)]
    assert unit[0][1] is event


@pytest.mark.asyncio
async def test_unrouted_events_are_ignored():
    unit: list = []

    await Recorder().handle(envelope(OrderNoted(note="gift")), unit)

    assert unit == []


@pytest.mark.asyncio
async def test_subclass_handler_wins():
    unit: list = []
    event = envelope(ItemAdded(sku="abc", amount=2))

    await OverridingRecorder().handle(event, unit)

    assert unit == [("override", event.data)]


@pytest.mark.asyncio
async def test_sync_handlers_are_supported():
    unit: list = []

    await SyncRecorder().handle(envelope(OrderNoted(note="gift")), unit)

    assert unit == ["gift"]


def test_missing_annotation_is_rejected():
    with pytest.raises(ValueError, match="type annotation"):

        @handles_event
        async def on_anything(self, event, unit) -> None: ...


def test_missing_event_parameter_is_rejected():
    with pytest.raises(ValueError, match="must accept an event parameter"):

        @handles_event
        async def on_nothing(self) -> None: ...


def test_setup_event_handling_returns_router():
    assert isinstance(setup_event_handling(Recorder), MessageRouter)
