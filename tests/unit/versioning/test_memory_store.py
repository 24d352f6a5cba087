"""Tests for InMemoryVersionStore."""

import pytest

from projectionguard import InMemoryData, InMemoryVersionStore, VersionStore
from tests.contract import RESOURCE, Boom, VersionStoreContract


@pytest.fixture
def store() -> InMemoryVersionStore:
    return InMemoryVersionStore("order-totals")


@pytest.fixture
def other_store(store: InMemoryVersionStore) -> InMemoryVersionStore:
    return InMemoryVersionStore("order-audit", records=store.records)


class TestInMemoryVersionStore(VersionStoreContract):
    pass


class TestInMemoryData:
    @pytest.mark.asyncio
    async def test_mutation_changes_become_visible_with_the_version(
        self, store: InMemoryVersionStore
    ):
        async def mutation(data: InMemoryData) -> None:
            data["totals"] = {"order-42": 10}

        assert await store.compare_and_swap(RESOURCE, b"", b"v1", mutation)
        assert store.data == {"totals": {"order-42": 10}}

    @pytest.mark.asyncio
    async def test_failed_mutation_discards_staged_changes(self, store: InMemoryVersionStore):
        store.data["totals"] = {"order-42": 10}

        async def mutation(data: InMemoryData) -> None:
            data["totals"]["order-42"] += 5
            raise Boom()

        with pytest.raises(Boom):
            await store.compare_and_swap(RESOURCE, b"", b"v1", mutation)

        assert store.data == {"totals": {"order-42": 10}}

    @pytest.mark.asyncio
    async def test_rejected_swap_does_not_run_mutation(self, store: InMemoryVersionStore):
        await store.store_version(RESOURCE, b"v1")

        async def mutation(data: InMemoryData) -> None:
            data["touched"] = True

        assert not await store.compare_and_swap(RESOURCE, b"", b"v2", mutation)
        assert "touched" not in store.data

    @pytest.mark.asyncio
    async def test_drop_schema_clears_records_and_data(self, store: InMemoryVersionStore):
        await store.compare_and_swap(RESOURCE, b"", b"v1")
        store.data["x"] = 1

        await store.drop_schema()

        assert store.records == {}
        assert store.data == {}


def test_in_memory_factory():
    store = VersionStore.in_memory("order-totals")

    assert isinstance(store, InMemoryVersionStore)
    assert store.handler_key == "order-totals"
