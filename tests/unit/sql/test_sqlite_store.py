"""Tests for SQLVersionStore on SQLite (in-memory aiosqlite connections)."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import suppress

import aiosqlite
import pytest
import pytest_asyncio

from projectionguard.integrations.sql import SQLVersionStore
from projectionguard.integrations.sql.sqlite import TABLE_NAME, SQLiteDriver
from tests.contract import RESOURCE, Boom, VersionStoreContract


@pytest_asyncio.fixture
async def db() -> AsyncIterator[aiosqlite.Connection]:
    connection = await aiosqlite.connect(":memory:")
    try:
        yield connection
    finally:
        await connection.close()


@pytest_asyncio.fixture
async def store(db: aiosqlite.Connection) -> SQLVersionStore:
    store = SQLVersionStore(db, "order-totals")
    await store.initialize_schema()
    return store


@pytest.fixture
def other_store(db: aiosqlite.Connection, store: SQLVersionStore) -> SQLVersionStore:
    return SQLVersionStore(db, "order-audit")


@pytest_asyncio.fixture
async def totals(db: aiosqlite.Connection) -> aiosqlite.Connection:
    await db.execute("CREATE TABLE order_totals (order_id TEXT PRIMARY KEY, total INTEGER)")
    await db.commit()
    return db


async def read_totals(db: aiosqlite.Connection) -> dict[str, int]:
    async with db.execute("SELECT order_id, total FROM order_totals") as cursor:
        return {row[0]: row[1] for row in await cursor.fetchall()}


class TestSQLiteVersionStore(VersionStoreContract):
    pass


class TestSQLiteTransactions:
    @pytest.mark.asyncio
    async def test_mutation_commits_with_version(
        self, store: SQLVersionStore, totals: aiosqlite.Connection
    ):
        async def mutation(tx: aiosqlite.Connection) -> None:
            await tx.execute("INSERT INTO order_totals VALUES (?, ?)", ("order-42", 10))

        assert await store.compare_and_swap(RESOURCE, b"", b"v1", mutation) is True
        assert await read_totals(totals) == {"order-42": 10}

    @pytest.mark.asyncio
    async def test_failing_mutation_rolls_back_its_writes(
        self, store: SQLVersionStore, totals: aiosqlite.Connection
    ):
        async def mutation(tx: aiosqlite.Connection) -> None:
            await tx.execute("INSERT INTO order_totals VALUES (?, ?)", ("order-42", 10))
            raise Boom()

        with pytest.raises(Boom):
            await store.compare_and_swap(RESOURCE, b"", b"v1", mutation)

        assert await read_totals(totals) == {}
        assert await store.query_version(RESOURCE) == b""

    @pytest.mark.asyncio
    async def test_rejected_swap_skips_mutation(
        self, store: SQLVersionStore, totals: aiosqlite.Connection
    ):
        await store.store_version(RESOURCE, b"v1")

        async def mutation(tx: aiosqlite.Connection) -> None:
            await tx.execute("INSERT INTO order_totals VALUES (?, ?)", ("order-42", 10))

        assert await store.compare_and_swap(RESOURCE, b"", b"v2", mutation) is False
        assert await read_totals(totals) == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("yields", range(8))
    async def test_cancelled_swap_leaves_connection_usable(
        self, store: SQLVersionStore, db: aiosqlite.Connection, yields: int
    ):
        task = asyncio.create_task(store.compare_and_swap(RESOURCE, b"", b"v1"))
        for _ in range(yields):
            await asyncio.sleep(0)
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

        current = await store.query_version(RESOURCE)
        assert current in (b"", b"v1")
        assert not db.in_transaction
        assert await store.compare_and_swap(RESOURCE, current, b"v2") is True
        assert await store.query_version(RESOURCE) == b"v2"

    @pytest.mark.asyncio
    async def test_drop_schema(self, store: SQLVersionStore, db: aiosqlite.Connection):
        await store.drop_schema()

        async with db.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (TABLE_NAME,)
        ) as cursor:
            assert await cursor.fetchone() is None


class TestSQLiteDuplicateKeys:
    @pytest.mark.asyncio
    async def test_primary_key_violation_is_duplicate(
        self, store: SQLVersionStore, db: aiosqlite.Connection
    ):
        driver = SQLiteDriver()
        await store.store_version(RESOURCE, b"v1")

        with pytest.raises(aiosqlite.IntegrityError) as exc_info:
            async with driver.transaction(db) as tx:
                await driver._insert(tx, "order-totals", RESOURCE, b"v2")

        assert driver.is_duplicate_key_error(exc_info.value) is True

    @pytest.mark.asyncio
    async def test_other_constraint_violations_are_not_duplicates(
        self, store: SQLVersionStore, db: aiosqlite.Connection
    ):
        driver = SQLiteDriver()

        with pytest.raises(aiosqlite.IntegrityError) as exc_info:
            async with driver.transaction(db) as tx:
                await driver._insert(tx, "order-totals", RESOURCE, None)  # type: ignore[arg-type]

        assert driver.is_duplicate_key_error(exc_info.value) is False

    def test_unrelated_errors_are_not_duplicates(self):
        assert SQLiteDriver().is_duplicate_key_error(RuntimeError("boom")) is False
        assert SQLiteDriver().is_duplicate_key_error(aiosqlite.IntegrityError("boom")) is False
