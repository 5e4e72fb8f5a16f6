"""Tests for the store connector lifecycle."""

import asyncio

import pytest
from sqlalchemy import inspect

from money_manager.database import Store
from money_manager.errors import (
    ConfigurationError,
    ConnectivityError,
    ServiceUnavailableError,
    StoreTimeoutError,
)


def table_names(store):
    async def _names():
        async with store.engine.connect() as conn:
            return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    return _names()


class TestConnect:

    @pytest.mark.parametrize("url", [None, ""])
    def test_missing_url(self, url):
        with pytest.raises(ConfigurationError):
            asyncio.run(Store.connect(url))

    def test_unreachable_store(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'no' / 'such' / 'dir' / 'money.db'}"
        with pytest.raises(ConnectivityError):
            asyncio.run(Store.connect(url))

    def test_creates_tables(self, database_url):
        async def scenario():
            store = await Store.connect(database_url)
            try:
                return set(await table_names(store))
            finally:
                await store.close()

        assert {"users", "spending", "income"} <= asyncio.run(scenario())

    def test_connect_is_repeatable(self, database_url):
        async def scenario():
            first = await Store.connect(database_url)
            await first.close()
            second = await Store.connect(database_url)
            await second.close()

        asyncio.run(scenario())


class TestClose:

    def test_close_is_idempotent(self, database_url):
        async def scenario():
            store = await Store.connect(database_url)
            await store.close()
            await store.close()
            return store.closed

        assert asyncio.run(scenario()) is True

    def test_closed_store_refuses_work(self, database_url):
        async def scenario():
            store = await Store.connect(database_url)
            await store.close()
            await store.ping()

        with pytest.raises(ServiceUnavailableError):
            asyncio.run(scenario())


class TestDeadline:

    def test_slow_call_times_out(self, database_url):
        async def scenario():
            store = await Store.connect(database_url)
            store.timeout = 0.05
            try:
                await store._bounded(asyncio.sleep(1))
            finally:
                await store.close()

        with pytest.raises(StoreTimeoutError) as excinfo:
            asyncio.run(scenario())
        assert excinfo.value.status_code == 504
