"""Unit tests for the schema bootstrap entry point."""

import logging

import pytest

from config import Settings, setup_logging
from init_db import init_db
from store import SqlTreeStore


@pytest.mark.asyncio
async def test_init_db_creates_tree_table(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'trips.db'}"

    await init_db(Settings(database_url=url))

    store = SqlTreeStore.from_url(url)
    try:
        await store.write_batch({"trips/t1/name": "Lisbon"})
        assert await store.read("trips/t1") == {"name": "Lisbon"}
    finally:
        await store.close()


def test_setup_logging_quiets_httpx():
    setup_logging(Settings(log_level="debug"))

    assert logging.getLogger("httpx").level == logging.WARNING
