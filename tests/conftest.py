"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest

from src.core import db_client
from src.core.config import settings
from tests.sample_data import SAMPLE_PRODUCTS


PRODUCTS_DDL = """
CREATE TABLE products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    description TEXT,
    category TEXT,
    created TEXT DEFAULT CURRENT_TIMESTAMP,
    updated TEXT DEFAULT CURRENT_TIMESTAMP
)
"""


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncGenerator[str, None]:
    """Provide a fresh SQLite database file with an empty products table."""
    db_path = str(tmp_path / "fuzzyrank_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    conn = await db_client.get_connection(db_path=db_path)
    await conn.execute(PRODUCTS_DDL)
    await conn.commit()

    yield db_path

    await db_client.close_connection(db_path=db_path)


@pytest.fixture
async def seeded_sqlite_db(sqlite_db: str) -> str:
    """SQLite database with SAMPLE_PRODUCTS inserted in order (ids 1..5)."""
    for product in SAMPLE_PRODUCTS:
        await db_client.create_record(collection="products", data=product, db_path=sqlite_db)
    return sqlite_db
