from __future__ import annotations

import sqlite3

import pytest

from shop_service.database import apply_schema
from shop_service.repository import UserRepository


@pytest.fixture()
def repo(tmp_path):
    db_path = tmp_path / "shop.db"

    def connection_factory():
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        return conn

    conn = connection_factory()
    try:
        apply_schema(conn)
    finally:
        conn.close()

    return UserRepository(connection_factory=connection_factory)
