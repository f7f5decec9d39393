"""
Test configuration and fixtures for the Theatre Stock backend test suite.

Provides:
- In-memory SQLite test database (isolated per test)
- FastAPI TestClient fixture
- Factory fixtures for creating test data
"""
import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from backend.core.db.base import create_schema


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

def _create_test_db() -> sqlite3.Connection:
    """Create an in-memory SQLite database with the full schema."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    create_schema(conn)
    return conn


@contextmanager
def _test_get_db(conn: sqlite3.Connection):
    """Replacement for get_db() that uses the shared test connection."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


@pytest.fixture()
def test_db():
    """Provide a fresh in-memory SQLite database for each test."""
    conn = _create_test_db()
    yield conn
    conn.close()


@pytest.fixture()
def patch_db(test_db):
    """
    Patch the get_db context manager across all db modules so that
    every database call uses the in-memory test database.
    """
    cm = lambda: _test_get_db(test_db)  # noqa: E731

    with (
        patch("backend.core.db.base.get_db", cm),
        patch("backend.core.db.items.get_db", cm),
        patch("backend.core.db.storages.get_db", cm),
        patch("backend.core.db.activities.get_db", cm),
        patch("backend.core.db.store.get_db", cm),
    ):
        yield test_db


@pytest.fixture()
def client(patch_db):
    """
    Provide a FastAPI TestClient with the database patched.

    init_db is skipped so no database file is created on disk.
    """
    from backend.api.main import app

    with patch("backend.api.main.init_db"):
        with TestClient(app) as c:
            yield c


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------

def _insert_item(
    db: sqlite3.Connection,
    *,
    item_id: Optional[str] = None,
    sku: str = "SKU-1",
    **fields,
) -> str:
    """Insert an item document and return its ID."""
    iid = item_id or str(uuid.uuid4())
    now = datetime.now(timezone.utc).isoformat()
    doc = {
        "sku": sku,
        "name": fields.pop("name", f"Item {sku}"),
        "system": [],
        "qty": 0,
        "min": 0,
        "max": None,
        "location": None,
        **fields,
    }

    db.execute(
        "INSERT INTO items (id, sku, data, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
        (iid, sku, json.dumps(doc), now, now),
    )
    db.commit()
    return iid


def _insert_storage(
    db: sqlite3.Connection,
    *,
    storage_id: Optional[str] = None,
    name: str = "Cabinet A",
    room: str = "Theatre 1",
) -> str:
    """Insert a storage record and return its ID."""
    sid = storage_id or str(uuid.uuid4())
    now = datetime.now(timezone.utc).isoformat()

    db.execute(
        "INSERT INTO storages (id, name, room, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
        (sid, name, room, now, now),
    )
    db.commit()
    return sid


@pytest.fixture()
def create_item(patch_db):
    return lambda **kwargs: _insert_item(patch_db, **kwargs)


@pytest.fixture()
def create_storage(patch_db):
    return lambda **kwargs: _insert_storage(patch_db, **kwargs)
