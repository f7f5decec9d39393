"""
Database base module - connection management and initialization.

Items are stored as JSON documents so a field can be unset (removed)
rather than blanked; sku is kept in its own column for lookups.
"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from backend.core.config import settings

# Database location
DB_PATH = Path(settings.DB_PATH)

# Columns kept outside the JSON document
ITEM_META_COLUMNS = ("id", "created_at", "updated_at")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Initialize database tables."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        # WAL lets the export read while an import is writing
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        create_schema(conn)


def create_schema(conn: sqlite3.Connection):
    conn.executescript("""
        -- Items: one JSON document per inventory line
        CREATE TABLE IF NOT EXISTS items (
            id TEXT PRIMARY KEY,
            sku TEXT NOT NULL DEFAULT '',
            data TEXT NOT NULL,  -- JSON document without id/timestamps
            created_at TEXT,
            updated_at TEXT
        );

        -- Storages: cabinets/cupboards inside a theatre room
        CREATE TABLE IF NOT EXISTS storages (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            room TEXT NOT NULL,
            created_at TEXT,
            updated_at TEXT
        );

        -- Activity log: imports, bulk edits, bulk deletes
        CREATE TABLE IF NOT EXISTS activities (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL,
            details TEXT,
            created_at TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_items_sku ON items(sku);
        CREATE INDEX IF NOT EXISTS idx_storages_pair ON storages(room, name);
        CREATE INDEX IF NOT EXISTS idx_activities_created ON activities(created_at);
    """)


def row_to_item(row: sqlite3.Row) -> Dict[str, Any]:
    """Rebuild an item document from its row."""
    item = json.loads(row["data"]) if row["data"] else {}
    for column in ITEM_META_COLUMNS:
        item[column] = row[column]
    return item
