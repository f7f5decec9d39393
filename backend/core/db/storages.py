"""
Storage database operations.
"""
import sqlite3
from typing import Any, Dict, List, Optional

from .base import get_db


def list_storages() -> List[Dict[str, Any]]:
    """All storages ordered by room, then name."""
    with get_db() as conn:
        rows = conn.execute("""
            SELECT s.*, (
                SELECT COUNT(*) FROM items i
                WHERE json_extract(i.data, '$.location.storage_id') = s.id
            ) AS item_count
            FROM storages s
            ORDER BY LOWER(s.room), LOWER(s.name)
        """).fetchall()
        return [dict(r) for r in rows]


def get_storage(storage_id: str) -> Optional[Dict[str, Any]]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM storages WHERE id = ?", (storage_id,)).fetchone()
        return dict(row) if row else None


def upsert_storage(conn: sqlite3.Connection, storage_id: str, name: str, room: str, now: str):
    """Create a storage, or rename/move an existing one keeping its created_at."""
    conn.execute("""
        INSERT INTO storages (id, name, room, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET name = excluded.name, room = excluded.room,
            updated_at = excluded.updated_at
    """, (storage_id, name, room, now, now))
