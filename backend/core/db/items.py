"""
Item database operations.
"""
import json
import sqlite3
from typing import Any, Dict, List, Optional

from .base import ITEM_META_COLUMNS, get_db, row_to_item


def list_items() -> List[Dict[str, Any]]:
    """All item documents ordered by SKU."""
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM items ORDER BY LOWER(sku)").fetchall()
        return [row_to_item(r) for r in rows]


def get_item(item_id: str) -> Optional[Dict[str, Any]]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
        return row_to_item(row) if row else None


def count_items() -> int:
    with get_db() as conn:
        return conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]


# Connection-level writes used inside one write-group transaction

def insert_item(conn: sqlite3.Connection, item_id: str, fields: Dict[str, Any], now: str):
    """Create (or overwrite) an item document."""
    doc = {k: v for k, v in fields.items() if k not in ITEM_META_COLUMNS}
    conn.execute("""
        INSERT OR REPLACE INTO items (id, sku, data, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?)
    """, (item_id, str(doc.get("sku", "")), json.dumps(doc), now, now))


def update_item(
    conn: sqlite3.Connection,
    item_id: str,
    fields: Dict[str, Any],
    unset: tuple,
    now: str,
):
    """Merge fields into an existing item and drop the unset ones.

    Raises KeyError when the item does not exist, which rolls back the group.
    """
    row = conn.execute("SELECT data FROM items WHERE id = ?", (item_id,)).fetchone()
    if row is None:
        raise KeyError(f"Item {item_id} does not exist")

    doc = json.loads(row["data"]) if row["data"] else {}
    doc.update({k: v for k, v in fields.items() if k not in ITEM_META_COLUMNS})
    for name in unset:
        doc.pop(name, None)

    conn.execute(
        "UPDATE items SET sku = ?, data = ?, updated_at = ? WHERE id = ?",
        (str(doc.get("sku", "")), json.dumps(doc), now, item_id)
    )


def delete_item(conn: sqlite3.Connection, item_id: str):
    conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
