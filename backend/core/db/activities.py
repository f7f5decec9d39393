"""
Activity log database operations.
"""
import uuid
from typing import Any, Dict, List

from .base import get_db, utc_now


def log_activity(kind: str, details: str) -> Dict[str, Any]:
    """Append an activity-log entry."""
    entry = {"id": str(uuid.uuid4()), "type": kind, "details": details, "created_at": utc_now()}
    with get_db() as conn:
        conn.execute(
            "INSERT INTO activities (id, type, details, created_at) VALUES (?, ?, ?, ?)",
            (entry["id"], entry["type"], entry["details"], entry["created_at"])
        )
    return entry


def list_activities(limit: int = 50) -> List[Dict[str, Any]]:
    """Most recent entries first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM activities ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,)
        ).fetchall()
        return [dict(r) for r in rows]
