"""
SQLite implementation of the import engine's persistence collaborator.

Each write group runs in a single transaction: get_db() commits when the
group applied cleanly and rolls back when any op raised.
"""
import logging
import uuid
from typing import Any, Dict, List

from theatre.stock_import import InventoryStore, StorageRecord, WriteOp
from theatre.stock_import.models import ITEMS, STORAGES, OpKind

from .activities import log_activity
from .base import get_db, utc_now
from .items import delete_item, insert_item, list_items, update_item
from .storages import list_storages, upsert_storage

logger = logging.getLogger(__name__)


class SqliteInventoryStore(InventoryStore):
    """Items, storages and the activity log in the service database."""

    def list_items(self) -> List[Dict[str, Any]]:
        return list_items()

    def list_storages(self) -> List[StorageRecord]:
        return [StorageRecord(id=s["id"], name=s["name"], room=s["room"]) for s in list_storages()]

    def new_id(self, collection: str) -> str:
        return str(uuid.uuid4())

    def commit(self, ops: List[WriteOp]) -> None:
        now = utc_now()
        with get_db() as conn:
            for op in ops:
                if op.collection == STORAGES:
                    if op.kind == OpKind.DELETE:
                        conn.execute("DELETE FROM storages WHERE id = ?", (op.doc_id,))
                    else:
                        upsert_storage(conn, op.doc_id, str(op.fields.get("name", "")),
                                       str(op.fields.get("room", "")), now)
                elif op.collection == ITEMS:
                    if op.kind == OpKind.CREATE:
                        insert_item(conn, op.doc_id, op.fields, now)
                    elif op.kind == OpKind.UPDATE:
                        update_item(conn, op.doc_id, op.fields, op.unset, now)
                    else:
                        delete_item(conn, op.doc_id)
                else:
                    raise ValueError(f"Unknown collection: {op.collection}")
        logger.debug(f"Committed {len(ops)} ops")

    def log_activity(self, kind: str, details: str) -> None:
        log_activity(kind, details)
