"""
Store Adapters - bridge to the document store holding items and storages.

The adapter pattern lets us swap implementations (in-memory for testing,
JSON file for the CLI, SQLite in the backend) without changing engine logic.
"""

import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .models import ITEMS, STORAGES, OpKind, StorageRecord, WriteOp

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InventoryStore(ABC):
    """
    Abstract interface for the persistence collaborator.

    commit() must apply a whole group or nothing. Timestamps are the
    store's job: created_at on create, updated_at on every write.
    """

    @abstractmethod
    def list_items(self) -> list[dict[str, Any]]:
        """All item documents, each with its "id"."""
        pass

    @abstractmethod
    def list_storages(self) -> list[StorageRecord]:
        pass

    @abstractmethod
    def commit(self, ops: list[WriteOp]) -> None:
        """Apply one write group atomically."""
        pass

    @abstractmethod
    def log_activity(self, kind: str, details: str) -> None:
        """Append an activity-log entry."""
        pass

    def new_id(self, collection: str) -> str:
        """Allocate a document id before the create op is committed."""
        return uuid.uuid4().hex


class InMemoryInventoryStore(InventoryStore):
    """
    In-memory store for programmatic test setup.

    fail_on_commit makes the n-th commit (1-based) raise, to exercise the
    partial-failure path.
    """

    def __init__(
        self,
        items: Optional[list[dict[str, Any]]] = None,
        storages: Optional[list[StorageRecord]] = None,
        fail_on_commit: Optional[int] = None,
    ):
        self.items: dict[str, dict[str, Any]] = {}
        self.storages: dict[str, StorageRecord] = {}
        self.activities: list[dict[str, Any]] = []
        self.commits: list[list[WriteOp]] = []
        self.fail_on_commit = fail_on_commit
        self.fail_activity_log = False
        self._commit_calls = 0

        for item in items or []:
            doc = dict(item)
            doc.setdefault("id", self.new_id(ITEMS))
            self.items[doc["id"]] = doc
        for storage in storages or []:
            self.storages[storage.id] = storage

    def list_items(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self.items.values()]

    def list_storages(self) -> list[StorageRecord]:
        return list(self.storages.values())

    def commit(self, ops: list[WriteOp]) -> None:
        items, storages = self._stage(ops)
        self._install(ops, items, storages)

    def _stage(self, ops: list[WriteOp]) -> tuple[dict[str, dict[str, Any]], dict[str, StorageRecord]]:
        """Apply a group to copies; a failing op leaves the store untouched."""
        self._commit_calls += 1
        if self.fail_on_commit is not None and self._commit_calls == self.fail_on_commit:
            raise RuntimeError(f"Simulated store failure on commit {self._commit_calls}")

        items = copy.deepcopy(self.items)
        storages = dict(self.storages)
        for op in ops:
            _apply_op(op, items, storages)
        return items, storages

    def _install(self, ops: list[WriteOp], items: dict[str, dict[str, Any]], storages: dict[str, StorageRecord]):
        self.items = items
        self.storages = storages
        self.commits.append(list(ops))

    def log_activity(self, kind: str, details: str) -> None:
        if self.fail_activity_log:
            raise RuntimeError("Activity log unavailable")
        self.activities.append({"type": kind, "details": details, "created_at": utc_now()})

    def find_by_sku(self, sku: str) -> list[dict[str, Any]]:
        """Items whose SKU matches case-insensitively (test helper)."""
        wanted = sku.strip().lower()
        return [doc for doc in self.items.values() if str(doc.get("sku", "")).strip().lower() == wanted]


def _apply_op(op: WriteOp, items: dict[str, dict[str, Any]], storages: dict[str, StorageRecord]):
    now = utc_now()

    if op.collection == STORAGES:
        if op.kind == OpKind.DELETE:
            storages.pop(op.doc_id, None)
            return
        current = storages.get(op.doc_id)
        if op.kind == OpKind.UPDATE and current is None:
            raise KeyError(f"Storage {op.doc_id} does not exist")
        storages[op.doc_id] = StorageRecord(
            id=op.doc_id,
            name=str(op.fields.get("name", current.name if current else "")),
            room=str(op.fields.get("room", current.room if current else "")),
        )
        return

    if op.collection != ITEMS:
        raise ValueError(f"Unknown collection: {op.collection}")

    if op.kind == OpKind.DELETE:
        items.pop(op.doc_id, None)
    elif op.kind == OpKind.CREATE:
        items[op.doc_id] = {"id": op.doc_id, **copy.deepcopy(op.fields), "created_at": now, "updated_at": now}
    elif op.kind == OpKind.UPDATE:
        doc = items.get(op.doc_id)
        if doc is None:
            raise KeyError(f"Item {op.doc_id} does not exist")
        doc.update(copy.deepcopy(op.fields))
        for name in op.unset:
            doc.pop(name, None)
        doc["updated_at"] = now
    else:
        raise ValueError(f"Unknown op kind: {op.kind}")


class JsonFileInventoryStore(InMemoryInventoryStore):
    """
    Store persisted to a single JSON file, used by the CLI.

    File format:
        {"items": [{"id": "...", "sku": "...", ...}],
         "storages": [{"id": "...", "name": "...", "room": "..."}],
         "activities": [...]}
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        data: dict[str, Any] = {}
        if self.path.exists():
            with open(self.path, "r") as f:
                data = json.load(f)

        storages = [
            StorageRecord(id=s["id"], name=s.get("name", ""), room=s.get("room", ""))
            for s in data.get("storages", [])
        ]
        super().__init__(items=data.get("items", []), storages=storages)
        self.activities = list(data.get("activities", []))

    def commit(self, ops: list[WriteOp]) -> None:
        # Memory only takes the group once it is on disk
        items, storages = self._stage(ops)
        self._write(items, storages, self.activities)
        self._install(ops, items, storages)

    def log_activity(self, kind: str, details: str) -> None:
        if self.fail_activity_log:
            raise RuntimeError("Activity log unavailable")
        activities = [*self.activities, {"type": kind, "details": details, "created_at": utc_now()}]
        self._write(self.items, self.storages, activities)
        self.activities = activities

    def _write(
        self,
        items: dict[str, dict[str, Any]],
        storages: dict[str, StorageRecord],
        activities: list[dict[str, Any]],
    ):
        data = {
            "items": list(items.values()),
            "storages": [{"id": s.id, "name": s.name, "room": s.room} for s in storages.values()],
            "activities": activities,
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.path)


def record_activity(store: InventoryStore, kind: str, details: str):
    """Write an activity-log entry; a failing log never undoes committed data."""
    try:
        store.log_activity(kind, details)
    except Exception as e:
        logger.warning(f"Could not record activity {kind!r} ({details}): {e}")
