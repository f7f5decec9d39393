"""
Bulk Mutation Engine - apply one field edit to an explicit selection.

| Field                     | Ops                       |
|---------------------------|---------------------------|
| system                    | add, remove, replace, clear |
| supplier, category, type  | set, clear                |
| location                  | move, clear               |

Everything is validated before the first op is built. Records whose value
would not change are skipped, so re-running an edit writes nothing.
"""

import logging
from typing import Any, Optional

from .adapters import InventoryStore, record_activity
from .batch import ChunkedBatchWriter
from .config import Config, default_config
from .errors import BulkValidationError
from .index import InventorySnapshot, build_snapshot
from .models import (
    ALLOWED_BULK_OPS,
    ITEMS,
    STORAGES,
    BulkField,
    BulkOp,
    BulkOperation,
    BulkResult,
    Location,
    OpKind,
    StorageRecord,
    WriteOp,
    create_storage_op,
    delete_item_op,
)
from .reconcile import merge_vocab, underscore_type
from .resolver import FuzzyResolver, normalize_token
from .table_parser import clean

logger = logging.getLogger(__name__)


def _unique_ids(selection: list[str]) -> list[str]:
    ids = []
    for item_id in selection or []:
        item_id = clean(item_id)
        if item_id and item_id not in ids:
            ids.append(item_id)
    return ids


def _dedupe_tags(tags: list[str]) -> list[str]:
    result: list[str] = []
    seen = set()
    for tag in tags:
        key = normalize_token(tag)
        if key and key not in seen:
            seen.add(key)
            result.append(clean(tag))
    return result


def validate_operation(selection: list[str], operation: BulkOperation):
    """
    Check the selection and payload of a bulk operation.

    Raises:
        BulkValidationError: nothing to apply, or the payload is incomplete
    """
    if not _unique_ids(selection):
        raise BulkValidationError("Select at least one item")

    if operation.op not in ALLOWED_BULK_OPS[operation.field]:
        raise BulkValidationError(
            f"Operation {operation.op.value!r} is not allowed on field {operation.field.value!r}"
        )

    if operation.op in (BulkOp.ADD, BulkOp.REMOVE, BulkOp.REPLACE) and not _dedupe_tags(operation.tags):
        raise BulkValidationError(f"System {operation.op.value} needs at least one tag")
    if operation.op == BulkOp.SET and not clean(operation.value):
        raise BulkValidationError(f"A value is required to set {operation.field.value}")

    if operation.op == BulkOp.MOVE:
        # create_storage takes priority over any storage_id sent along with it
        if operation.create_storage:
            if not clean(operation.room) or not clean(operation.new_storage_name):
                raise BulkValidationError("Room and storage name are required to create a storage")
        elif not operation.storage_id:
            raise BulkValidationError("Choose a storage or create a new one")


class BulkMutationEngine:
    """
    Multi-record edits over the inventory store.

    Usage:
        engine = BulkMutationEngine(store)
        result = engine.apply(["id1", "id2"], BulkOperation(BulkField.SYSTEM, BulkOp.ADD, tags=["Synthes"]))
    """

    def __init__(
        self,
        store: InventoryStore,
        config: Optional[Config] = None,
        resolver: Optional[FuzzyResolver] = None,
    ):
        self.store = store
        self.config = config or default_config()
        self.resolver = resolver or FuzzyResolver(self.config.settings.fuzzy_max_distance)

    def _writer(self) -> ChunkedBatchWriter:
        return ChunkedBatchWriter(self.store, self.config.settings.write_group_size)

    def _snapshot(self) -> InventorySnapshot:
        return build_snapshot(self.store.list_items(), self.store.list_storages())

    def apply(self, selection: list[str], operation: BulkOperation) -> BulkResult:
        """
        Apply one operation to every selected item.

        Args:
            selection: Item ids; duplicates are ignored
            operation: Field, op and payload

        Returns:
            BulkResult with matched/updated/unchanged/missing counts

        Raises:
            BulkValidationError: before anything is written
            BatchCommitError: a write group failed; earlier groups stay applied
        """
        validate_operation(selection, operation)
        snapshot = self._snapshot()

        if operation.op == BulkOp.MOVE and not operation.create_storage:
            if snapshot.get_storage(operation.storage_id) is None:
                raise BulkValidationError(f"Storage {operation.storage_id} does not exist")

        value = self._resolve_value(operation, snapshot)
        new_storage: Optional[StorageRecord] = None
        if operation.op == BulkOp.MOVE:
            storage_id, new_storage = self._target_storage(operation, snapshot)
            value = Location(storage_id, clean(operation.drawer), clean(operation.slot)).to_dict()

        result = BulkResult()
        item_ops: list[WriteOp] = []
        for item_id in _unique_ids(selection):
            item = snapshot.get_item(item_id)
            if item is None:
                result.missing += 1
                continue
            result.matched += 1
            op = self._item_op(item, operation, value)
            if op is None:
                result.unchanged += 1
            else:
                item_ops.append(op)

        ops: list[WriteOp] = []
        if new_storage is not None and item_ops:
            ops.append(create_storage_op(new_storage))
            result.storage_created = True
        ops.extend(item_ops)
        result.updated = len(item_ops)

        if result.missing:
            logger.warning(f"{result.missing} selected items no longer exist; skipped")

        report = self._writer().write(ops)
        result.groups_committed = report.groups_committed
        result.groups_planned = report.groups_planned

        logger.info(
            f"Bulk {operation.field.value}/{operation.op.value}: {result.updated} updated, "
            f"{result.unchanged} unchanged, {result.missing} missing"
        )
        record_activity(self.store, "Bulk Edit", f"Field={operation.field.value}, Count={result.matched}")
        return result

    def delete(self, selection: list[str]) -> BulkResult:
        """Delete the selected items in write groups."""
        ids = _unique_ids(selection)
        if not ids:
            raise BulkValidationError("Select at least one item")

        snapshot = self._snapshot()
        result = BulkResult()
        ops = []
        for item_id in ids:
            if snapshot.get_item(item_id) is None:
                result.missing += 1
                continue
            ops.append(delete_item_op(item_id))
        result.matched = result.updated = len(ops)

        report = self._writer().write(ops)
        result.groups_committed = report.groups_committed
        result.groups_planned = report.groups_planned

        logger.info(f"Bulk delete: {result.updated} deleted, {result.missing} missing")
        record_activity(self.store, "Bulk Delete", f"Count={result.updated}")
        return result

    def _resolve_value(self, operation: BulkOperation, snapshot: InventorySnapshot) -> Any:
        """Resolve the payload once for the whole selection."""
        if operation.field == BulkField.SYSTEM:
            if operation.op == BulkOp.REMOVE:
                return {normalize_token(t) for t in operation.tags if normalize_token(t)}
            if operation.op in (BulkOp.ADD, BulkOp.REPLACE):
                return _dedupe_tags([self.resolver.resolve(t, snapshot.systems) for t in operation.tags])
            return []

        if operation.op != BulkOp.SET:
            return None

        if operation.field == BulkField.SUPPLIER:
            return self.resolver.resolve(operation.value, snapshot.suppliers)
        if operation.field == BulkField.CATEGORY:
            resolved = self.resolver.resolve(operation.value, self.config.categories)
            if not self.resolver.is_known(resolved, self.config.categories):
                raise BulkValidationError(
                    f"Category must be one of {', '.join(self.config.categories)}, got {operation.value!r}"
                )
            return resolved.lower()
        if operation.field == BulkField.TYPE:
            vocabulary = merge_vocab(self.config.types, snapshot.types)
            return underscore_type(self.resolver.resolve(operation.value, vocabulary))
        return None

    def _target_storage(
        self,
        operation: BulkOperation,
        snapshot: InventorySnapshot,
    ) -> tuple[str, Optional[StorageRecord]]:
        """Storage id for a move, plus the record to create when it is new."""
        if not operation.create_storage:
            return operation.storage_id, None

        room, name = clean(operation.room), clean(operation.new_storage_name)
        existing = snapshot.lookup_storage(room, name)
        if existing:
            return existing, None
        storage = StorageRecord(id=self.store.new_id(STORAGES), name=name, room=room)
        return storage.id, storage

    def _item_op(self, item: dict[str, Any], operation: BulkOperation, value: Any) -> Optional[WriteOp]:
        """Update op for one item, or None when nothing would change."""
        name = operation.field.value

        if operation.op == BulkOp.CLEAR and operation.field != BulkField.SYSTEM:
            if name not in item:
                return None
            return WriteOp(OpKind.UPDATE, ITEMS, item["id"], unset=(name,))

        if operation.field == BulkField.SYSTEM:
            current = [clean(t) for t in (item.get("system") or [])]
            if operation.op == BulkOp.ADD:
                updated = _dedupe_tags(current + value)
            elif operation.op == BulkOp.REMOVE:
                updated = [t for t in current if normalize_token(t) not in value]
            else:
                updated = list(value)
            if sorted(updated) == sorted(current) and "system" in item:
                return None
            return WriteOp(OpKind.UPDATE, ITEMS, item["id"], {"system": updated})

        if item.get(name) == value:
            return None
        return WriteOp(OpKind.UPDATE, ITEMS, item["id"], {name: value})
