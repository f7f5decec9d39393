"""
Reconciler - merge normalized records into the existing inventory.

Decision per record:
| SKU in snapshot? | SKU earlier in this run? | Op |
|------------------|--------------------------|----|
| yes              | -                        | update existing id |
| no               | yes                      | update the id created earlier |
| no               | no                       | create new id |

Last import wins on every mapped field. Fields outside the mapping are
never written on updates, so a partial re-import leaves them alone.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .config import Config
from .index import InventorySnapshot, sku_key, storage_key
from .models import (
    ITEMS,
    STORAGES,
    CanonicalItemRecord,
    ColumnMapping,
    Location,
    StorageRecord,
    WriteOp,
    create_storage_op,
    upsert_item_op,
)
from .normalizer import mapped_item_fields
from .resolver import FuzzyResolver
from .table_parser import clean

logger = logging.getLogger(__name__)

MAX_WARNINGS = 100


@dataclass
class ReconcilePlan:
    """Ordered write ops plus what they will do."""
    ops: list[WriteOp] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    storages_created: int = 0
    unplaced: int = 0
    warnings: list[str] = field(default_factory=list)
    suppressed_warnings: int = 0


def underscore_type(value: str) -> str:
    """"Instrument Tray" -> "instrument_tray"."""
    return re.sub(r"\s+", "_", clean(value).lower())


class Reconciler:
    """
    Turns canonical records into create/update ops against a snapshot.

    Storage creations are emitted before the first item that references
    them, so they always land in the same or an earlier write group.
    """

    def __init__(
        self,
        snapshot: InventorySnapshot,
        new_id: Callable[[str], str],
        config: Config,
        resolver: Optional[FuzzyResolver] = None,
    ):
        self.snapshot = snapshot
        self.new_id = new_id
        self.config = config
        self.resolver = resolver or FuzzyResolver(config.settings.fuzzy_max_distance)
        self.type_vocabulary = merge_vocab(config.types, snapshot.types)

    def plan(self, records: list[CanonicalItemRecord], mapping: ColumnMapping) -> ReconcilePlan:
        """
        Build the write plan for one import run.

        Args:
            records: Normalized records in file order
            mapping: Mapping the records were built with; decides which fields are written

        Returns:
            ReconcilePlan with ops in dependency order
        """
        plan = ReconcilePlan()
        mapped = mapped_item_fields(mapping)
        pending_items: dict[str, str] = {}
        pending_storages: dict[tuple[str, str], str] = {}

        for record in records:
            fields = self._item_fields(record, mapped, plan)

            if "location" in mapped:
                storage_id = self._resolve_storage(record, pending_storages, plan)
                fields["location"] = (
                    Location(storage_id, clean(record.drawer), clean(record.slot)).to_dict()
                    if storage_id else None
                )

            key = sku_key(record.sku)
            existing = self.snapshot.lookup_sku(record.sku)
            if existing is not None:
                plan.ops.append(upsert_item_op(existing["id"], fields, exists=True))
                plan.updated += 1
            elif key in pending_items:
                plan.ops.append(upsert_item_op(pending_items[key], fields, exists=True))
                plan.updated += 1
            else:
                item_id = self.new_id(ITEMS)
                pending_items[key] = item_id
                plan.ops.append(upsert_item_op(item_id, _with_defaults(fields), exists=False))
                plan.created += 1

        logger.info(
            f"Reconciled {len(records)} records: {plan.created} new, {plan.updated} updates, "
            f"{plan.storages_created} storages, {plan.unplaced} unplaced"
        )
        return plan

    def _item_fields(
        self,
        record: CanonicalItemRecord,
        mapped: set[str],
        plan: ReconcilePlan,
    ) -> dict[str, Any]:
        """Values for every mapped item field, vocabularies resolved."""
        fields: dict[str, Any] = {"sku": clean(record.sku)}

        if "name" in mapped:
            fields["name"] = record.name
        if "supplier" in mapped:
            fields["supplier"] = self.resolver.resolve(record.supplier, self.snapshot.suppliers)
        if "system" in mapped:
            fields["system"] = list(record.system)
        if "category" in mapped:
            fields["category"] = self._closed_value(record.category, self.config.categories, "category", record, plan)
        if "type" in mapped:
            fields["type"] = underscore_type(self.resolver.resolve(record.type, self.type_vocabulary))
        if "qty" in mapped:
            fields["qty"] = record.qty
        if "min" in mapped:
            fields["min"] = record.min
        if "max" in mapped:
            fields["max"] = record.max
        if "rop" in mapped:
            fields["rop"] = record.rop
        if "usage" in mapped:
            fields["usage"] = self._closed_value(record.usage, self.config.usages, "usage", record, plan)
        if "comments" in mapped:
            fields["comments"] = record.comments
        return fields

    def _closed_value(
        self,
        raw: str,
        vocabulary: list[str],
        label: str,
        record: CanonicalItemRecord,
        plan: ReconcilePlan,
    ) -> str:
        """Resolve into a fixed vocabulary; anything outside it is stored empty."""
        if not clean(raw):
            return ""
        resolved = self.resolver.resolve(raw, vocabulary)
        if self.resolver.is_known(resolved, vocabulary):
            return resolved.lower()
        _warn(plan, f"SKU {record.sku}: {label} '{clean(raw)}' is not one of {', '.join(vocabulary)}; left empty")
        return ""

    def _resolve_storage(
        self,
        record: CanonicalItemRecord,
        pending: dict[tuple[str, str], str],
        plan: ReconcilePlan,
    ) -> Optional[str]:
        """Storage id for the record's (room, storage) pair, queuing a create if needed."""
        room, name = clean(record.room), clean(record.storage_name)
        if not room and not name:
            return None
        if not room or not name:
            plan.unplaced += 1
            _warn(plan, f"SKU {record.sku}: room and storage are both needed to place an item; imported unplaced")
            return None

        storage_id = self.snapshot.lookup_storage(room, name) or pending.get(storage_key(room, name))
        if storage_id:
            return storage_id

        if not self.config.settings.create_missing_storages:
            plan.unplaced += 1
            _warn(plan, f"SKU {record.sku}: storage '{name}' in '{room}' does not exist; imported unplaced")
            return None

        storage = StorageRecord(id=self.new_id(STORAGES), name=name, room=room)
        plan.ops.append(create_storage_op(storage))
        pending[storage_key(room, name)] = storage.id
        plan.storages_created += 1
        return storage.id


def merge_vocab(*sources: list[str]) -> list[str]:
    merged: list[str] = []
    seen = set()
    for source in sources:
        for value in source:
            key = underscore_type(value)
            if key and key not in seen:
                seen.add(key)
                merged.append(value)
    return merged


def _with_defaults(fields: dict[str, Any]) -> dict[str, Any]:
    """New items get every field; unmapped ones take their defaults."""
    item = {
        "sku": "",
        "name": "",
        "supplier": "",
        "system": [],
        "category": "",
        "type": "",
        "qty": 0,
        "min": 0,
        "max": None,
        "rop": 0,
        "usage": "",
        "location": None,
        "comments": "",
    }
    item.update(fields)
    return item


def _warn(plan: ReconcilePlan, message: str):
    logger.warning(message)
    if len(plan.warnings) < MAX_WARNINGS:
        plan.warnings.append(message)
    else:
        plan.suppressed_warnings += 1
