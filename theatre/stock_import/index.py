"""
Inventory Snapshot - lookup structures built once per import or bulk apply.

Instead of scanning every item for every row, we index the store contents
at call start:
- by_sku: normalized SKU -> item document
- storage_by_pair: (room, name) -> storage id
The snapshot is never mutated while write groups are being built.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .models import StorageRecord
from .table_parser import clean


def sku_key(sku) -> str:
    """Natural key for matching: trimmed, lowercased, no whitespace ("ABC 1" == "abc1")."""
    return re.sub(r"\s+", "", clean(sku).lower())


def storage_key(room, name) -> tuple[str, str]:
    return (clean(room).lower(), clean(name).lower())


@dataclass
class InventorySnapshot:
    """
    Indexed view of items and storages.

    Attributes:
        items_by_id: Item id -> item document
        by_sku: Normalized SKU -> item document (last write wins for dupes)
        storages_by_id: Storage id -> StorageRecord
        storage_by_pair: (room, name) lowercased -> storage id
        suppliers / types / systems: Distinct values already in use
    """
    items_by_id: dict[str, dict[str, Any]] = field(default_factory=dict)
    by_sku: dict[str, dict[str, Any]] = field(default_factory=dict)
    storages_by_id: dict[str, StorageRecord] = field(default_factory=dict)
    storage_by_pair: dict[tuple[str, str], str] = field(default_factory=dict)
    suppliers: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    systems: list[str] = field(default_factory=list)

    def lookup_sku(self, sku: str) -> Optional[dict[str, Any]]:
        return self.by_sku.get(sku_key(sku))

    def lookup_storage(self, room: str, name: str) -> Optional[str]:
        return self.storage_by_pair.get(storage_key(room, name))

    def get_item(self, item_id: str) -> Optional[dict[str, Any]]:
        return self.items_by_id.get(item_id)

    def get_storage(self, storage_id: str) -> Optional[StorageRecord]:
        return self.storages_by_id.get(storage_id)

    @property
    def item_count(self) -> int:
        return len(self.items_by_id)


def _distinct(values: Iterable[str]) -> list[str]:
    seen: dict[str, str] = {}
    for value in values:
        text = clean(value)
        if text and text.lower() not in seen:
            seen[text.lower()] = text
    return sorted(seen.values(), key=str.lower)


def build_snapshot(
    items: list[dict[str, Any]],
    storages: list[StorageRecord],
) -> InventorySnapshot:
    """
    Build lookup snapshot from store contents.

    Args:
        items: Item documents, each with an "id"
        storages: Known storages

    Returns:
        InventorySnapshot with SKU, id and storage-pair lookups
    """
    snapshot = InventorySnapshot()

    for item in items:
        item_id = item.get("id")
        if not item_id:
            continue
        snapshot.items_by_id[item_id] = item
        key = sku_key(item.get("sku"))
        if key:
            snapshot.by_sku[key] = item

    for storage in storages:
        snapshot.storages_by_id[storage.id] = storage
        snapshot.storage_by_pair[storage_key(storage.room, storage.name)] = storage.id

    snapshot.suppliers = _distinct(i.get("supplier") for i in items)
    snapshot.types = _distinct(i.get("type") for i in items)
    snapshot.systems = _distinct(tag for i in items for tag in (i.get("system") or []))
    return snapshot
