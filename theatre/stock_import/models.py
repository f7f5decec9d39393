"""
Data models for the stock import engine.

All structured data uses dataclasses; field names and operations are closed
enums so a typo in a mapping or bulk descriptor fails loudly instead of
being silently ignored.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .errors import BulkValidationError, ImportValidationError


class ImportField(str, Enum):
    """Canonical import targets a source column can be mapped onto."""
    SKU = "sku"
    NAME = "name"
    DESCRIPTION = "description"   # Alternate name source for desc-only files
    SUPPLIER = "supplier"
    SYSTEM = "system"
    CATEGORY = "category"         # trauma / emergency / elective
    TYPE = "type"                 # consumable / implant / ...
    QTY = "qty"
    MIN = "min"
    MAX = "max"
    ROP = "rop"
    USAGE = "usage"
    ROOM = "room"
    STORAGE_NAME = "storage_name"
    DRAWER = "drawer"
    SLOT = "slot"
    COMMENTS = "comments"


class BulkField(str, Enum):
    SYSTEM = "system"
    SUPPLIER = "supplier"
    CATEGORY = "category"
    TYPE = "type"
    LOCATION = "location"


class BulkOp(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    CLEAR = "clear"
    SET = "set"
    MOVE = "move"


# Legal operations per bulk field
ALLOWED_BULK_OPS: dict[BulkField, frozenset[BulkOp]] = {
    BulkField.SYSTEM: frozenset({BulkOp.ADD, BulkOp.REMOVE, BulkOp.REPLACE, BulkOp.CLEAR}),
    BulkField.SUPPLIER: frozenset({BulkOp.SET, BulkOp.CLEAR}),
    BulkField.CATEGORY: frozenset({BulkOp.SET, BulkOp.CLEAR}),
    BulkField.TYPE: frozenset({BulkOp.SET, BulkOp.CLEAR}),
    BulkField.LOCATION: frozenset({BulkOp.MOVE, BulkOp.CLEAR}),
}


class OpKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


ITEMS = "items"
STORAGES = "storages"


@dataclass
class Location:
    """Placement of an item: a weak reference to a storage plus drawer/slot."""
    storage_id: str
    drawer: str = ""
    slot: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"storage_id": self.storage_id, "drawer": self.drawer, "slot": self.slot}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Location"]:
        if not data or not data.get("storage_id"):
            return None
        return cls(
            storage_id=str(data["storage_id"]),
            drawer=str(data.get("drawer") or ""),
            slot=str(data.get("slot") or ""),
        )


@dataclass
class StorageRecord:
    """A cabinet/cupboard inside a theatre room."""
    id: str
    name: str
    room: str


@dataclass
class CanonicalItemRecord:
    """
    One normalized inventory line, independent of the source file layout.

    room/storage_name/drawer/slot are the raw placement columns; the
    reconciler turns them into a Location.
    """
    sku: str
    name: str = ""
    supplier: str = ""
    category: str = ""
    type: str = ""
    comments: str = ""
    system: list[str] = field(default_factory=list)
    qty: int = 0
    min: int = 0
    max: Optional[int] = None     # None = unbounded
    rop: int = 0
    usage: str = ""
    room: str = ""
    storage_name: str = ""
    drawer: str = ""
    slot: str = ""


@dataclass
class ParsedTable:
    """Header row plus data rows, every cell a string."""
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)


@dataclass
class ColumnMapping:
    """Canonical field -> source column index. Absent means unmapped."""
    columns: dict[ImportField, int] = field(default_factory=dict)

    def get(self, target: ImportField) -> Optional[int]:
        return self.columns.get(target)

    def is_mapped(self, target: ImportField) -> bool:
        return target in self.columns

    def set(self, target: ImportField, index: Optional[int]):
        if index is None:
            self.columns.pop(target, None)
        else:
            self.columns[target] = index

    def to_dict(self) -> dict[str, int]:
        return {f.value: idx for f, idx in self.columns.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ColumnMapping":
        """
        Build a mapping from operator input, e.g. {"sku": 0, "name": 2, "max": null}.

        Raises ImportValidationError on unknown field names or bad indices.
        """
        mapping = cls()
        for key, value in (data or {}).items():
            try:
                target = ImportField(key)
            except ValueError:
                raise ImportValidationError(f"Unknown import field: {key}")
            if value is None or value == "":
                continue
            try:
                index = int(value)
            except (TypeError, ValueError):
                raise ImportValidationError(f"Column index for {key} must be an integer, got {value!r}")
            if index < 0:
                raise ImportValidationError(f"Column index for {key} must not be negative")
            mapping.columns[target] = index
        return mapping


@dataclass
class WriteOp:
    """A single mutation sent to the store inside a write group."""
    kind: OpKind
    collection: str
    doc_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    unset: tuple[str, ...] = ()   # Fields removed entirely, not blanked


def create_storage_op(storage: StorageRecord) -> WriteOp:
    return WriteOp(OpKind.CREATE, STORAGES, storage.id, {"name": storage.name, "room": storage.room})


def upsert_item_op(item_id: str, fields: dict[str, Any], exists: bool) -> WriteOp:
    return WriteOp(OpKind.UPDATE if exists else OpKind.CREATE, ITEMS, item_id, dict(fields))


def delete_item_op(item_id: str) -> WriteOp:
    return WriteOp(OpKind.DELETE, ITEMS, item_id)


@dataclass
class BulkOperation:
    """
    A field-level edit applied uniformly to every id of a selection.

    Only the payload attributes relevant to (field, op) are read.
    """
    field: BulkField
    op: BulkOp
    tags: list[str] = field(default_factory=list)
    value: str = ""
    storage_id: Optional[str] = None
    create_storage: bool = False
    room: str = ""
    new_storage_name: str = ""
    drawer: str = ""
    slot: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BulkOperation":
        try:
            bulk_field = BulkField(data.get("field"))
        except ValueError:
            raise BulkValidationError(f"Unknown bulk field: {data.get('field')}")
        try:
            bulk_op = BulkOp(data.get("op"))
        except ValueError:
            raise BulkValidationError(f"Unknown bulk operation: {data.get('op')}")
        return cls(
            field=bulk_field,
            op=bulk_op,
            tags=list(data.get("tags") or []),
            value=str(data.get("value") or ""),
            storage_id=data.get("storage_id") or None,
            create_storage=bool(data.get("create_storage", False)),
            room=str(data.get("room") or ""),
            new_storage_name=str(data.get("new_storage_name") or ""),
            drawer=str(data.get("drawer") or ""),
            slot=str(data.get("slot") or ""),
        )


@dataclass
class WriteReport:
    groups_committed: int = 0
    groups_planned: int = 0
    ops_committed: int = 0


@dataclass
class ImportResult:
    """Outcome of a committed (or dry-run) import."""
    rows: int = 0
    created: int = 0
    updated: int = 0
    storages_created: int = 0
    unplaced: int = 0
    warnings: list[str] = field(default_factory=list)
    groups_committed: int = 0
    groups_planned: int = 0
    dry_run: bool = False


@dataclass
class BulkResult:
    """Outcome of a bulk apply or bulk delete."""
    matched: int = 0
    updated: int = 0
    unchanged: int = 0
    missing: int = 0
    storage_created: bool = False
    groups_committed: int = 0
    groups_planned: int = 0
