"""
Record Normalizer - mapped rows -> CanonicalItemRecord.

Coercion only; vocabulary matching (category, type, supplier, usage) is
left to the reconciler so each distinct value is resolved once.
"""

import math
import re
from typing import Optional

from .models import CanonicalItemRecord, ColumnMapping, ImportField, ParsedTable
from .table_parser import clean

# Stored item fields written by an import when their source field is mapped
ITEM_FIELD_SOURCES: dict[str, tuple[ImportField, ...]] = {
    "sku": (ImportField.SKU,),
    "name": (ImportField.NAME, ImportField.DESCRIPTION),
    "supplier": (ImportField.SUPPLIER,),
    "system": (ImportField.SYSTEM,),
    "category": (ImportField.CATEGORY,),
    "type": (ImportField.TYPE,),
    "qty": (ImportField.QTY,),
    "min": (ImportField.MIN,),
    "max": (ImportField.MAX,),
    "rop": (ImportField.ROP,),
    "usage": (ImportField.USAGE,),
    "location": (ImportField.ROOM, ImportField.STORAGE_NAME),
    "comments": (ImportField.COMMENTS,),
}


def to_count(value) -> int:
    """Parse a stock level: non-negative int, 0 when blank or unparseable."""
    text = clean(value).replace(",", "")
    if not text:
        return 0
    try:
        number = float(text)
    except ValueError:
        return 0
    if not math.isfinite(number):
        return 0
    return max(int(number), 0)


def to_max(value) -> Optional[int]:
    """Like to_count, but a blank cell means no cap (None), not a cap of zero."""
    if clean(value) == "":
        return None
    return to_count(value)


def split_tags(value) -> list[str]:
    """Split "A; B, A" into ["A", "B"] - trimmed, deduplicated, first spelling kept."""
    tags: list[str] = []
    for part in re.split(r"[;,]", clean(value)):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def mapped_item_fields(mapping: ColumnMapping) -> set[str]:
    """Stored item fields an import with this mapping will overwrite."""
    return {
        item_field
        for item_field, sources in ITEM_FIELD_SOURCES.items()
        if any(mapping.is_mapped(s) for s in sources)
    }


def normalize_rows(
    table: ParsedTable,
    mapping: ColumnMapping,
    desc_only: bool = False,
) -> list[CanonicalItemRecord]:
    """
    Build canonical records from mapped rows.

    Args:
        table: Parsed headers + rows
        mapping: Operator-confirmed column mapping
        desc_only: Take the name from the description column

    Returns:
        One record per row with a non-empty SKU, in file order
    """
    records = []
    for row in table.rows:
        record = normalize_row(row, mapping, desc_only)
        if record is not None:
            records.append(record)
    return records


def normalize_row(
    row: list[str],
    mapping: ColumnMapping,
    desc_only: bool = False,
) -> Optional[CanonicalItemRecord]:
    """Normalize one row, or None when it has no SKU."""

    def get(target: ImportField) -> str:
        index = mapping.get(target)
        if index is None or index >= len(row):
            return ""
        return clean(row[index])

    sku = get(ImportField.SKU)
    if not sku:
        return None

    name = get(ImportField.NAME)
    if mapping.is_mapped(ImportField.DESCRIPTION):
        if desc_only or not mapping.is_mapped(ImportField.NAME):
            name = get(ImportField.DESCRIPTION)

    return CanonicalItemRecord(
        sku=sku,
        name=name,
        supplier=get(ImportField.SUPPLIER),
        category=get(ImportField.CATEGORY),
        type=get(ImportField.TYPE),
        comments=get(ImportField.COMMENTS),
        system=split_tags(get(ImportField.SYSTEM)) if mapping.is_mapped(ImportField.SYSTEM) else [],
        qty=to_count(get(ImportField.QTY)),
        min=to_count(get(ImportField.MIN)),
        max=to_max(get(ImportField.MAX)),
        rop=to_count(get(ImportField.ROP)),
        usage=get(ImportField.USAGE),
        room=get(ImportField.ROOM),
        storage_name=get(ImportField.STORAGE_NAME),
        drawer=get(ImportField.DRAWER),
        slot=get(ImportField.SLOT),
    )
