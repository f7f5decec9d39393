"""
Report Generator - Format results for human consumption.

Produces console output for imports and bulk edits, and the inventory CSV
export.
"""

import csv
import io
from typing import Any, Optional, TextIO

from .models import BulkResult, ColumnMapping, ImportResult, Location, StorageRecord
from .table_parser import clean

EXPORT_COLUMNS = [
    "SKU",
    "Product Description",
    "Supplier",
    "System",
    "Category",
    "Type",
    "Qty",
    "Min",
    "Max",
    "ROP",
    "Usage",
    "Room",
    "Storage",
    "Drawer",
    "Slot",
    "Comments",
]


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def stock_level(item: dict[str, Any]) -> str:
    """
    Classify an item's quantity against its levels.

    Returns:
        "below" when qty < min, "over" when a max is set and qty > max, else "ok"
    """
    qty = _count(item.get("qty"))
    if qty < _count(item.get("min")):
        return "below"
    maximum = item.get("max")
    if maximum is not None and maximum != "" and qty > _count(maximum):
        return "over"
    return "ok"


def summarize_stock(items: list[dict[str, Any]]) -> dict[str, int]:
    summary = {"total": len(items), "below": 0, "over": 0, "ok": 0}
    for item in items:
        summary[stock_level(item)] += 1
    return summary


def format_mapping(headers: list[str], mapping: ColumnMapping) -> str:
    """Suggested mapping as a field -> column table."""
    lines = [f"{'FIELD':<15} {'COLUMN':<30}", "-" * 46]
    for target, index in sorted(mapping.columns.items(), key=lambda kv: kv[1]):
        header = headers[index] if index < len(headers) else "?"
        lines.append(f"{target.value:<15} [{index}] {header[:25]}")
    unmapped = [h for i, h in enumerate(headers) if i not in mapping.columns.values()]
    if unmapped:
        lines.append(f"\nUnmapped columns: {', '.join(unmapped)}")
    return "\n".join(lines)


def format_import_summary(result: ImportResult) -> str:
    """
    Format an import result for console display.

    Args:
        result: Outcome of run_import

    Returns:
        Formatted string for console output
    """
    title = "IMPORT PLAN (dry run, nothing written)" if result.dry_run else "IMPORT COMPLETE"
    lines = ["=" * 70, title, "=" * 70]
    lines.append(f"  Rows:             {result.rows}")
    lines.append(f"  New items:        {result.created}")
    lines.append(f"  Updated items:    {result.updated}")
    lines.append(f"  Storages created: {result.storages_created}")
    lines.append(f"  Unplaced:         {result.unplaced}")
    if result.dry_run:
        lines.append(f"  Write groups:     {result.groups_planned}")
    else:
        lines.append(f"  Write groups:     {result.groups_committed}/{result.groups_planned}")

    if result.warnings:
        lines.append(f"\nWARNINGS ({len(result.warnings)})")
        lines.append("-" * 70)
        lines.extend(f"  {w}" for w in result.warnings)
    lines.append("=" * 70)
    return "\n".join(lines)


def format_bulk_summary(result: BulkResult) -> str:
    lines = [
        f"Matched {result.matched}, updated {result.updated}, "
        f"unchanged {result.unchanged}, missing {result.missing}",
    ]
    if result.storage_created:
        lines.append("Created 1 storage")
    lines.append(f"Write groups: {result.groups_committed}/{result.groups_planned}")
    return "\n".join(lines)


def format_stock_report(items: list[dict[str, Any]]) -> str:
    """Items below min or over max, then level counts."""
    lines = []
    flagged = [i for i in items if stock_level(i) != "ok"]
    if flagged:
        lines.append(f"\nSTOCK ALERTS ({len(flagged)})")
        lines.append("-" * 70)
        lines.append(f"{'SKU':<15} {'NAME':<30} {'QTY':>5} {'MIN':>5} {'MAX':>5}  LEVEL")
        lines.append("-" * 70)
        for item in sorted(flagged, key=lambda i: clean(i.get("sku")).lower()):
            maximum = item.get("max")
            lines.append(
                f"{clean(item.get('sku'))[:15]:<15} {clean(item.get('name'))[:30]:<30} "
                f"{_count(item.get('qty')):>5} {_count(item.get('min')):>5} "
                f"{'-' if maximum is None else maximum:>5}  {stock_level(item).upper()}"
            )

    summary = summarize_stock(items)
    lines.append("\nSTOCK LEVELS")
    lines.append(f"  Total items: {summary['total']}")
    lines.append(f"  OK:          {summary['ok']}")
    lines.append(f"  Below min:   {summary['below']}")
    lines.append(f"  Over max:    {summary['over']}")
    return "\n".join(lines)


def _flat(value: Any) -> str:
    """Single-line text for a CSV cell."""
    return " ".join(clean(value).splitlines())


def export_inventory_csv(
    items: list[dict[str, Any]],
    storages: list[StorageRecord],
    output: Optional[TextIO] = None,
) -> str:
    """
    Export the inventory to CSV, every field quoted.

    Args:
        items: Item documents
        storages: Known storages, used to turn location ids into room/storage names
        output: Optional file handle to write to

    Returns:
        CSV string (also writes to output if provided)
    """
    storage_by_id = {s.id: s for s in storages}

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)

    for item in sorted(items, key=lambda i: clean(i.get("sku")).lower()):
        location = Location.from_dict(item.get("location"))
        storage = storage_by_id.get(location.storage_id) if location else None
        maximum = item.get("max")

        writer.writerow([
            _flat(item.get("sku")),
            _flat(item.get("name")),
            _flat(item.get("supplier")),
            "; ".join(_flat(t) for t in (item.get("system") or [])),
            _flat(item.get("category")),
            _flat(item.get("type")),
            _count(item.get("qty")),
            _count(item.get("min")),
            "" if maximum is None or maximum == "" else _count(maximum),
            _count(item.get("rop")),
            _flat(item.get("usage")),
            storage.room if storage else "",
            storage.name if storage else "",
            location.drawer if location else "",
            location.slot if location else "",
            _flat(item.get("comments")),
        ])

    content = buffer.getvalue()
    if output:
        output.write(content)
    return content
