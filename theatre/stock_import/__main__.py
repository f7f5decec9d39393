"""
CLI entry point for the theatre stock import.

Usage:
    python -m theatre.stock_import supplier_export.csv --store inventory.json
    python -m theatre.stock_import export.xlsx --store inventory.json --map sku=0 --map name=3 --dry-run
    python -m theatre.stock_import export.csv --store inventory.json --export-csv inventory_out.csv
"""

import argparse
import logging
import sys
from pathlib import Path

from .adapters import JsonFileInventoryStore
from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import BatchCommitError, StockImportError
from .header_mapper import HeaderMapper
from .importer import run_import
from .models import ColumnMapping
from .report import export_inventory_csv, format_import_summary, format_mapping, format_stock_report
from .table_parser import read_table


def parse_overrides(values: list[str], mapping: ColumnMapping) -> ColumnMapping:
    """Apply --map field=column overrides; an empty column unmaps the field."""
    data = mapping.to_dict()
    for value in values or []:
        if "=" not in value:
            raise ValueError(f"Mapping override must look like field=column, got {value!r}")
        target, column = value.split("=", 1)
        data[target.strip()] = column.strip() or None
    return ColumnMapping.from_dict(data)


def main():
    parser = argparse.ArgumentParser(
        prog="stock_import",
        description="Theatre Stock Import - Merge a supplier export into the inventory",
    )

    parser.add_argument(
        "file",
        metavar="FILE",
        help="Supplier export (CSV, TSV or XLSX)",
    )

    parser.add_argument(
        "--store",
        required=True,
        metavar="FILE",
        help="Inventory JSON file (created if missing)",
    )

    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="Import config file (default: module's stock_import_config.json)",
    )

    parser.add_argument(
        "--map",
        action="append",
        default=[],
        metavar="FIELD=COLUMN",
        help="Override the suggested mapping, e.g. --map sku=0 (repeatable)",
    )

    parser.add_argument(
        "--desc-only",
        action="store_true",
        help="Take item names from the description column",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan the import without writing",
    )

    parser.add_argument(
        "--export-csv",
        metavar="FILE",
        help="Write the resulting inventory to CSV",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress console output",
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(config_path)
        table = read_table(args.file)

        mapping = HeaderMapper(config.header_aliases).suggest_mapping(table.headers)
        mapping = parse_overrides(args.map, mapping)
        if not args.quiet:
            print(format_mapping(table.headers, mapping))
            print()

        store = JsonFileInventoryStore(args.store)
        result = run_import(store, table, mapping, desc_only=args.desc_only, config=config, dry_run=args.dry_run)

        if not args.quiet:
            print(format_import_summary(result))
            if not args.dry_run:
                print(format_stock_report(store.list_items()))

        if args.export_csv:
            output_path = Path(args.export_csv)
            with open(output_path, "w", newline="") as f:
                export_inventory_csv(store.list_items(), store.list_storages(), output=f)
            if not args.quiet:
                print(f"\nCSV exported to: {output_path}")

    except BatchCommitError as e:
        print(
            f"Error: {e} ({e.groups_committed} of {e.groups_planned} write groups committed)",
            file=sys.stderr,
        )
        sys.exit(1)
    except (StockImportError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
