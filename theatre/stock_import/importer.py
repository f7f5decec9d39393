"""
Import pipeline - parsed table + confirmed mapping -> committed inventory.

Flow:
1. Validate the table and mapping (nothing is written on failure)
2. Normalize rows into canonical records
3. Reconcile against a snapshot taken now
4. Commit in write groups
5. Record one "Import" activity
"""

import logging
from typing import Optional

from .adapters import InventoryStore, record_activity
from .batch import ChunkedBatchWriter, planned_groups
from .config import Config, default_config
from .errors import ImportValidationError
from .index import build_snapshot
from .models import ColumnMapping, ImportField, ImportResult, ParsedTable
from .normalizer import normalize_rows
from .reconcile import Reconciler
from .resolver import FuzzyResolver

logger = logging.getLogger(__name__)


def validate_import(table: ParsedTable, mapping: ColumnMapping):
    """
    Reject imports that cannot produce a single record.

    Raises:
        ImportValidationError: empty file, SKU unmapped or a column index past the header row
    """
    if not any(h for h in table.headers):
        raise ImportValidationError("File has no header row")
    if not table.rows:
        raise ImportValidationError("File has no data rows")
    if not mapping.is_mapped(ImportField.SKU):
        raise ImportValidationError("Map a column to SKU before importing")

    for target, index in mapping.columns.items():
        if index >= len(table.headers):
            raise ImportValidationError(
                f"Column {index} mapped to {target.value} is outside the header row "
                f"({len(table.headers)} columns)"
            )


def run_import(
    store: InventoryStore,
    table: ParsedTable,
    mapping: ColumnMapping,
    desc_only: bool = False,
    config: Optional[Config] = None,
    dry_run: bool = False,
    resolver: Optional[FuzzyResolver] = None,
) -> ImportResult:
    """
    Import a parsed table into the store.

    Args:
        store: Persistence collaborator
        table: Parsed headers + rows
        mapping: Operator-confirmed column mapping
        desc_only: Take item names from the description column
        config: Vocabularies and settings (shipped config when None)
        dry_run: Plan only; report what would be written
        resolver: Shared resolver (a new one per call when None)

    Returns:
        ImportResult with created/updated counts and warnings

    Raises:
        ImportValidationError: before anything is written
        BatchCommitError: a write group failed; earlier groups stay applied
    """
    config = config or default_config()
    validate_import(table, mapping)

    records = normalize_rows(table, mapping, desc_only=desc_only)
    if not records:
        raise ImportValidationError("No rows with a SKU to import")
    logger.info(f"Normalized {len(records)} of {len(table.rows)} rows")

    snapshot = build_snapshot(store.list_items(), store.list_storages())
    reconciler = Reconciler(snapshot, store.new_id, config, resolver)
    plan = reconciler.plan(records, mapping)

    if plan.suppressed_warnings:
        plan.warnings.append(f"... and {plan.suppressed_warnings} more warnings")

    result = ImportResult(
        rows=len(records),
        created=plan.created,
        updated=plan.updated,
        storages_created=plan.storages_created,
        unplaced=plan.unplaced,
        warnings=plan.warnings,
        dry_run=dry_run,
    )

    group_size = config.settings.write_group_size
    if dry_run:
        result.groups_planned = planned_groups(len(plan.ops), group_size)
        logger.info(f"Dry run: {len(plan.ops)} ops in {result.groups_planned} groups not written")
        return result

    report = ChunkedBatchWriter(store, group_size).write(plan.ops)
    result.groups_committed = report.groups_committed
    result.groups_planned = report.groups_planned

    logger.info(f"Imported {result.rows} rows: {result.created} new, {result.updated} updated")
    record_activity(store, "Import", f"Rows: {result.rows}")
    return result
