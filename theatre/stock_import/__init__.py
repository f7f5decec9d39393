# Theatre stock import: tabular import / reconciliation and bulk edits
# Siloed module - no imports from the backend service

from .models import (
    ImportField,
    BulkField,
    BulkOp,
    BulkOperation,
    CanonicalItemRecord,
    ColumnMapping,
    Location,
    ParsedTable,
    StorageRecord,
    WriteOp,
    ImportResult,
    BulkResult,
)
from .errors import StockImportError, ImportValidationError, BulkValidationError, BatchCommitError
from .config import Config, load_config, default_config
from .table_parser import parse_delimited, parse_grid, parse_bytes, read_table, format_delimited
from .header_mapper import HeaderMapper, suggest_mapping
from .resolver import FuzzyResolver, resolve, levenshtein
from .normalizer import normalize_rows
from .index import build_snapshot, InventorySnapshot
from .reconcile import Reconciler
from .batch import BatchBuilder, ChunkedBatchWriter
from .adapters import InventoryStore, InMemoryInventoryStore, JsonFileInventoryStore
from .bulk import BulkMutationEngine
from .importer import run_import
from .report import format_import_summary, export_inventory_csv, stock_level

__version__ = "1.0.0"

__all__ = [
    # Models
    "ImportField",
    "BulkField",
    "BulkOp",
    "BulkOperation",
    "CanonicalItemRecord",
    "ColumnMapping",
    "Location",
    "ParsedTable",
    "StorageRecord",
    "WriteOp",
    "ImportResult",
    "BulkResult",
    # Errors
    "StockImportError",
    "ImportValidationError",
    "BulkValidationError",
    "BatchCommitError",
    # Config
    "Config",
    "load_config",
    "default_config",
    # Parsing and mapping
    "parse_delimited",
    "parse_grid",
    "parse_bytes",
    "read_table",
    "format_delimited",
    "HeaderMapper",
    "suggest_mapping",
    # Resolution
    "FuzzyResolver",
    "resolve",
    "levenshtein",
    # Pipeline
    "normalize_rows",
    "build_snapshot",
    "InventorySnapshot",
    "Reconciler",
    "BatchBuilder",
    "ChunkedBatchWriter",
    "run_import",
    "BulkMutationEngine",
    # Adapters
    "InventoryStore",
    "InMemoryInventoryStore",
    "JsonFileInventoryStore",
    # Report
    "format_import_summary",
    "export_inventory_csv",
    "stock_level",
]
