"""
Errors raised by the stock import engine.

Validation errors are raised before anything is written. Commit errors are
raised after earlier write groups have already been applied.
"""


class StockImportError(Exception):
    """Base class for engine errors."""


class ImportValidationError(StockImportError, ValueError):
    """The file, mapping or normalized record set cannot be imported."""


class BulkValidationError(StockImportError, ValueError):
    """A bulk operation is missing its target or payload."""


class BatchCommitError(StockImportError, RuntimeError):
    """
    A write group was rejected by the store.

    Groups before the failing one stay applied. Re-running the same import
    or bulk operation is safe because both are keyed by SKU / storage pair.
    """

    def __init__(self, message: str, groups_committed: int, groups_planned: int, ops_committed: int):
        super().__init__(message)
        self.groups_committed = groups_committed
        self.groups_planned = groups_planned
        self.ops_committed = ops_committed

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "groups_committed": self.groups_committed,
            "groups_planned": self.groups_planned,
            "ops_committed": self.ops_committed,
        }
