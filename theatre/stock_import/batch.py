"""
Chunked batch writing.

The store applies at most MAX_WRITE_GROUP_SIZE operations atomically, so
long op streams are cut into groups and committed one after another.
Atomicity is per group: if group k+1 fails, groups 1..k stay applied.
"""

import logging
import math
from typing import Iterable

from .adapters import InventoryStore
from .config import MAX_WRITE_GROUP_SIZE
from .errors import BatchCommitError
from .models import WriteOp, WriteReport

logger = logging.getLogger(__name__)

DEFAULT_GROUP_SIZE = 450


class BatchBuilder:
    """
    Accumulates ops until a group is full.

    add() reports when the group reached its limit; flush() hands the group
    over and starts an empty one. No store involved.
    """

    def __init__(self, limit: int = DEFAULT_GROUP_SIZE):
        if not 1 <= limit <= MAX_WRITE_GROUP_SIZE:
            raise ValueError(f"Group limit must be between 1 and {MAX_WRITE_GROUP_SIZE}, got {limit}")
        self.limit = limit
        self._pending: list[WriteOp] = []

    def add(self, op: WriteOp) -> bool:
        """Queue an op; True when the group is now full and should be flushed."""
        if len(self._pending) >= self.limit:
            raise OverflowError("Write group is full; flush() before adding more ops")
        self._pending.append(op)
        return len(self._pending) >= self.limit

    def flush(self) -> list[WriteOp]:
        group = self._pending
        self._pending = []
        return group

    def __len__(self) -> int:
        return len(self._pending)


def split_groups(ops: Iterable[WriteOp], limit: int = DEFAULT_GROUP_SIZE) -> list[list[WriteOp]]:
    """Cut an op stream into submission-ordered groups of at most `limit` ops."""
    builder = BatchBuilder(limit)
    groups = []
    for op in ops:
        if builder.add(op):
            groups.append(builder.flush())
    if len(builder):
        groups.append(builder.flush())
    return groups


class ChunkedBatchWriter:
    """Commits ops group by group through an InventoryStore."""

    def __init__(self, store: InventoryStore, group_size: int = DEFAULT_GROUP_SIZE):
        self.store = store
        self.group_size = group_size

    def write(self, ops: list[WriteOp]) -> WriteReport:
        """
        Commit every op, preserving order.

        Raises:
            BatchCommitError: a group was rejected; earlier groups remain applied
        """
        groups = split_groups(ops, self.group_size)
        report = WriteReport(groups_planned=len(groups))
        if not groups:
            return report

        for number, group in enumerate(groups, start=1):
            logger.info(f"Committing group {number}/{len(groups)} ({len(group)} ops)")
            try:
                self.store.commit(group)
            except Exception as e:
                logger.error(
                    f"Group {number}/{len(groups)} failed after {report.groups_committed} committed: {e}",
                    exc_info=True,
                )
                raise BatchCommitError(
                    f"Write group {number} of {len(groups)} failed: {e}",
                    groups_committed=report.groups_committed,
                    groups_planned=report.groups_planned,
                    ops_committed=report.ops_committed,
                ) from e
            report.groups_committed += 1
            report.ops_committed += len(group)

        return report


def planned_groups(op_count: int, group_size: int = DEFAULT_GROUP_SIZE) -> int:
    return math.ceil(op_count / group_size) if op_count else 0
