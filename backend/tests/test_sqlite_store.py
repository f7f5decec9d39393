"""
Tests for the SQLite inventory store used by the service.

Run with: pytest backend/tests/test_sqlite_store.py -v
"""
import pytest

from backend.core.db import SqliteInventoryStore, get_item, list_activities, list_items, list_storages
from theatre.stock_import import ColumnMapping, ImportField, WriteOp, parse_grid, run_import
from theatre.stock_import.config import Config, ImportSettings
from theatre.stock_import.errors import BatchCommitError
from theatre.stock_import.models import ITEMS, OpKind, StorageRecord, create_storage_op, upsert_item_op


@pytest.fixture
def store(patch_db):
    return SqliteInventoryStore()


class TestCommit:
    def test_create_update_unset(self, store):
        store.commit([upsert_item_op("i1", {"sku": "A1", "supplier": "Stryker", "qty": 2}, exists=False)])
        created = get_item("i1")
        assert created["sku"] == "A1"
        assert created["qty"] == 2
        assert created["created_at"]

        store.commit([WriteOp(OpKind.UPDATE, ITEMS, "i1", fields={"qty": 7}, unset=("supplier",))])

        updated = get_item("i1")
        assert updated["qty"] == 7
        assert "supplier" not in updated
        assert updated["created_at"] == created["created_at"]

    def test_delete(self, store):
        store.commit([upsert_item_op("i1", {"sku": "A1"}, exists=False)])
        store.commit([WriteOp(OpKind.DELETE, ITEMS, "i1")])
        assert list_items() == []

    def test_group_is_atomic(self, store):
        store.commit([upsert_item_op("i1", {"sku": "A1"}, exists=False)])

        with pytest.raises(KeyError):
            store.commit([
                upsert_item_op("i2", {"sku": "B2"}, exists=False),
                WriteOp(OpKind.UPDATE, ITEMS, "missing", fields={"qty": 1}),
            ])

        assert [item["id"] for item in list_items()] == ["i1"]

    def test_storages(self, store):
        storage = StorageRecord(id="st-1", name="Cabinet A", room="Theatre 1")
        store.commit([
            create_storage_op(storage),
            upsert_item_op("i1", {"sku": "A1", "location": {"storage_id": "st-1", "drawer": "", "slot": ""}},
                           exists=False),
        ])

        assert store.list_storages() == [storage]
        assert list_storages()[0]["item_count"] == 1


class TestImportThroughStore:
    def test_groups_of_two(self, store):
        table = parse_grid([["SKU", "Qty"], ["A1", 1], ["B2", 2], ["C3", 3]])
        config = Config(settings=ImportSettings(write_group_size=2))

        result = run_import(store, table, ColumnMapping({ImportField.SKU: 0, ImportField.QTY: 1}), config=config)

        assert result.groups_planned == 2
        assert result.groups_committed == 2
        assert {item["sku"]: item["qty"] for item in list_items()} == {"A1": 1, "B2": 2, "C3": 3}

    def test_failed_group_keeps_earlier_groups(self, store, monkeypatch):
        table = parse_grid([["SKU"], ["A1"], ["B2"], ["C3"]])
        config = Config(settings=ImportSettings(write_group_size=2))
        real_commit = SqliteInventoryStore.commit
        calls = []

        def flaky_commit(self, ops):
            calls.append(len(ops))
            if len(calls) == 2:
                raise RuntimeError("database is locked")
            real_commit(self, ops)

        monkeypatch.setattr(SqliteInventoryStore, "commit", flaky_commit)

        with pytest.raises(BatchCommitError) as exc_info:
            run_import(store, table, ColumnMapping({ImportField.SKU: 0}), config=config)

        assert exc_info.value.groups_committed == 1
        assert exc_info.value.groups_planned == 2
        assert sorted(item["sku"] for item in list_items()) == ["A1", "B2"]
        assert list_activities() == []

    def test_reimport_updates_in_place(self, store):
        mapping = ColumnMapping({ImportField.SKU: 0, ImportField.QTY: 1})
        run_import(store, parse_grid([["SKU", "Qty"], ["A1", 1]]), mapping)
        first_id = list_items()[0]["id"]

        result = run_import(store, parse_grid([["SKU", "Qty"], ["a1", 9]]), mapping)

        assert result.updated == 1
        items = list_items()
        assert len(items) == 1
        assert items[0]["id"] == first_id
        assert items[0]["qty"] == 9


class TestActivities:
    def test_newest_first(self, store):
        store.log_activity("Import", "Rows: 1")
        store.log_activity("Bulk Delete", "Count=2")

        activities = list_activities()
        assert [a["type"] for a in activities] == ["Bulk Delete", "Import"]
        assert len(list_activities(limit=1)) == 1
