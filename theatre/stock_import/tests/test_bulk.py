"""
Tests for bulk edits and bulk delete over a selection.

Run with: pytest theatre/stock_import/tests/test_bulk.py -v
"""

import pytest

from theatre.stock_import.adapters import InMemoryInventoryStore
from theatre.stock_import.bulk import BulkMutationEngine
from theatre.stock_import.config import Config, ImportSettings, default_config
from theatre.stock_import.errors import BatchCommitError, BulkValidationError
from theatre.stock_import.models import BulkField, BulkOp, BulkOperation, StorageRecord

IDS = [f"i{n}" for n in range(10)]


@pytest.fixture
def store():
    items = [
        {
            "id": f"i{n}",
            "sku": f"S{n}",
            "name": f"Item {n}",
            "system": ["Synthes"],
            "supplier": "Stryker",
            "category": "trauma",
            "type": "consumable",
            "location": None,
        }
        for n in range(10)
    ]
    return InMemoryInventoryStore(
        items=items,
        storages=[StorageRecord(id="st-1", name="Cabinet A", room="Theatre 1")],
    )


@pytest.fixture
def engine(store):
    return BulkMutationEngine(store, default_config())


class TestSystemTags:
    def test_add(self, engine, store):
        result = engine.apply(["i0", "i1"], BulkOperation(BulkField.SYSTEM, BulkOp.ADD, tags=["Depuy"]))

        assert result.updated == 2
        assert store.items["i0"]["system"] == ["Synthes", "Depuy"]
        assert store.items["i2"]["system"] == ["Synthes"]

    def test_add_existing_tag_is_noop(self, engine, store):
        result = engine.apply(["i0"], BulkOperation(BulkField.SYSTEM, BulkOp.ADD, tags=["synthes"]))

        assert result.unchanged == 1
        assert result.updated == 0
        assert store.commits == []

    def test_remove_is_idempotent(self, engine, store):
        operation = BulkOperation(BulkField.SYSTEM, BulkOp.REMOVE, tags=["Synthes"])

        first = engine.apply(IDS, operation)
        second = engine.apply(IDS, operation)

        assert first.updated == 10
        assert second.updated == 0
        assert second.unchanged == 10
        assert len(store.commits) == 1
        assert all(item["system"] == [] for item in store.items.values())

    def test_remove_never_hits_a_neighbouring_tag(self, engine, store):
        store.items["i0"]["system"] = ["A", "B"]
        result = engine.apply(["i0"], BulkOperation(BulkField.SYSTEM, BulkOp.REMOVE, tags=["C"]))

        assert result.unchanged == 1
        assert store.items["i0"]["system"] == ["A", "B"]

    def test_replace(self, engine, store):
        engine.apply(["i0"], BulkOperation(BulkField.SYSTEM, BulkOp.REPLACE, tags=["Arthrex", "arthrex"]))
        assert store.items["i0"]["system"] == ["Arthrex"]

    def test_clear(self, engine, store):
        engine.apply(["i0"], BulkOperation(BulkField.SYSTEM, BulkOp.CLEAR))
        assert store.items["i0"]["system"] == []


class TestScalarFields:
    def test_supplier_set_resolves_existing(self, engine, store):
        result = engine.apply(IDS, BulkOperation(BulkField.SUPPLIER, BulkOp.SET, value="stryker"))
        assert result.unchanged == 10
        assert store.commits == []

    def test_supplier_set_new_value(self, engine, store):
        engine.apply(["i3"], BulkOperation(BulkField.SUPPLIER, BulkOp.SET, value="Zimmer Biomet"))
        assert store.items["i3"]["supplier"] == "Zimmer Biomet"

    def test_supplier_clear_removes_field(self, engine, store):
        engine.apply(["i3"], BulkOperation(BulkField.SUPPLIER, BulkOp.CLEAR))
        assert "supplier" not in store.items["i3"]

    def test_category_set(self, engine, store):
        engine.apply(["i0"], BulkOperation(BulkField.CATEGORY, BulkOp.SET, value="Emerg"))
        assert store.items["i0"]["category"] == "emergency"

    def test_category_outside_vocabulary(self, engine, store):
        with pytest.raises(BulkValidationError):
            engine.apply(["i0"], BulkOperation(BulkField.CATEGORY, BulkOp.SET, value="Cardiac"))
        assert store.commits == []

    def test_type_set(self, engine, store):
        engine.apply(["i0"], BulkOperation(BulkField.TYPE, BulkOp.SET, value="Single Pack"))
        assert store.items["i0"]["type"] == "single_pack"


class TestLocation:
    def test_move_with_new_storage_creates_it_once(self, engine, store):
        operation = BulkOperation(
            BulkField.LOCATION,
            BulkOp.MOVE,
            create_storage=True,
            room="Theatre 2",
            new_storage_name="Trolley 1",
            drawer="3",
        )
        result = engine.apply(IDS, operation)

        assert result.storage_created is True
        assert result.updated == 10
        assert len(store.storages) == 2
        assert store.commits[0][0].collection == "storages"

        new_id = store.commits[0][0].doc_id
        assert store.storages[new_id].name == "Trolley 1"
        assert all(
            item["location"] == {"storage_id": new_id, "drawer": "3", "slot": ""}
            for item in store.items.values()
        )

    def test_move_onto_existing_pair(self, engine, store):
        operation = BulkOperation(
            BulkField.LOCATION,
            BulkOp.MOVE,
            create_storage=True,
            room="theatre 1",
            new_storage_name="CABINET A",
        )
        result = engine.apply(["i0"], operation)

        assert result.storage_created is False
        assert len(store.storages) == 1
        assert store.items["i0"]["location"]["storage_id"] == "st-1"

    def test_move_to_storage_id(self, engine, store):
        engine.apply(["i0"], BulkOperation(BulkField.LOCATION, BulkOp.MOVE, storage_id="st-1", slot="B4"))
        assert store.items["i0"]["location"] == {"storage_id": "st-1", "drawer": "", "slot": "B4"}

    def test_clear_removes_location(self, engine, store):
        engine.apply(["i0"], BulkOperation(BulkField.LOCATION, BulkOp.CLEAR))
        assert "location" not in store.items["i0"]

    def test_create_storage_wins_over_storage_id(self, engine, store):
        operation = BulkOperation(
            BulkField.LOCATION,
            BulkOp.MOVE,
            storage_id="st-1",
            create_storage=True,
            room="Theatre 9",
            new_storage_name="Trolley 9",
        )
        result = engine.apply(["i0"], operation)

        assert result.storage_created is True
        new_id = store.items["i0"]["location"]["storage_id"]
        assert new_id != "st-1"
        assert (store.storages[new_id].room, store.storages[new_id].name) == ("Theatre 9", "Trolley 9")

    def test_create_storage_ignores_unknown_storage_id(self, engine, store):
        operation = BulkOperation(
            BulkField.LOCATION,
            BulkOp.MOVE,
            storage_id="st-404",
            create_storage=True,
            room="Theatre 9",
            new_storage_name="Trolley 9",
        )
        assert engine.apply(["i0"], operation).storage_created is True


class TestValidation:
    def test_empty_selection(self, engine):
        with pytest.raises(BulkValidationError):
            engine.apply([], BulkOperation(BulkField.SYSTEM, BulkOp.CLEAR))

    @pytest.mark.parametrize("field,op", [
        (BulkField.SYSTEM, BulkOp.SET),
        (BulkField.LOCATION, BulkOp.ADD),
        (BulkField.SUPPLIER, BulkOp.MOVE),
    ])
    def test_illegal_combination(self, engine, field, op):
        with pytest.raises(BulkValidationError, match="not allowed"):
            engine.apply(["i0"], BulkOperation(field, op, tags=["x"], value="x"))

    def test_set_needs_value(self, engine):
        with pytest.raises(BulkValidationError):
            engine.apply(["i0"], BulkOperation(BulkField.SUPPLIER, BulkOp.SET, value="  "))

    def test_add_needs_tags(self, engine):
        with pytest.raises(BulkValidationError):
            engine.apply(["i0"], BulkOperation(BulkField.SYSTEM, BulkOp.ADD, tags=[" "]))

    def test_move_needs_target(self, engine):
        with pytest.raises(BulkValidationError):
            engine.apply(["i0"], BulkOperation(BulkField.LOCATION, BulkOp.MOVE))

    def test_new_storage_needs_room_and_name(self, engine):
        operation = BulkOperation(BulkField.LOCATION, BulkOp.MOVE, create_storage=True, room="Theatre 1")
        with pytest.raises(BulkValidationError):
            engine.apply(["i0"], operation)

    def test_new_storage_needs_room_and_name_with_storage_id(self, engine, store):
        operation = BulkOperation(
            BulkField.LOCATION, BulkOp.MOVE, storage_id="st-1", create_storage=True, room="", new_storage_name=""
        )
        with pytest.raises(BulkValidationError, match="Room and storage name"):
            engine.apply(["i0"], operation)
        assert store.commits == []

    def test_unknown_storage_id(self, engine, store):
        with pytest.raises(BulkValidationError):
            engine.apply(["i0"], BulkOperation(BulkField.LOCATION, BulkOp.MOVE, storage_id="st-404"))
        assert store.commits == []

    def test_from_dict_unknown_field(self):
        with pytest.raises(BulkValidationError):
            BulkOperation.from_dict({"field": "colour", "op": "set"})


class TestSelection:
    def test_missing_ids_counted(self, engine):
        result = engine.apply(["i0", "gone", "i0"], BulkOperation(BulkField.SYSTEM, BulkOp.CLEAR))
        assert result.matched == 1
        assert result.missing == 1

    def test_activity_logged(self, engine, store):
        engine.apply(["i0", "i1"], BulkOperation(BulkField.SYSTEM, BulkOp.CLEAR))
        assert store.activities[-1] == {
            "type": "Bulk Edit",
            "details": "Field=system, Count=2",
            "created_at": store.activities[-1]["created_at"],
        }

    def test_activity_failure_does_not_undo(self, engine, store):
        store.fail_activity_log = True
        result = engine.apply(["i0"], BulkOperation(BulkField.SYSTEM, BulkOp.CLEAR))
        assert result.updated == 1
        assert store.items["i0"]["system"] == []


class TestPartialFailure:
    @pytest.fixture
    def engine(self, store):
        store.fail_on_commit = 2
        return BulkMutationEngine(store, Config(settings=ImportSettings(write_group_size=1)))

    def test_remove_keeps_first_group(self, engine, store):
        operation = BulkOperation(BulkField.SYSTEM, BulkOp.REMOVE, tags=["Synthes"])

        with pytest.raises(BatchCommitError) as exc_info:
            engine.apply(IDS, operation)

        assert exc_info.value.groups_committed == 1
        assert exc_info.value.groups_planned == 10
        assert store.items["i0"]["system"] == []
        assert store.items["i1"]["system"] == ["Synthes"]
        assert store.activities == []

        result = engine.apply(IDS, operation)
        assert result.updated == 9
        assert result.unchanged == 1
        assert all(item["system"] == [] for item in store.items.values())
        assert store.activities[-1]["type"] == "Bulk Edit"

    def test_move_rerun_creates_storage_once(self, engine, store):
        operation = BulkOperation(
            BulkField.LOCATION,
            BulkOp.MOVE,
            create_storage=True,
            room="Theatre 2",
            new_storage_name="Trolley 1",
        )

        with pytest.raises(BatchCommitError) as exc_info:
            engine.apply(IDS, operation)

        # Group 1 is the storage create
        assert exc_info.value.groups_committed == 1
        assert len(store.storages) == 2
        assert all(item["location"] is None for item in store.items.values())
        assert store.activities == []

        result = engine.apply(IDS, operation)

        assert result.storage_created is False
        assert result.updated == 10
        created = [s for s in store.storages.values() if s.name == "Trolley 1"]
        assert len(created) == 1
        assert len(store.storages) == 2
        assert all(item["location"]["storage_id"] == created[0].id for item in store.items.values())


class TestBulkDelete:
    def test_delete(self, engine, store):
        result = engine.delete(["i0", "i1", "i2", "missing"])

        assert result.updated == 3
        assert result.missing == 1
        assert len(store.items) == 7
        assert store.activities[-1]["type"] == "Bulk Delete"
        assert store.activities[-1]["details"] == "Count=3"

    def test_delete_in_groups(self):
        store = InMemoryInventoryStore(items=[{"id": f"d{n}", "sku": f"D{n}"} for n in range(1000)])
        engine = BulkMutationEngine(store, default_config())

        result = engine.delete([f"d{n}" for n in range(1000)])

        assert result.groups_committed == 3
        assert [len(g) for g in store.commits] == [450, 450, 100]
        assert store.items == {}

    def test_delete_needs_selection(self, engine):
        with pytest.raises(BulkValidationError):
            engine.delete([])
