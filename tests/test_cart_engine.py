"""Tests for the cart engine and its snapshot storage."""

import json

import pytest

from src.schemas.cart_schema import Priority
from src.session.cart_engine import CART_KEY, CartEngine
from src.session.storage import JsonFileStorage, MemoryStorage
from tests.conftest import FailingStorage, make_cart_item

SCREWS = dict(product_id="prod-screw-4x40", name="Wood Screws 4x40mm", sku="WS-440", price_per_unit=1290, unit="box")
DRYWALL = dict(product_id="prod-screw-drywall", name="Drywall Screws 3.5x35mm", sku="DS-335", price_per_unit=1450, unit="box")


class TestAddItem:
    def test_new_product_is_appended(self, cart):
        cart.add_item(make_cart_item(), 2)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2

    def test_same_product_merges(self, cart):
        cart.add_item(make_cart_item(), 2)
        cart.add_item(make_cart_item(), 3)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_quantity_defaults_to_item_quantity(self, cart):
        cart.add_item(make_cart_item(quantity=4))
        assert cart.items[0].quantity == 4

    def test_quantity_below_one_raises(self, cart):
        with pytest.raises(ValueError, match="at least 1"):
            cart.add_item(make_cart_item(), 0)
        assert cart.items == []

    def test_insertion_order_kept(self, cart):
        cart.add_item(make_cart_item(**SCREWS))
        cart.add_item(make_cart_item())
        assert [i.product_id for i in cart.items] == ["prod-screw-4x40", "prod-gloves-nitrile"]


class TestUpdateAndRemove:
    def test_update_sets_quantity(self, cart):
        cart.add_item(make_cart_item(), 2)
        cart.update_quantity("prod-gloves-nitrile", 7)
        assert cart.items[0].quantity == 7

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_removes_line(self, cart, quantity):
        cart.add_item(make_cart_item(), 2)
        cart.update_quantity("prod-gloves-nitrile", quantity)
        assert cart.items == []

    def test_update_unknown_product_is_noop(self, cart):
        cart.add_item(make_cart_item(), 2)
        cart.update_quantity("prod-missing", 9)
        assert cart.items[0].quantity == 2

    def test_remove_item(self, cart):
        cart.add_item(make_cart_item())
        cart.add_item(make_cart_item(**SCREWS))
        cart.remove_item("prod-gloves-nitrile")
        assert [i.product_id for i in cart.items] == ["prod-screw-4x40"]


class TestClearing:
    def test_clear_items_twice_leaves_empty(self, cart):
        cart.add_item(make_cart_item())
        cart.clear_items()
        assert cart.items == []
        cart.clear_items()
        assert cart.items == []

    def test_note_and_priority_survive_clear_items(self, cart):
        cart.add_item(make_cart_item())
        cart.set_note("gate 3")
        cart.set_priority("urgent")
        cart.clear_items()
        assert cart.state.note == "gate 3"
        assert cart.state.priority == Priority.URGENT

    def test_clear_resets_note_and_priority(self, cart):
        cart.add_item(make_cart_item())
        cart.set_note("gate 3")
        cart.set_priority(Priority.URGENT)
        cart.clear()
        assert cart.items == []
        assert cart.state.note is None
        assert cart.state.priority == Priority.NORMAL


class TestNameLookup:
    def test_case_insensitive_substring(self, cart):
        cart.add_item(make_cart_item())
        assert cart.find_item_by_name("GLOVES").product_id == "prod-gloves-nitrile"

    def test_matches_sku(self, cart):
        cart.add_item(make_cart_item())
        assert cart.find_item_by_name("gl-nit").product_id == "prod-gloves-nitrile"

    def test_first_match_in_insertion_order_wins(self, cart):
        cart.add_item(make_cart_item(**DRYWALL))
        cart.add_item(make_cart_item(**SCREWS))
        assert cart.find_item_by_name("screws").product_id == "prod-screw-drywall"

    def test_plural_query_finds_singular_name(self, cart):
        cart.add_item(make_cart_item(product_id="prod-screw-4x40", name="Wood Screw", sku="WS-440"))
        assert cart.find_item_by_name("screws").product_id == "prod-screw-4x40"
        assert cart.remove_by_name("the screws") is None
        assert cart.remove_by_name("screws").product_id == "prod-screw-4x40"
        assert cart.items == []

    def test_no_match_returns_none(self, cart):
        cart.add_item(make_cart_item())
        assert cart.find_item_by_name("helmet") is None
        assert cart.find_item_by_name("  ") is None

    def test_remove_by_name(self, cart):
        cart.add_item(make_cart_item(), 2)
        removed = cart.remove_by_name("gloves")
        assert removed.quantity == 2
        assert cart.items == []

    def test_remove_by_name_missing(self, cart):
        cart.add_item(make_cart_item())
        assert cart.remove_by_name("tape") is None
        assert len(cart.items) == 1

    def test_update_quantity_by_name(self, cart):
        cart.add_item(make_cart_item(**SCREWS), 5)
        cart.update_quantity_by_name("wood screws", 20)
        assert cart.items[0].quantity == 20

    def test_update_quantity_by_name_zero_removes(self, cart):
        cart.add_item(make_cart_item(**SCREWS), 5)
        cart.update_quantity_by_name("screws", 0)
        assert cart.items == []


class TestNoteAndPriority:
    def test_blank_note_normalises_to_none(self, cart):
        cart.set_note("   ")
        assert cart.state.note is None

    def test_note_is_trimmed(self, cart):
        cart.set_note("  deliver to gate 3 ")
        assert cart.state.note == "deliver to gate 3"

    def test_invalid_priority_raises(self, cart):
        with pytest.raises(ValueError):
            cart.set_priority("whenever")


class TestViews:
    def test_totals(self, cart):
        cart.add_item(make_cart_item(), 2)
        cart.add_item(make_cart_item(**SCREWS), 1)
        assert cart.get_total_cents() == 2 * 500 + 1290
        assert cart.get_item_count() == 3

    def test_cart_context(self, cart):
        cart.add_item(make_cart_item(), 2)
        context = cart.to_cart_context()
        assert context.total_cents == 1000
        assert context.items[0].name == "Nitrile Work Gloves"
        assert context.items[0].quantity == 2
        assert context.items[0].sku == "GL-NIT-9"

    def test_items_are_copies(self, cart):
        cart.add_item(make_cart_item(), 2)
        cart.items[0].quantity = 99
        assert cart.items[0].quantity == 2


class TestPersistence:
    def test_mutations_persist_immediately(self, storage, cart):
        cart.add_item(make_cart_item(), 3)
        cart.set_priority("urgent")
        reloaded = CartEngine(storage)
        assert reloaded.items[0].quantity == 3
        assert reloaded.state.priority == Priority.URGENT
        assert reloaded.project_id == "proj-demo"

    def test_corrupt_snapshot_loads_empty(self):
        storage = MemoryStorage()
        storage.save(CART_KEY, {"cart": {"items": [{"product_id": "x"}]}})
        engine = CartEngine(storage)
        assert engine.items == []

    def test_non_object_snapshot_loads_empty(self):
        storage = MemoryStorage()
        storage.save(CART_KEY, "garbage")
        assert CartEngine(storage).items == []

    def test_switch_project_clears_cart(self, cart):
        cart.add_item(make_cart_item())
        assert cart.switch_project("proj-other") is True
        assert cart.items == []
        assert cart.project_id == "proj-other"

    def test_switch_to_same_project_keeps_cart(self, cart):
        cart.add_item(make_cart_item())
        assert cart.switch_project("proj-demo") is False
        assert len(cart.items) == 1


class TestFailedWrites:
    @pytest.fixture
    def failing(self):
        storage = FailingStorage()
        engine = CartEngine(storage)
        engine.switch_project("proj-demo")
        engine.add_item(make_cart_item(), 2)
        engine.set_note("gate 3")
        storage.fail = True
        return engine

    def test_failed_add_leaves_cart_unchanged(self, failing):
        with pytest.raises(OSError):
            failing.add_item(make_cart_item(**SCREWS))
        with pytest.raises(OSError):
            failing.add_item(make_cart_item(), 1)
        assert [(i.product_id, i.quantity) for i in failing.items] == [("prod-gloves-nitrile", 2)]

    def test_failed_update_and_remove_leave_cart_unchanged(self, failing):
        with pytest.raises(OSError):
            failing.update_quantity("prod-gloves-nitrile", 9)
        with pytest.raises(OSError):
            failing.remove_item("prod-gloves-nitrile")
        with pytest.raises(OSError):
            failing.clear_items()
        assert failing.items[0].quantity == 2

    def test_failed_metadata_writes_leave_state_unchanged(self, failing):
        with pytest.raises(OSError):
            failing.set_note("back door")
        with pytest.raises(OSError):
            failing.set_priority(Priority.URGENT)
        with pytest.raises(OSError):
            failing.clear()
        assert failing.state.note == "gate 3"
        assert failing.state.priority == Priority.NORMAL
        assert len(failing.items) == 1

    def test_failed_project_switch_keeps_project(self, failing):
        with pytest.raises(OSError):
            failing.switch_project("proj-other")
        assert failing.project_id == "proj-demo"
        assert len(failing.items) == 1


class TestJsonFileStorage:
    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "state" / "cart.json"
        engine = CartEngine(JsonFileStorage(str(path)))
        engine.add_item(make_cart_item(), 2)
        assert path.exists()
        assert CartEngine(JsonFileStorage(str(path))).items[0].quantity == 2

    def test_keys_share_one_document(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "s.json"))
        storage.save("a", [1])
        storage.save("b", {"x": 2})
        assert storage.load("a") == [1]
        assert storage.load("b") == {"x": 2}
        storage.delete("a")
        assert storage.load("a") is None

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "cart.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileStorage(str(path)).load(CART_KEY) is None

    def test_no_temp_files_left_behind(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "cart.json"))
        storage.save("k", {"v": 1})
        assert [p.name for p in tmp_path.iterdir()] == ["cart.json"]
        assert json.loads((tmp_path / "cart.json").read_text()) == {"k": {"v": 1}}
