import json

from damda.cart.storage import JsonFileCartStorage
from damda.cart.store import CartStore


def test_json_storage_round_trip_between_sessions(tmp_path, make_item):
    path = tmp_path / "cart.json"
    store = CartStore(JsonFileCartStorage(path, key="damda-cart"))
    store.add_or_replace(make_item("p1", participants=2, reservation_time="09:00"))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["damda-cart"]["version"] == 0
    assert data["damda-cart"]["state"]["items"][0]["product"]["id"] == "p1"

    restored = CartStore(JsonFileCartStorage(path, key="damda-cart"))
    assert restored.count() == 1
    assert restored.get("p1").reservation_time == "09:00"


def test_json_storage_keys_are_independent(tmp_path, make_item):
    path = tmp_path / "cart.json"
    CartStore(JsonFileCartStorage(path, key="a")).add_or_replace(make_item("p1"))
    CartStore(JsonFileCartStorage(path, key="b")).add_or_replace(make_item("p2"))

    assert [i.product_id for i in CartStore(JsonFileCartStorage(path, key="a")).items] == ["p1"]
    assert [i.product_id for i in CartStore(JsonFileCartStorage(path, key="b")).items] == ["p2"]


def test_json_storage_accepts_string_document(tmp_path, make_item):
    path = tmp_path / "cart.json"
    doc = {"state": {"items": [make_item("p1").model_dump(mode="json")]}, "version": 0}
    path.write_text(json.dumps({"damda-cart": json.dumps(doc)}), encoding="utf-8")

    assert CartStore(JsonFileCartStorage(path, key="damda-cart")).count() == 1


def test_json_storage_corrupt_file_is_empty_cart(tmp_path):
    path = tmp_path / "cart.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonFileCartStorage(path).load() == []


def test_json_storage_missing_file(tmp_path):
    assert JsonFileCartStorage(tmp_path / "absent.json").load() == []
