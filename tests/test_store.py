import asyncio
import json

import pytest
from bson import ObjectId

from bistro.core.config import EnvironmentMode, Settings
from bistro.models import to_number
from bistro.services.store import MockOrderingStore, WriteResult, create_store
from tests.conftest import SALAD_ID


@pytest.mark.anyio
async def test_concurrent_identical_adds_all_count(store):
    store.load("menu", [{"_id": SALAD_ID, "name": "Caesar Salad", "category": "salad", "price": 12}])
    entry = {"userID": "u1", "menuID": SALAD_ID}

    await asyncio.gather(*(store.add_to_cart(dict(entry)) for _ in range(25)))

    assert await store.count_cart("u1") == 1
    rows = await store.project_cart("u1")
    assert rows[0]["quantity"] == 25


@pytest.mark.anyio
async def test_returned_documents_are_copies(store):
    store.load("menu", [{"_id": SALAD_ID, "name": "Caesar Salad", "category": "salad", "price": 12}])

    item = await store.get_menu_item(ObjectId(SALAD_ID))
    item["price"] = 0

    assert (await store.get_menu_item(ObjectId(SALAD_ID)))["price"] == 12


@pytest.mark.anyio
async def test_record_payment_stamps_date(store):
    inserted, deleted = await store.record_payment({"uid": "u1", "price": 5}, [])

    [payment] = await store.list_payments("u1")
    assert payment["_id"] == inserted.inserted_id
    assert payment["date"] is not None
    assert deleted.deleted_count == 0


@pytest.mark.anyio
async def test_cart_projection_ignores_unconvertible_menu_references(store):
    store.load("carts", [{"userID": "u1", "menuID": "legacy-id", "quantity": 1}])
    assert await store.project_cart("u1") == []


def test_load_file_seeds_collections(tmp_path):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({
        "menu": [{"_id": SALAD_ID, "name": "Caesar Salad", "category": "salad", "price": 12}],
        "users": [{"uid": "admin", "role": "admin"}],
    }))

    store = MockOrderingStore()
    assert store.load_file(seed) == 2
    assert ObjectId(SALAD_ID) in store._docs("menu")
    assert len(store._docs("users")) == 1


def test_load_file_rejects_unknown_collections(tmp_path):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({"orders": []}))

    with pytest.raises(ValueError):
        MockOrderingStore().load_file(seed)


def test_create_store_in_development_is_mock(tmp_path):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({"menu": [{"name": "Soup", "category": "soup", "price": 4}]}))

    store = create_store(Settings(env_mode=EnvironmentMode.DEVELOPMENT, seed_data_path=str(seed)))

    assert isinstance(store, MockOrderingStore)
    assert len(store._docs("menu")) == 1


def test_write_result_wire_shapes():
    oid = ObjectId()

    assert WriteResult(inserted_id=oid).to_dict() == {"acknowledged": True, "insertedId": str(oid)}
    assert WriteResult(deleted_count=0).to_dict() == {"acknowledged": True, "deletedCount": 0}
    assert WriteResult.for_update(matched=1, modified=0).to_dict() == {
        "acknowledged": True,
        "matchedCount": 1,
        "modifiedCount": 0,
        "upsertedCount": 0,
        "upsertedId": None,
    }
    assert WriteResult.for_update(matched=0, modified=0, upserted_id=oid).to_dict()["upsertedId"] == str(oid)


@pytest.mark.parametrize(
    "value, expected",
    [(5, 5), (4.5, 4.5), ("14.5", 14.5), ("  3 ", 3.0), ("n/a", 0.0), (None, 0.0), (True, 0.0)],
)
def test_to_number(value, expected):
    assert to_number(value) == expected
