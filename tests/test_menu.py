import pytest

from tests.conftest import ADMIN_UID, CUSTOMER_UID, LAVA_CAKE_ID, PIZZA_ID, SALAD_ID


def test_list_menu_without_filter_returns_everything(client, menu):
    r = client.get("/menu")
    assert r.status_code == 200
    assert len(r.json()) == 4


@pytest.mark.parametrize(
    "category, expected",
    [
        ("dessert", {"Lava Cake", "Sundae"}),
        ("DESSERT", {"Lava Cake", "Sundae"}),
        ("froz", {"Sundae"}),
        ("Salad", {"Caesar Salad"}),
        ("soup", set()),
        ("(", set()),
    ],
)
def test_category_filter_is_case_insensitive_substring(client, menu, category, expected):
    r = client.get("/menu", params={"category": category})
    assert r.status_code == 200
    assert {item["name"] for item in r.json()} == expected


def test_get_menu_item(client, menu):
    r = client.get(f"/menu/{PIZZA_ID}")
    assert r.status_code == 200
    assert r.json()["_id"] == PIZZA_ID
    assert r.json()["price"] == "14.5"


def test_get_missing_menu_item_is_404(client, menu):
    r = client.get("/menu/64f1a00000000000000000ff")
    assert r.status_code == 404
    assert r.json() == {"message": "Menu item not found"}


def test_get_menu_item_with_malformed_id_is_400(client, menu):
    assert client.get("/menu/not-an-id").status_code == 400


def test_create_menu_item_as_admin(client, users, auth_headers):
    r = client.post(
        "/menu",
        json={"name": "Tiramisu", "category": "dessert", "price": 6.5, "image": "t.jpg"},
        headers=auth_headers(ADMIN_UID),
    )
    assert r.status_code == 200
    inserted = r.json()["insertedId"]

    fetched = client.get(f"/menu/{inserted}").json()
    assert fetched["name"] == "Tiramisu"
    assert fetched["price"] == 6.5


def test_create_menu_item_accepts_numeric_string_price(client, users, auth_headers):
    r = client.post(
        "/menu",
        json={"name": "Soup", "category": "soup", "price": "7.25"},
        headers=auth_headers(ADMIN_UID),
    )
    assert r.status_code == 200


def test_create_menu_item_rejects_non_numeric_price(client, users, auth_headers):
    r = client.post(
        "/menu",
        json={"name": "Soup", "category": "soup", "price": "cheap"},
        headers=auth_headers(ADMIN_UID),
    )
    assert r.status_code == 400


@pytest.mark.parametrize("price", ["nan", "Infinity", "-inf"])
def test_create_menu_item_rejects_non_finite_price(client, users, auth_headers, store, price):
    r = client.post(
        "/menu",
        json={"name": "Soup", "category": "soup", "price": price},
        headers=auth_headers(ADMIN_UID),
    )
    assert r.status_code == 400
    assert store._docs("menu") == {}


def test_update_menu_item_rejects_non_finite_price(client, users, menu, auth_headers):
    r = client.patch(
        f"/menu/{SALAD_ID}",
        json={"price": "inf"},
        headers=auth_headers(ADMIN_UID),
    )
    assert r.status_code == 400
    assert client.get(f"/menu/{SALAD_ID}").json()["price"] == 12


def test_create_menu_item_requires_admin(client, users, auth_headers):
    body = {"name": "Soup", "category": "soup", "price": 7}
    assert client.post("/menu", json=body).status_code == 401
    assert client.post("/menu", json=body, headers=auth_headers(CUSTOMER_UID)).status_code == 403


def test_update_menu_item_sets_only_given_fields(client, users, menu, auth_headers):
    r = client.patch(
        f"/menu/{SALAD_ID}",
        json={"price": 13},
        headers=auth_headers(ADMIN_UID),
    )
    assert r.status_code == 200
    assert r.json()["matchedCount"] == 1
    assert r.json()["modifiedCount"] == 1

    item = client.get(f"/menu/{SALAD_ID}").json()
    assert item["price"] == 13
    assert item["name"] == "Caesar Salad"
    assert item["category"] == "salad"


def test_update_menu_item_with_no_fields_is_400(client, users, menu, auth_headers):
    r = client.patch(f"/menu/{SALAD_ID}", json={}, headers=auth_headers(ADMIN_UID))
    assert r.status_code == 400
    assert r.json() == {"message": "No fields to update"}


def test_update_missing_menu_item_is_not_an_error(client, users, auth_headers):
    r = client.patch(
        "/menu/64f1a00000000000000000ff",
        json={"name": "Ghost"},
        headers=auth_headers(ADMIN_UID),
    )
    assert r.status_code == 200
    assert r.json()["matchedCount"] == 0


def test_delete_menu_item(client, users, menu, auth_headers):
    r = client.delete(f"/menu/{LAVA_CAKE_ID}", headers=auth_headers(ADMIN_UID))
    assert r.json()["deletedCount"] == 1
    assert client.get(f"/menu/{LAVA_CAKE_ID}").status_code == 404

    again = client.delete(f"/menu/{LAVA_CAKE_ID}", headers=auth_headers(ADMIN_UID))
    assert again.status_code == 200
    assert again.json()["deletedCount"] == 0
