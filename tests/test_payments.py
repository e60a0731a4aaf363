import pytest

from bistro.services.payment import MockPaymentService
from tests.conftest import CUSTOMER_UID, LAVA_CAKE_ID, OTHER_UID, PIZZA_ID, SALAD_ID


def _fill_cart(client, auth_headers, uid, *menu_ids):
    for menu_id in menu_ids:
        client.post("/carts", json={"userID": uid, "menuID": menu_id}, headers=auth_headers(uid))
    rows = client.get("/carts", params={"userId": uid}, headers=auth_headers(uid)).json()
    return [r["_id"] for r in rows]


def test_create_payment_intent_returns_client_secret(client):
    r = client.post("/create-payment-intent", json={"price": 24.5})
    assert r.status_code == 200
    assert r.json()["clientSecret"].startswith("pi_mock_")
    assert r.json()["clientSecret"].endswith("_secret_mock")


def test_create_payment_intent_accepts_string_price(client):
    r = client.post("/create-payment-intent", json={"price": "19.99"})
    assert r.status_code == 200


@pytest.mark.parametrize("price", [0, -5, "0.001"])
def test_create_payment_intent_rejects_non_positive_amounts(client, price):
    r = client.post("/create-payment-intent", json={"price": price})
    assert r.status_code == 402
    assert r.json() == {"message": "Amount must be greater than 0"}


@pytest.mark.parametrize("price", ["nan", "inf", "Infinity", "-Infinity"])
def test_create_payment_intent_rejects_non_finite_price(client, price):
    r = client.post("/create-payment-intent", json={"price": price})
    assert r.status_code == 400
    assert "message" in r.json()


def test_create_payment_intent_rejects_non_numeric_price(client):
    r = client.post("/create-payment-intent", json={"price": "twenty"})
    assert r.status_code == 400


def test_record_payment_clears_listed_cart_entries(client, menu, auth_headers, store):
    cart_ids = _fill_cart(client, auth_headers, CUSTOMER_UID, SALAD_ID, PIZZA_ID)

    r = client.post("/payments", json={
        "uid": CUSTOMER_UID,
        "price": 26.5,
        "transactionId": "pi_mock_abc",
        "cartIds": cart_ids,
        "menuItemIds": [SALAD_ID, PIZZA_ID],
        "quantities": [1, 1],
    })
    assert r.status_code == 200
    body = r.json()
    assert body["paymentResult"]["acknowledged"] is True
    assert body["paymentResult"]["insertedId"]
    assert body["deleteResult"]["deletedCount"] == 2

    assert client.get(
        "/carts", params={"userId": CUSTOMER_UID}, headers=auth_headers(CUSTOMER_UID)
    ).json() == []
    assert len(store._docs("payments")) == 1


def test_record_payment_only_clears_listed_entries(client, menu, auth_headers):
    salad_entry, _ = _fill_cart(client, auth_headers, CUSTOMER_UID, SALAD_ID, LAVA_CAKE_ID)

    r = client.post("/payments", json={
        "uid": CUSTOMER_UID,
        "price": 12,
        "cartIds": [salad_entry],
        "menuItemIds": [SALAD_ID],
        "quantities": [1],
    })
    assert r.json()["deleteResult"]["deletedCount"] == 1

    remaining = client.get(
        "/carts", params={"userId": CUSTOMER_UID}, headers=auth_headers(CUSTOMER_UID)
    ).json()
    assert [row["name"] for row in remaining] == ["Lava Cake"]


def test_record_payment_with_no_cart_ids_still_inserts(client, store):
    r = client.post("/payments", json={
        "uid": CUSTOMER_UID,
        "price": "10",
        "cartIds": [],
        "menuItemIds": [LAVA_CAKE_ID],
        "quantities": [2],
    })
    assert r.status_code == 200
    assert r.json()["deleteResult"] == {"acknowledged": True, "deletedCount": 0}
    assert len(store._docs("payments")) == 1


def test_record_payment_rejects_mismatched_arrays(client, store):
    r = client.post("/payments", json={
        "uid": CUSTOMER_UID,
        "price": 10,
        "menuItemIds": [LAVA_CAKE_ID, SALAD_ID],
        "quantities": [2],
    })
    assert r.status_code == 400
    assert len(store._docs("payments")) == 0


def test_record_payment_rejects_malformed_cart_ids(client, store):
    r = client.post("/payments", json={
        "uid": CUSTOMER_UID,
        "price": 10,
        "cartIds": ["not-an-id"],
    })
    assert r.status_code == 400
    assert len(store._docs("payments")) == 0


def test_payment_history_is_newest_first(client, auth_headers):
    for transaction in ("first", "second", "third"):
        client.post("/payments", json={
            "uid": CUSTOMER_UID,
            "price": 5,
            "transactionId": transaction,
        })
    client.post("/payments", json={"uid": OTHER_UID, "price": 5, "transactionId": "theirs"})

    r = client.get("/payments", params={"uid": CUSTOMER_UID}, headers=auth_headers(CUSTOMER_UID))
    assert r.status_code == 200
    history = r.json()
    assert [p["transactionId"] for p in history] == ["third", "second", "first"]
    assert all("date" in p for p in history)


def test_payment_history_of_another_user_is_403(client, auth_headers):
    r = client.get("/payments", params={"uid": OTHER_UID}, headers=auth_headers(CUSTOMER_UID))
    assert r.status_code == 403


def test_payment_history_requires_credentials(client):
    assert client.get("/payments", params={"uid": CUSTOMER_UID}).status_code == 401


@pytest.mark.anyio
async def test_mock_payment_service_amounts_in_dollars():
    service = MockPaymentService(min_latency=0, max_latency=0, currency="eur")
    result = await service.create_payment_intent(12.345)
    assert result.success
    assert result.amount == 12.345
    assert result.currency == "eur"
    assert service.to_cents(19.99) == 1999
    assert service.to_cents(24.5) == 2450


def test_record_payment_ignores_client_supplied_id(client, auth_headers, store):
    client.post("/payments", json={"uid": CUSTOMER_UID, "price": 5, "transactionId": "plain"})
    r = client.post("/payments", json={
        "uid": CUSTOMER_UID,
        "price": 5,
        "transactionId": "with-id",
        "_id": "zzz",
    })
    assert r.status_code == 200
    assert r.json()["paymentResult"]["insertedId"] != "zzz"

    history = client.get("/payments", params={"uid": CUSTOMER_UID}, headers=auth_headers(CUSTOMER_UID))
    assert history.status_code == 200
    assert [p["transactionId"] for p in history.json()] == ["with-id", "plain"]


def test_record_payment_leaves_other_users_cart_entries(client, menu, auth_headers):
    [theirs] = _fill_cart(client, auth_headers, OTHER_UID, SALAD_ID)

    r = client.post("/payments", json={
        "uid": CUSTOMER_UID,
        "price": 12,
        "cartIds": [theirs],
        "menuItemIds": [SALAD_ID],
        "quantities": [1],
    })
    assert r.status_code == 200
    assert r.json()["deleteResult"]["deletedCount"] == 0

    remaining = client.get("/carts", params={"userId": OTHER_UID}, headers=auth_headers(OTHER_UID)).json()
    assert [row["_id"] for row in remaining] == [theirs]
