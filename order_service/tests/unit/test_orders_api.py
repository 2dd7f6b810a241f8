ORDER_BODY = {"user_id": 42, "items": [{"product_id": 3, "quantity": 2}]}


async def test_create_order_returns_201_with_frozen_prices(client):
    response = await client.post("/orders", json=ORDER_BODY)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["total_price"] == "39.98"
    assert body["items"][0]["price"] == "19.99"
    assert body["items"][0]["product_name"] == "Pour-over Kettle"


async def test_idempotency_key_header_replays_order(client):
    headers = {"Idempotency-Key": "checkout-session-xyz"}

    first = await client.post("/orders", json=ORDER_BODY, headers=headers)
    second = await client.post("/orders", json=ORDER_BODY, headers=headers)

    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert len((await client.get("/orders")).json()["orders"]) == 1


async def test_idempotency_key_reused_for_other_items_is_409(client):
    headers = {"Idempotency-Key": "checkout-cart-abc"}
    await client.post("/orders", json=ORDER_BODY, headers=headers)

    response = await client.post(
        "/orders",
        json={"user_id": 42, "items": [{"product_id": 5, "quantity": 1}]},
        headers=headers,
    )

    assert response.status_code == 409
    assert response.json()["error"]["type"] == "conflict"
    assert len((await client.get("/orders")).json()["orders"]) == 1


async def test_aggregate_validation_error_lists_problems(client):
    response = await client.post(
        "/orders",
        json={
            "user_id": 42,
            "items": [{"product_id": 99, "quantity": 1}, {"product_id": 5, "quantity": 50}],
        },
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "validation_error"
    assert len(error["details"]["problems"]) == 2
    assert "Ceramic Dripper" in error["message"]


async def test_invalid_user_is_400(client):
    response = await client.post(
        "/orders", json={"user_id": 1, "items": [{"product_id": 3, "quantity": 1}]}
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid user ID"


async def test_get_and_list_orders(client):
    created = (await client.post("/orders", json=ORDER_BODY)).json()

    fetched = await client.get(f"/orders/{created['id']}")
    listed = await client.get("/orders", params={"user_id": 42})
    other_user = await client.get("/orders", params={"user_id": 43})

    assert fetched.json()["id"] == created["id"]
    assert listed.json()["total"] == 1
    assert other_user.json() == {"orders": [], "total": 0}
    assert (await client.get("/orders/999")).status_code == 404


async def test_status_update_responses(client):
    created = (await client.post("/orders", json=ORDER_BODY)).json()
    url = f"/orders/{created['id']}/status"

    assert (await client.patch(url, json={"status": "bogus"})).status_code == 400
    assert (await client.patch(url, json={"status": "delivered"})).status_code == 409

    response = await client.patch(url, json={"status": "processing"})
    assert response.status_code == 200
    assert response.json()["status"] == "processing"
