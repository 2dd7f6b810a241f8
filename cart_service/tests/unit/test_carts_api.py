from cart_service.app.core.exceptions import UpstreamServiceError


async def _create_cart(client, **body):
    response = await client.post("/carts", json=body)
    assert response.status_code == 201
    return response.json()


async def test_create_and_fetch_cart(client):
    cart = await _create_cart(client, session_id="session-api")

    by_id = await client.get(f"/carts/{cart['id']}")
    by_session = await client.get("/carts/session/session-api")

    assert by_id.status_code == 200
    assert by_session.json()["id"] == cart["id"]


async def test_add_item_returns_priced_cart(client):
    cart = await _create_cart(client)

    response = await client.post(
        f"/carts/{cart['id']}/items", json={"product_id": 3, "quantity": 2}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["items"][0]["product_name"] == "Pour-over Kettle"
    assert body["total"] == "39.98"


async def test_insufficient_inventory_renders_error_body(client):
    cart = await _create_cart(client)

    response = await client.post(
        f"/carts/{cart['id']}/items",
        json={"product_id": 3, "quantity": 50},
        headers={"X-Correlation-ID": "corr-123"},
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "insufficient_inventory"
    assert error["correlation_id"] == "corr-123"
    assert error["path"] == f"/carts/{cart['id']}/items"
    assert error["method"] == "POST"
    assert error["details"]["available"] == 5


async def test_unknown_cart_is_404(client):
    response = await client.get("/carts/9999")

    assert response.status_code == 404
    assert response.json()["error"]["type"] == "not_found"


async def test_update_and_remove_item(client):
    cart = await _create_cart(client)
    added = await client.post(
        f"/carts/{cart['id']}/items", json={"product_id": 7, "quantity": 1}
    )
    item_id = added.json()["items"][0]["id"]

    updated = await client.put(
        f"/carts/{cart['id']}/items/{item_id}", json={"quantity": 4}
    )
    removed = await client.delete(f"/carts/{cart['id']}/items/{item_id}")

    assert updated.json()["items"][0]["quantity"] == 4
    assert removed.json()["items"] == []


async def test_associate_with_other_users_cart_is_409(client):
    cart = await _create_cart(client, user_id=42)

    response = await client.put(f"/carts/{cart['id']}/user/43")

    assert response.status_code == 409


async def test_checkout_flow(client, order_gateway):
    cart = await _create_cart(client, user_id=42)
    await client.post(f"/carts/{cart['id']}/items", json={"product_id": 7, "quantity": 1})

    response = await client.post(
        f"/carts/{cart['id']}/checkout",
        json={"shipping_address": "1 Main St", "payment_method": "card"},
        headers={"Idempotency-Key": "abc-123"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Order created successfully"
    assert order_gateway.calls[0]["idempotency_key"] == "abc-123"
    assert (await client.get(f"/carts/{cart['id']}")).status_code == 404


async def test_empty_cart_checkout_is_400(client, order_gateway):
    cart = await _create_cart(client, user_id=42)

    response = await client.post(f"/carts/{cart['id']}/checkout", json={})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Cart is empty"
    assert order_gateway.calls == []


async def test_order_service_outage_is_502(client, order_gateway):
    cart = await _create_cart(client, user_id=42)
    await client.post(f"/carts/{cart['id']}/items", json={"product_id": 7, "quantity": 1})
    order_gateway.error = UpstreamServiceError("Order service is unavailable")

    response = await client.post(f"/carts/{cart['id']}/checkout", json={})

    assert response.status_code == 502
    assert response.json()["error"]["type"] == "upstream_service_error"


async def test_delete_cart(client):
    cart = await _create_cart(client)

    response = await client.delete(f"/carts/{cart['id']}")

    assert response.status_code == 200
    assert response.json() == {"result": "success"}


async def test_malformed_body_is_422(client):
    response = await client.post("/carts/1/items", json={"quantity": 1})

    assert response.status_code == 422
    assert response.json()["error"]["type"] == "request_validation_error"
