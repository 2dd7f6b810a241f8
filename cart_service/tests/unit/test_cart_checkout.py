import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from cart_service.app.core.exceptions import (
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from cart_service.app.models.cart import Cart


async def _cart_count(session) -> int:
    return (await session.execute(select(func.count()).select_from(Cart))).scalar_one()


async def _owned_cart_with_items(cart_store):
    cart = await cart_store.create_cart(user_id=42)
    await cart_store.add_item(cart["id"], 7, 2)
    await cart_store.add_item(cart["id"], 3, 1)
    return cart


async def test_checkout_creates_order_and_clears_cart(
    cart_store, checkout, order_gateway, event_publisher, db_session
):
    cart = await _owned_cart_with_items(cart_store)
    token = (await db_session.get(Cart, cart["id"])).checkout_token

    result = await checkout.checkout(cart["id"], shipping_address="1 Main St")

    assert result["message"] == "Order created successfully"
    assert result["order"]["user_id"] == 42
    assert order_gateway.calls == [
        {
            "user_id": 42,
            "items": [
                {"product_id": 7, "quantity": 2},
                {"product_id": 3, "quantity": 1},
            ],
            "idempotency_key": f"checkout-{token}",
        }
    ]
    assert await _cart_count(db_session) == 0
    assert event_publisher.event_types()[-1] == "checkout"


async def test_client_supplied_idempotency_key_is_forwarded(
    cart_store, checkout, order_gateway
):
    cart = await _owned_cart_with_items(cart_store)

    await checkout.checkout(cart["id"], idempotency_key="client-key-1")

    assert order_gateway.calls[0]["idempotency_key"] == "client-key-1"


async def test_empty_cart_cannot_checkout(cart_store, checkout, order_gateway):
    cart = await cart_store.create_cart(user_id=42)

    with pytest.raises(ValidationError, match="Cart is empty"):
        await checkout.checkout(cart["id"])

    assert order_gateway.calls == []


async def test_guest_cart_cannot_checkout(cart_store, checkout, order_gateway):
    cart = await cart_store.create_cart()
    await cart_store.add_item(cart["id"], 7, 1)

    with pytest.raises(
        ValidationError, match="Cart must be associated with a user to checkout"
    ):
        await checkout.checkout(cart["id"])

    assert order_gateway.calls == []


async def test_missing_cart_is_not_found(checkout):
    with pytest.raises(NotFoundError):
        await checkout.checkout(404)


async def test_rejected_order_leaves_cart_untouched(
    cart_store, checkout, order_gateway, db_session
):
    cart = await _owned_cart_with_items(cart_store)
    order_gateway.reject_with("Insufficient inventory for product Pour-over Kettle (ID: 3)")

    with pytest.raises(ValidationError, match="Pour-over Kettle"):
        await checkout.checkout(cart["id"])

    assert await _cart_count(db_session) == 1
    remaining = await cart_store.get_cart(cart["id"])
    assert len(remaining["items"]) == 2


async def test_unavailable_order_service_is_upstream_error(
    cart_store, checkout, order_gateway, db_session
):
    cart = await _owned_cart_with_items(cart_store)
    order_gateway.error = UpstreamServiceError("Order service is unavailable")

    with pytest.raises(UpstreamServiceError):
        await checkout.checkout(cart["id"])

    assert await _cart_count(db_session) == 1


async def test_reused_session_id_gets_a_fresh_order(
    cart_store, checkout, order_gateway, db_session
):
    first_cart = await cart_store.create_cart(user_id=42, session_id="browser-abc")
    await cart_store.add_item(first_cart["id"], 7, 1)
    first = await checkout.checkout(first_cart["id"])

    second_cart = await cart_store.create_cart(user_id=42, session_id="browser-abc")
    await cart_store.add_item(second_cart["id"], 3, 4)
    second = await checkout.checkout(second_cart["id"])

    assert second["order"]["id"] != first["order"]["id"]
    assert second["order"]["items"] == [{"product_id": 3, "quantity": 4}]
    first_key, second_key = (call["idempotency_key"] for call in order_gateway.calls)
    assert first_key != second_key
    assert await _cart_count(db_session) == 0


async def test_retried_checkout_reuses_the_cart_key(
    cart_store, checkout, order_gateway, db_session, monkeypatch
):
    cart = await _owned_cart_with_items(cart_store)

    async def failing_delete(_cart):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(checkout.cart_repository, "delete", failing_delete)
    first = await checkout.checkout(cart["id"])
    monkeypatch.undo()
    second = await checkout.checkout(cart["id"])

    assert second["order"]["id"] == first["order"]["id"]
    assert order_gateway.calls[0]["idempotency_key"] == order_gateway.calls[1]["idempotency_key"]
    assert await _cart_count(db_session) == 0
