import uuid
from decimal import Decimal

from sqlalchemy import func, select

from storefront.config import settings
from storefront.db.models import Cart, CartItem, Guest, Order, OrderItem
from storefront.services.checkout import compute_totals, create_order
from storefront.services.sessions import Shopper, create_guest_session
from tests.factories import make_order, make_user, sign_in, variant_by_sku

ADDRESS = {
    "line1": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "country": "US",
    "postal_code": "62701",
}


def test_totals_charge_shipping_below_threshold():
    totals = compute_totals(Decimal("50.00"))
    assert totals.shipping == settings.shipping_flat_rate
    assert totals.tax == Decimal("4.00")
    assert totals.total == Decimal("64.00")


def test_totals_ship_free_above_threshold():
    totals = compute_totals(Decimal("150.00"))
    assert totals.shipping == Decimal("0")
    assert totals.tax == Decimal("12.00")
    assert totals.total == Decimal("162.00")


def test_threshold_itself_still_pays_shipping():
    assert compute_totals(Decimal("100")).shipping == settings.shipping_flat_rate


def test_address_is_validated_first(db):
    guest = create_guest_session(db)
    result = create_order(db, Shopper(guest=guest), {**ADDRESS, "city": "  "})
    assert result == {"success": False, "error": "City is required"}


def test_missing_and_empty_cart_are_rejected(client, db):
    guest = create_guest_session(db)
    shopper = Shopper(guest=guest)
    assert create_order(db, shopper, ADDRESS)["error"] == "No cart found. Please add items to your cart first."

    client.get("/api/cart")
    response = client.post("/api/checkout", json=ADDRESS)
    assert response.json()["error"] == "Your cart is empty. Please add items to your cart first."


def test_guest_checkout_creates_order_and_retires_guest(client, db, catalog):
    client.post("/api/cart/items", json={"variant_id": str(variant_by_sku(db, "RUN-S-RED").id), "quantity": 2})
    token = client.cookies.get(settings.guest_session_cookie)

    result = client.post("/api/checkout", json=ADDRESS).json()
    assert result["success"] is True

    order = db.execute(select(Order).where(Order.id == uuid.UUID(result["order_id"]))).scalar_one()
    assert order.status == "pending"
    assert order.user_id is None
    # 100 subtotal ships at the flat rate, plus 8% tax.
    assert order.total_amount == Decimal("118.00")

    line = db.execute(select(OrderItem).where(OrderItem.order_id == order.id)).scalar_one()
    assert line.quantity == 2
    assert line.price_at_purchase == Decimal("50.00")

    assert db.execute(select(func.count(CartItem.id))).scalar_one() == 0
    assert db.execute(select(func.count(Cart.id))).scalar_one() == 0
    assert db.execute(select(Guest).where(Guest.session_token == token)).scalar_one_or_none() is None

    # The next request heals into a fresh guest session.
    follow_up = client.get("/api/cart")
    assert follow_up.cookies.get(settings.guest_session_cookie) not in (None, token)


def test_signed_in_checkout_and_confirmation(client, db, catalog):
    user = make_user(db)
    sign_in(client, db, user)
    client.post("/api/cart/items", json={"variant_id": str(variant_by_sku(db, "RUN-M-BLUE").id)})

    result = client.post("/api/checkout", json={**ADDRESS, "line2": "Apt 2"}).json()
    assert result["success"] is True

    summary = client.get(f"/api/checkout/orders/{result['order_id']}").json()
    assert summary["status"] == "pending"
    # Sale price 100 is not above the free-shipping threshold.
    assert summary["total_amount"] == 118.0
    assert summary["shipping_address"]["line2"] == "Apt 2"
    assert summary["items"][0]["variant"]["sku"] == "RUN-M-BLUE"
    assert summary["items"][0]["price_at_purchase"] == 100.0

    history = client.get("/api/account/orders").json()
    assert [o["order_id"] for o in history] == [result["order_id"]]


def test_confirmation_for_unknown_order_is_404(client):
    assert client.get("/api/checkout/orders/not-a-uuid").status_code == 404


def test_confirmation_is_private_to_the_buyer(client, db, catalog):
    buyer = make_user(db)
    order = make_order(db, buyer, variant_by_sku(db, "RUN-S-RED"))
    url = f"/api/checkout/orders/{order.id}"

    assert client.get(url).status_code == 404

    sign_in(client, db, make_user(db, email="someone@example.com"))
    assert client.get(url).status_code == 404

    sign_in(client, db, make_user(db, email="admin@example.com", is_admin=True))
    assert client.get(url).status_code == 200

    sign_in(client, db, buyer)
    assert client.get(url).json()["id"] == str(order.id)


def test_guest_order_confirmation_needs_only_the_id(client, db, catalog):
    order = make_order(db, None, variant_by_sku(db, "TRL-M-RED"))
    response = client.get(f"/api/checkout/orders/{order.id}")
    assert response.status_code == 200
    assert response.json()["items"][0]["variant"]["sku"] == "TRL-M-RED"
