from datetime import timedelta

from sqlalchemy import select

from storefront.config import settings
from storefront.db.models import Cart, Guest, utcnow
from tests.factories import make_user, sign_in, variant_by_sku

GUEST_COOKIE = settings.guest_session_cookie


def _add(client, variant, quantity=1):
    return client.post("/api/cart/items", json={"variant_id": str(variant.id), "quantity": quantity})


def test_first_visit_creates_guest_session_and_empty_cart(client, db):
    response = client.get("/api/cart")
    assert response.status_code == 200
    token = response.cookies.get(GUEST_COOKIE)
    assert token

    guest = db.execute(select(Guest).where(Guest.session_token == token)).scalar_one()
    body = response.json()
    assert body["guest_id"] == str(guest.id)
    assert body["items"] == []
    assert body["total"] == 0
    assert body["item_count"] == 0


def test_guest_cart_persists_across_requests_with_same_cookie(client, db, catalog):
    first = client.get("/api/cart")
    token = first.cookies.get(GUEST_COOKIE)

    added = _add(client, variant_by_sku(db, "RUN-S-RED"), 2)
    assert added.json()["success"] is True
    assert added.json()["message"] == "Item added to cart!"

    again = client.get("/api/cart")
    assert again.cookies.get(GUEST_COOKIE) is None
    cart = again.json()
    assert cart["id"] == first.json()["id"]
    assert cart["item_count"] == 2
    assert cart["total"] == 100.0
    line = cart["items"][0]
    assert line["variant"]["sku"] == "RUN-S-RED"
    assert line["variant"]["product"]["name"] == "Runner Shoe"
    assert line["variant"]["product"]["image_url"] == "https://cdn.example.com/runner-1.jpg"
    assert client.cookies.get(GUEST_COOKIE) == token


def test_adding_same_variant_increments_quantity(client, db, catalog):
    shoe = variant_by_sku(db, "RUN-M-BLUE")
    _add(client, shoe)
    cart = _add(client, shoe, 3).json()["cart"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 4
    # Sale price wins over list price.
    assert cart["total"] == 400.0


def test_unknown_or_malformed_variant_is_rejected(client, catalog):
    missing = client.post("/api/cart/items", json={"variant_id": "00000000-0000-0000-0000-000000000000"})
    assert missing.json() == {"success": False, "error": "Product variant not found", "cart": missing.json()["cart"]}

    malformed = client.post("/api/cart/items", json={"variant_id": "abc"})
    assert malformed.json()["error"] == "Invalid variant ID"

    blank = client.post("/api/cart/items", json={})
    assert blank.json()["error"] == "Variant ID is required"


def test_quantity_update_and_removal(client, db, catalog):
    cart = _add(client, variant_by_sku(db, "TRL-M-RED")).json()["cart"]
    item_id = cart["items"][0]["id"]

    updated = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 5}).json()
    assert updated["success"] is True
    assert updated["cart"]["item_count"] == 5

    removed = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 0}).json()
    assert removed["success"] is True
    assert removed["cart"]["items"] == []


def test_items_of_another_cart_cannot_be_touched(client, db, catalog):
    cart = _add(client, variant_by_sku(db, "TRL-M-RED")).json()["cart"]
    item_id = cart["items"][0]["id"]

    client.cookies.clear()
    response = client.delete(f"/api/cart/items/{item_id}").json()
    assert response == {"success": False, "error": "Cart item not found", "cart": response["cart"]}


def test_clear_cart(client, db, catalog):
    _add(client, variant_by_sku(db, "TRL-M-RED"))
    _add(client, variant_by_sku(db, "RUN-S-RED"))
    cleared = client.delete("/api/cart").json()
    assert cleared["success"] is True
    assert cleared["cart"]["item_count"] == 0


def test_unknown_guest_cookie_is_replaced(client, db):
    client.cookies.set(GUEST_COOKIE, "stale-token")
    response = client.get("/api/cart")
    new_token = response.cookies.get(GUEST_COOKIE)
    assert new_token and new_token != "stale-token"
    assert db.execute(select(Guest).where(Guest.session_token == new_token)).scalar_one_or_none() is not None


def test_expired_guest_cookie_is_replaced(client, db):
    expired = Guest(session_token="expired-token", expires_at=utcnow() - timedelta(days=1))
    db.add(expired)
    db.flush()
    db.add(Cart(guest_id=expired.id))
    db.commit()
    expired_id = expired.id

    client.cookies.set(GUEST_COOKIE, "expired-token")
    response = client.get("/api/cart")
    new_token = response.cookies.get(GUEST_COOKIE)
    assert new_token and new_token != "expired-token"
    assert response.json()["guest_id"] != str(expired_id)

    # The stale guest goes away together with its cart.
    assert db.execute(select(Guest).where(Guest.id == expired_id)).scalar_one_or_none() is None
    assert db.execute(select(Cart).where(Cart.guest_id == expired_id)).scalar_one_or_none() is None


def test_signed_in_user_gets_user_cart_without_guest_cookie(client, db, catalog):
    user = make_user(db)
    sign_in(client, db, user)

    response = _add(client, variant_by_sku(db, "RUN-S-RED"))
    assert response.cookies.get(GUEST_COOKIE) is None
    cart = response.json()["cart"]
    assert cart["user_id"] == str(user.id)
    assert cart["guest_id"] is None
    assert cart["item_count"] == 1
