from storefront.services.newsletter import subscribe_to_newsletter
from tests.factories import make_user, sign_in


def test_newsletter_rejects_invalid_email(db):
    for email in ("", "not-an-email", "a@b"):
        result = subscribe_to_newsletter(db, {"email": email})
        assert result == {"success": False, "error": "Please enter a valid email address"}


def test_newsletter_rejects_duplicates(db):
    assert subscribe_to_newsletter(db, {"email": "fan@example.com"})["success"] is True
    assert subscribe_to_newsletter(db, {"email": "fan@example.com"}) == {
        "success": False,
        "error": "This email is already subscribed.",
    }


def test_newsletter_route(client):
    response = client.post("/api/newsletter", json={"email": "reader@example.com"})
    assert response.json() == {"success": True, "message": "Thank you for subscribing!"}


def test_profile_requires_sign_in(client):
    assert client.get("/api/account/profile").json() is None
    response = client.put("/api/account/profile", json={"name": "Nobody"}).json()
    assert response == {"success": False, "message": "You must be logged in to update your profile"}


def test_profile_update_validates_name(client, db):
    sign_in(client, db, make_user(db))

    assert client.put("/api/account/profile", json={"name": " "}).json()["message"] == "Name is required"
    too_long = client.put("/api/account/profile", json={"name": "x" * 101}).json()
    assert too_long["message"] == "Name must be less than 100 characters"

    ok = client.put("/api/account/profile", json={"name": "Alex Doe"}).json()
    assert ok == {"success": True, "message": "Profile updated successfully"}
    assert client.get("/api/account/profile").json()["name"] == "Alex Doe"


def test_default_address_is_unique_per_type(client, db):
    sign_in(client, db, make_user(db))
    address = {"type": "shipping", "line1": "1 Main", "city": "A", "state": "B", "country": "C", "postal_code": "1"}

    first = client.post("/api/account/addresses", json={**address, "is_default": True}).json()
    assert first == {"success": True, "message": "Address added successfully"}
    client.post("/api/account/addresses", json={**address, "line1": "2 Side", "is_default": True})
    client.post("/api/account/addresses", json={**address, "type": "billing", "is_default": True})

    addresses = client.get("/api/account/addresses").json()
    defaults = {(a["type"], a["line1"]) for a in addresses if a["is_default"]}
    assert defaults == {("shipping", "2 Side"), ("billing", "1 Main")}

    first_id = next(a["id"] for a in addresses if a["line1"] == "1 Main" and a["type"] == "shipping")
    updated = client.post("/api/account/addresses", json={**address, "id": first_id, "line1": "1 Main Street"}).json()
    assert updated == {"success": True, "message": "Address updated successfully"}


def test_address_type_is_validated(client, db):
    sign_in(client, db, make_user(db))
    response = client.post(
        "/api/account/addresses",
        json={"type": "home", "line1": "1", "city": "A", "state": "B", "country": "C", "postal_code": "1"},
    ).json()
    assert response == {"success": False, "message": "Address type must be billing or shipping"}


def test_favorites_toggle(client, db, catalog):
    sign_in(client, db, make_user(db))
    product_id = str(catalog.runner.id)

    assert client.post(f"/api/account/favorites/{product_id}").json() == {"success": True, "is_favorite": True}
    assert client.get("/api/account/favorites").json() == [product_id]
    assert client.post(f"/api/account/favorites/{product_id}").json() == {"success": True, "is_favorite": False}
    assert client.get("/api/account/favorites").json() == []


def test_favorites_require_sign_in(client):
    assert client.get("/api/account/favorites").status_code == 401
