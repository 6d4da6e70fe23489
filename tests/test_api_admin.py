import uuid

from tests.factories import make_order, make_user, sign_in, variant_by_sku


def test_health(client):
    assert client.get("/").json() == {"message": "Healthy"}


def test_admin_console_requires_sign_in(client):
    response = client.get("/api/admin/brands")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_admin_console_rejects_non_admins(client, db):
    sign_in(client, db, make_user(db))
    response = client.get("/api/admin/dashboard")
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


def test_admin_console_for_admins(client, db, catalog):
    sign_in(client, db, make_user(db, email="admin@example.com", is_admin=True))

    brands = client.get("/api/admin/brands").json()
    assert {b["slug"]: b["product_count"] for b in brands} == {"adidas": 1, "nike": 2}

    created = client.post("/api/admin/brands/quick", json={"name": "On Running"}).json()
    assert created["brand"]["slug"] == "on-running"

    products = client.get("/api/admin/products", params={"search": "shirt"}).json()
    assert [p["name"] for p in products["products"]] == ["Trail Shirt"]

    assert client.get(f"/api/admin/products/{uuid.uuid4()}").status_code == 404


def test_admin_order_status_and_user_toggle_routes(client, db, catalog):
    admin = make_user(db, email="admin@example.com", is_admin=True)
    customer = make_user(db, email="customer@example.com", name="Casey")
    order = make_order(db, customer, variant_by_sku(db, "TRL-M-RED"))
    sign_in(client, db, admin)

    updated = client.patch(f"/api/admin/orders/{order.id}/status", json={"status": "paid"}).json()
    assert updated == {"success": True, "message": "Order status updated to paid"}
    assert client.get(f"/api/admin/orders/{order.id}").json()["status"] == "paid"
    assert client.get("/api/admin/orders", params={"status": "paid"}).json()["total_count"] == 1

    own = client.post(f"/api/admin/users/{admin.id}/toggle-admin").json()
    assert own["message"] == "You cannot revoke your own admin privileges"
    granted = client.post(f"/api/admin/users/{customer.id}/toggle-admin").json()
    assert granted == {"success": True, "message": "User granted admin privileges successfully"}

    assert client.get(f"/api/admin/users/{uuid.uuid4()}").status_code == 404


def test_read_failures_surface_as_500(client, db):
    sign_in(client, db, make_user(db, email="admin@example.com", is_admin=True))
    response = client.get("/api/admin/attributes/not-a-uuid/values")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Invalid attribute ID"}


# ---------- DELETE /api/orders/{order_id} ----------

def test_order_delete_requires_admin(client, db, catalog):
    order = make_order(db, None, variant_by_sku(db, "RUN-S-RED"))
    assert client.delete(f"/api/orders/{order.id}").status_code == 401


def test_order_delete_status_codes(client, db, catalog):
    sign_in(client, db, make_user(db, email="admin@example.com", is_admin=True))
    order = make_order(db, None, variant_by_sku(db, "RUN-S-RED"))

    malformed = client.delete("/api/orders/not-a-uuid")
    assert malformed.status_code == 400
    assert malformed.json() == {"success": False, "message": "Invalid order ID format"}

    unknown = client.delete(f"/api/orders/{uuid.uuid4()}")
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Order not found"

    deleted = client.delete(f"/api/orders/{order.id}")
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "message": "Order deleted successfully"}
    assert client.delete(f"/api/orders/{order.id}").status_code == 404
