"""Admin dashboard: product CRUD, order status, roles and audit log."""

import io

import pytest

import routes.products as products_routes
from models.product import Product


def test_product_admin_routes_require_admin(client, shopper, headers_for):
    resp = client.post("/products", json={"name": "Tee", "price": 10}, headers=headers_for(shopper))
    assert resp.status_code == 403


def test_create_product_keeps_sold_out_consistent(client, admin, headers_for):
    empty = client.post("/products", json={"name": "Deck", "price": 50, "quantity": 0, "category": "skate"},
                        headers=headers_for(admin))
    assert empty.status_code == 201
    assert empty.json()["is_sold_out"] is True

    stocked = client.post("/products", json={"name": "Tee", "price": 10, "quantity": 4, "category": "tee"},
                          headers=headers_for(admin))
    assert stocked.json()["is_sold_out"] is False
    assert stocked.json()["effective_price"] == 10.0


def test_create_product_validates_category_and_discount(client, admin, headers_for):
    bad_category = client.post("/products", json={"name": "Cap", "price": 10, "category": "hat"}, headers=headers_for(admin))
    assert bad_category.status_code == 422
    bad_discount = client.post("/products", json={"name": "Cap", "price": 10, "discount_percentage": 150},
                               headers=headers_for(admin))
    assert bad_discount.status_code == 422


def test_restock_clears_sold_out_and_manual_flag_is_kept(client, make_product, admin, headers_for):
    deck = make_product("Deck", quantity=0)

    restocked = client.patch(f"/products/{deck.id}", json={"quantity": 3}, headers=headers_for(admin))
    assert restocked.status_code == 200
    assert restocked.json()["quantity"] == 3
    assert restocked.json()["is_sold_out"] is False

    flagged = client.patch(f"/products/{deck.id}", json={"is_sold_out": True}, headers=headers_for(admin))
    assert flagged.json()["is_sold_out"] is True
    assert flagged.json()["quantity"] == 3

    emptied = client.patch(f"/products/{deck.id}", json={"quantity": 0, "is_sold_out": False}, headers=headers_for(admin))
    assert emptied.json()["is_sold_out"] is True


def test_discount_update_changes_effective_price(client, make_product, admin, headers_for):
    hoodie = make_product("Hoodie", price=40.0)
    resp = client.patch(f"/products/{hoodie.id}/discount", json={"discount_percentage": 25, "is_on_sale": True},
                        headers=headers_for(admin))
    assert resp.status_code == 200
    assert resp.json()["effective_price"] == 30.0

    shop = client.get(f"/shop/products/{hoodie.id}")
    assert shop.json()["effective_price"] == 30.0


def test_image_upload(client, make_product, admin, headers_for, tmp_path, monkeypatch):
    monkeypatch.setattr(products_routes, "UPLOAD_DIR", tmp_path)
    hoodie = make_product("Hoodie")

    resp = client.post(
        f"/products/{hoodie.id}/image",
        files={"file": ("hoodie.png", io.BytesIO(b"\x89PNG fake"), "image/png")},
        headers=headers_for(admin),
    )
    assert resp.status_code == 200
    image = resp.json()["image"]
    assert image.startswith("/uploads/") and image.endswith(".png")
    assert (tmp_path / image.rsplit("/", 1)[-1]).exists()

    rejected = client.post(
        f"/products/{hoodie.id}/image",
        files={"file": ("notes.txt", io.BytesIO(b"hi"), "text/plain")},
        headers=headers_for(admin),
    )
    assert rejected.status_code == 400


def test_delete_product(client, db, make_product, admin, shopper, headers_for):
    unused = make_product("Unused")
    sold = make_product("Sold", quantity=3)
    client.post(
        "/process-order",
        json={"items": [{"product_id": sold.id, "quantity": 1, "price": sold.price}],
              "customer_name": "A", "user_id": shopper.id},
        headers=headers_for(shopper),
    )

    assert client.delete(f"/products/{unused.id}", headers=headers_for(admin)).status_code == 200
    assert client.delete(f"/products/{sold.id}", headers=headers_for(admin)).status_code == 409
    assert client.delete("/products/9999", headers=headers_for(admin)).status_code == 404
    db.expire_all()
    assert db.query(Product).count() == 1


def _place_order(client, shopper, product, headers_for, quantity=1):
    resp = client.post(
        "/process-order",
        json={"items": [{"product_id": product.id, "quantity": quantity, "price": product.price}],
              "customer_name": "Alice", "user_id": shopper.id},
        headers=headers_for(shopper),
    )
    return resp.json()["orders"][0]["id"]


def test_admin_order_listing_includes_shipping(client, make_product, admin, shopper, headers_for):
    hoodie = make_product("Hoodie", quantity=5)
    first = _place_order(client, shopper, hoodie, headers_for)
    _place_order(client, shopper, hoodie, headers_for, quantity=2)
    client.post(
        f"/orders/{first}/shipping-address",
        json={"name": "Alice", "email": "alice@example.com", "address": "KG 1", "city": "Kigali", "zip_code": "0"},
        headers=headers_for(shopper),
    )

    resp = client.get("/admin/orders", headers=headers_for(admin))
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 2
    by_id = {o["id"]: o for o in data["items"]}
    assert by_id[first]["shipping_address"]["city"] == "Kigali"
    assert by_id[first]["product_name"] == "Hoodie"

    assert client.get("/admin/orders", headers=headers_for(shopper)).status_code == 403


def test_order_status_changes(client, make_product, admin, shopper, headers_for):
    hoodie = make_product("Hoodie")
    order_id = _place_order(client, shopper, hoodie, headers_for)

    resp = client.patch(f"/admin/orders/{order_id}/status", json={"status": "processing"}, headers=headers_for(admin))
    assert resp.status_code == 200
    assert resp.json()["status"] == "processing"

    listed = client.get("/admin/orders", params={"status": "processing"}, headers=headers_for(admin)).json()
    assert [o["id"] for o in listed["items"]] == [order_id]

    assert client.patch(f"/admin/orders/{order_id}/status", json={"status": "shipped"},
                        headers=headers_for(admin)).status_code == 422

    client.patch(f"/admin/orders/{order_id}/status", json={"status": "cancelled"}, headers=headers_for(admin))
    reopened = client.patch(f"/admin/orders/{order_id}/status", json={"status": "pending"}, headers=headers_for(admin))
    assert reopened.status_code == 400

    assert client.patch("/admin/orders/999/status", json={"status": "completed"},
                        headers=headers_for(admin)).status_code == 404


def test_role_grant_and_revoke(client, admin, shopper, headers_for):
    granted = client.post("/admin/roles", json={"email": shopper.email, "role": "admin"}, headers=headers_for(admin))
    assert granted.status_code == 200
    assert granted.json()["roles"] == ["admin", "user"]

    # The new admin can now reach the dashboard
    assert client.get("/admin/orders", headers=headers_for(shopper)).status_code == 200

    revoked = client.delete(f"/admin/roles/{shopper.id}/admin", headers=headers_for(admin))
    assert revoked.json()["roles"] == ["user"]
    assert client.get("/admin/orders", headers=headers_for(shopper)).status_code == 403

    assert client.delete(f"/admin/roles/{shopper.id}/admin", headers=headers_for(admin)).status_code == 404
    assert client.delete(f"/admin/roles/{admin.id}/admin", headers=headers_for(admin)).status_code == 400
    assert client.post("/admin/roles", json={"email": "ghost@example.com", "role": "admin"},
                       headers=headers_for(admin)).status_code == 404


def test_user_listing(client, admin, shopper, headers_for):
    resp = client.get("/admin/users", params={"q": "shop"}, headers=headers_for(admin))
    assert resp.status_code == 200
    assert [u["email"] for u in resp.json()["items"]] == [shopper.email]


def test_audit_log_is_admin_only_and_filterable(client, make_product, admin, shopper, headers_for):
    client.post("/products", json={"name": "Tee", "price": 10, "quantity": 1}, headers=headers_for(admin))
    hoodie = make_product("Hoodie", quantity=1)
    client.post(
        "/process-order",
        json={"items": [{"product_id": hoodie.id, "quantity": 5, "price": 1}], "customer_name": "A", "user_id": shopper.id},
        headers=headers_for(shopper),
    )

    assert client.get("/logs", headers=headers_for(shopper)).status_code == 403

    resp = client.get("/logs", params={"action": "ORDER_PROCESS", "status": "FAIL"}, headers=headers_for(admin))
    assert resp.status_code == 200
    items = resp.json()["items"]
    assert len(items) == 1
    assert items[0]["user_id"] == shopper.id
    assert items[0]["user_email"] == shopper.email
    assert items[0]["meta"]["kind"] == "InsufficientStock"

    created = client.get("/logs", params={"resource": "products"}, headers=headers_for(admin)).json()
    assert [i["action"] for i in created["items"]] == ["PRODUCT_CREATE"]


@pytest.mark.parametrize("path", ["/admin/orders", "/admin/users", "/logs"])
def test_dashboard_requires_login(client, path):
    assert client.get(path).status_code in (401, 403)
