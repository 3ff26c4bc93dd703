import os

from petnest.extensions import media
from petnest.models.store import Product, ShopPet
from petnest.models.user import Caregiver

CHECKOUT = {"shipping_address": "1 Vitosha Blvd, Sofia", "phone": "0888123456"}


def _place_order(client, user, product_id, quantity=1):
    client.post("/api/users/cart", headers=user.headers, json={"product_id": product_id, "quantity": quantity})
    rv = client.post("/api/users/orders", headers=user.headers, json=CHECKOUT)
    assert rv.status_code == 201
    return rv.get_json()["id"]


def test_admin_routes_require_admin(client, make_user, make_caregiver, admin_account):
    user = make_user("u@example.com")
    care = make_caregiver("c@example.com")

    assert client.get("/api/admin/dashboard").status_code == 401
    assert client.get("/api/admin/dashboard", headers=user.headers).status_code == 403
    assert client.get("/api/admin/users", headers=care.headers).status_code == 403
    assert client.get("/api/admin/dashboard", headers=admin_account.headers).status_code == 200


def test_dashboard_counts(client, admin_account, make_user, make_caregiver, make_donation, make_product):
    user = make_user("u@example.com")
    make_user("v@example.com")
    make_caregiver("c@example.com", is_verified=True)
    make_caregiver("d@example.com")
    make_donation(user.id)
    _place_order(client, user, make_product(price=10, stock=5), quantity=2)

    stats = client.get("/api/admin/dashboard", headers=admin_account.headers).get_json()
    assert stats["users"] == 2
    assert stats["caregivers"] == 2
    assert stats["verified_caregivers"] == 1
    assert stats["available_donations"] == 1
    assert stats["orders"] == 1
    assert stats["revenue"] == 20.0


def test_verify_caregiver(client, admin_account, make_caregiver, fetch):
    care = make_caregiver("c@example.com")

    rv = client.post(f"/api/admin/caregivers/{care.id}/verify", headers=admin_account.headers)
    assert rv.status_code == 200
    assert fetch(Caregiver, care.id)["is_verified"] is True

    client.post(f"/api/admin/caregivers/{care.id}/verify", headers=admin_account.headers,
                json={"verified": False})
    assert fetch(Caregiver, care.id)["is_verified"] is False

    rv = client.get("/api/caregivers/caregivers?verified=true")
    assert rv.get_json() == []
    assert client.post("/api/admin/caregivers/999/verify", headers=admin_account.headers).status_code == 404


def test_product_crud(client, admin_account, fetch):
    rv = client.post("/api/admin/products", headers=admin_account.headers, json={
        "name": "Kibble", "price": 12.9, "stock": 0, "category": " Food ",
    })
    assert rv.status_code == 201
    product = rv.get_json()
    assert product["category"] == "food"
    assert product["stock"] == 0

    rv = client.put(f"/api/admin/products/{product['id']}", headers=admin_account.headers,
                    json={"stock": 40})
    assert rv.status_code == 200
    row = fetch(Product, product["id"])
    assert row["stock"] == 40
    assert row["name"] == "Kibble"

    rv = client.post("/api/admin/products", headers=admin_account.headers, json={"name": "No price"})
    assert rv.status_code == 400
    assert {"price", "stock"} <= set(rv.get_json()["fields"])

    rv = client.delete(f"/api/admin/products/{product['id']}", headers=admin_account.headers)
    assert rv.status_code == 200
    assert fetch(Product, product["id"]) is None


def test_product_image_upload_and_cleanup(client, app, admin_account, png_upload):
    rv = client.post(
        "/api/admin/products",
        headers=admin_account.headers,
        data={"name": "Ball", "price": "3.5", "stock": "10", "image": png_upload()},
        content_type="multipart/form-data",
    )
    assert rv.status_code == 201
    product = rv.get_json()
    with app.app_context():
        path = media.path_for(product["image"])
    assert os.path.exists(path)

    client.delete(f"/api/admin/products/{product['id']}", headers=admin_account.headers)
    assert not os.path.exists(path)


def test_shop_pet_create_and_update(client, admin_account, fetch):
    rv = client.post("/api/admin/pets", headers=admin_account.headers, json={
        "name": "Mochi", "price": 250, "energy_level": 2, "allergy_safe": True,
    })
    assert rv.status_code == 201
    pet = rv.get_json()
    assert pet["allergy_safe"] is True
    assert pet["is_available"] is True

    rv = client.post("/api/admin/pets", headers=admin_account.headers,
                     json={"name": "Storm", "price": 100, "energy_level": 9})
    assert rv.status_code == 400

    rv = client.put(f"/api/admin/pets/{pet['id']}", headers=admin_account.headers,
                    json={"is_available": False, "price": 200})
    assert rv.status_code == 200
    row = fetch(ShopPet, pet["id"])
    assert row["is_available"] is False
    assert row["price"] == 200
    assert row["energy_level"] == 2
    assert client.get("/api/users/petShop").get_json() == []

    assert client.delete(f"/api/admin/pets/{pet['id']}", headers=admin_account.headers).status_code == 200
    assert fetch(ShopPet, pet["id"]) is None


def test_order_status_transitions(client, admin_account, make_user, make_product, fetch):
    user = make_user("u@example.com")
    product_id = make_product(stock=5)
    order_id = _place_order(client, user, product_id, quantity=2)
    assert fetch(Product, product_id)["stock"] == 3

    rv = client.get("/api/admin/orders?status=pending", headers=admin_account.headers)
    assert [o["id"] for o in rv.get_json()] == [order_id]

    rv = client.patch(f"/api/admin/orders/{order_id}", headers=admin_account.headers,
                      json={"status": "shipped"})
    assert rv.status_code == 409

    rv = client.patch(f"/api/admin/orders/{order_id}", headers=admin_account.headers,
                      json={"status": "lost"})
    assert rv.status_code == 400

    rv = client.patch(f"/api/admin/orders/{order_id}", headers=admin_account.headers,
                      json={"status": "confirmed"})
    assert rv.get_json()["status"] == "CONFIRMED"

    # a confirmed order can no longer be cancelled by its owner
    assert client.post(f"/api/users/orders/{order_id}/cancel", headers=user.headers).status_code == 409

    rv = client.patch(f"/api/admin/orders/{order_id}", headers=admin_account.headers,
                      json={"status": "cancelled"})
    assert rv.get_json()["status"] == "CANCELLED"
    assert fetch(Product, product_id)["stock"] == 5

    rv = client.patch(f"/api/admin/orders/{order_id}", headers=admin_account.headers,
                      json={"status": "confirmed"})
    assert rv.status_code == 409
