import os

from petnest.extensions import media
from petnest.models.user import User


def test_register_user_returns_token_and_normalised_location(client, fetch):
    rv = client.post("/api/users/register", json={
        "name": "Mira",
        "email": "Mira@Example.com",
        "password": "password123",
        "city": "  Sofia ",
        "area": "LOZENETS",
        "daily_availability": 4,
        "has_children": True,
    })
    assert rv.status_code == 201
    body = rv.get_json()
    assert body["role"] == "user"
    assert body["token"]
    assert body["account"]["email"] == "mira@example.com"
    assert body["account"]["city"] == "sofia"
    assert body["account"]["area"] == "lozenets"

    row = fetch(User, body["account"]["id"])
    assert row["has_children"] is True
    assert row["daily_availability"] == 4


def test_register_duplicate_email_conflicts(client, make_user):
    make_user("taken@example.com")
    rv = client.post("/api/users/register", json={
        "name": "Other", "email": "taken@example.com", "password": "password123",
    })
    assert rv.status_code == 409
    assert rv.get_json()["error"] == "Email is already registered."


def test_register_validation_errors_list_fields(client):
    rv = client.post("/api/users/register", json={"name": "X", "email": "nope", "password": "short"})
    assert rv.status_code == 400
    fields = rv.get_json()["fields"]
    assert {"name", "email", "password"} <= set(fields)


def test_login_and_verify_token(client, make_user):
    make_user("eva@example.com", "Eva")
    rv = client.post("/api/users/login", json={"email": "eva@example.com", "password": "password123"})
    assert rv.status_code == 200
    token = rv.get_json()["token"]

    rv = client.get("/api/users/verify-token", headers={"Authorization": f"Bearer {token}"})
    assert rv.status_code == 200
    assert rv.get_json()["role"] == "user"


def test_login_wrong_password_is_401(client, make_user):
    make_user("eva@example.com")
    rv = client.post("/api/users/login", json={"email": "eva@example.com", "password": "wrong-pass"})
    assert rv.status_code == 401
    assert rv.get_json()["error"] == "Invalid credentials."


def test_missing_or_garbage_token_is_401(client):
    assert client.get("/api/users/userdata").status_code == 401
    rv = client.get("/api/users/userdata", headers={"Authorization": "Bearer not-a-jwt"})
    assert rv.status_code == 401
    assert rv.get_json()["error"] == "Authentication required."


def test_caregiver_token_on_user_endpoint_is_403(client, make_caregiver):
    care = make_caregiver("care@example.com")
    rv = client.get("/api/users/userdata", headers=care.headers)
    assert rv.status_code == 403


def test_user_token_on_caregiver_endpoint_is_403(client, make_user):
    user = make_user("u@example.com")
    rv = client.get("/api/caregivers/caregiverdata", headers=user.headers)
    assert rv.status_code == 403


def test_update_profile_only_touches_sent_fields(client, make_user, fetch):
    user = make_user("u@example.com", "Before", phone="0888")
    rv = client.put("/api/users/update-profile", headers=user.headers, json={"name": "After"})
    assert rv.status_code == 200
    row = fetch(User, user.id)
    assert row["name"] == "After"
    assert row["phone"] == "0888"
    assert row["city"] == "sofia"


def test_update_preferences(client, make_user, fetch):
    user = make_user("u@example.com")
    rv = client.put("/api/users/update-preferences", headers=user.headers, json={
        "has_outdoor_space": True, "experience_level": 4,
    })
    assert rv.status_code == 200
    prefs = rv.get_json()["preferences"]
    assert prefs["has_outdoor_space"] is True
    assert prefs["experience_level"] == 4


def test_update_image_stores_file(client, app, make_user, png_upload):
    user = make_user("u@example.com")
    rv = client.post(
        "/api/users/update-image",
        headers=user.headers,
        data={"image": png_upload()},
        content_type="multipart/form-data",
    )
    assert rv.status_code == 200
    url = rv.get_json()["image"]
    assert url.startswith("/static/uploads/user_")
    with app.app_context():
        assert os.path.exists(media.path_for(url))


def test_caregiver_register_and_profile(client):
    rv = client.post("/api/caregivers/register", json={
        "name": "Ivo", "email": "ivo@example.com", "password": "password123",
        "hourly_rate": 12.5, "city": "Sofia", "area": "Center",
    })
    assert rv.status_code == 201
    token = rv.get_json()["token"]
    rv = client.get("/api/caregivers/caregiverdata", headers={"Authorization": f"Bearer {token}"})
    assert rv.status_code == 200
    body = rv.get_json()
    assert body["hourly_rate"] == 12.5
    assert body["is_verified"] is False


def test_admin_login(client, admin_account):
    rv = client.post("/api/admin/login", json={"username": "root", "password": "password123"})
    assert rv.status_code == 200
    assert rv.get_json()["role"] == "admin"
