"""HTTP tests for registration, login, token checks and password flows."""

from datetime import timedelta

from jose import jwt

from campaign_manager.models import User
from campaign_manager.services import user_service
from campaign_manager.utils.dates import utcnow


def _register(client, **overrides):
    body = {"name": "Jane Doe", "email": "a@x.com", "password": "secret123", "company": "Acme"}
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


def test_register_returns_user_and_token(client):
    response = _register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["email"] == "a@x.com"
    assert data["role"] == "user"
    assert data["company"] == "Acme"
    assert data["token"]
    assert "password" not in data


def test_register_ignores_requested_role(client):
    response = _register(client, role="admin")
    assert response.status_code == 201
    assert response.json()["data"]["role"] == "user"


def test_register_duplicate_email_is_rejected(client):
    assert _register(client).status_code == 201
    response = _register(client, email="A@X.com")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "User already exists"}


def test_register_short_password_is_rejected(client):
    response = _register(client, password="123")
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "password" in body["error"]


def test_login_with_valid_and_invalid_credentials(client, user):
    ok = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["data"]["id"] == str(user.id)

    wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
    assert wrong.status_code == 401
    assert wrong.json() == {"success": False, "error": "Invalid credentials"}

    unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert unknown.status_code == 401
    assert unknown.json()["error"] == "Invalid credentials"


def test_me_requires_valid_bearer_token(client, user, headers, settings):
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "alice@example.com"

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    expired = jwt.encode(
        {"sub": str(user.id), "exp": utcnow() - timedelta(minutes=1)},
        settings.JWT_SECRET,
        algorithm="HS256",
    )
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_token_for_deleted_user_is_rejected(client, user, headers, db):
    db.query(User).filter(User.id == user.id).delete()
    db.commit()
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401


def test_logout_returns_empty_data(client, headers):
    response = client.get("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {}}


def test_change_password(client, headers):
    wrong = client.put(
        "/api/auth/password",
        json={"currentPassword": "not-it", "newPassword": "brand-new"},
        headers=headers,
    )
    assert wrong.status_code == 401

    ok = client.put(
        "/api/auth/password",
        json={"currentPassword": "secret123", "newPassword": "brand-new"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert ok.json()["data"]["token"]

    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": "brand-new"}).status_code == 200
    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"}).status_code == 401


def test_forgot_password_always_succeeds(client, user):
    known = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_reset_password_flow(client, user, db, settings):
    token = user_service.start_password_reset(db, settings, "alice@example.com")
    assert token

    stored = db.query(User).filter(User.id == user.id).one()
    assert stored.reset_password_token != token

    response = client.put(f"/api/auth/reset-password/{token}", json={"password": "reset-pass"})
    assert response.status_code == 200
    assert response.json()["data"]["token"]

    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": "reset-pass"}).status_code == 200

    # Single use
    again = client.put(f"/api/auth/reset-password/{token}", json={"password": "other-pass"})
    assert again.status_code == 400
    assert again.json()["error"] == "Invalid token"


def test_reset_password_expired_token(client, user, db, settings):
    token = user_service.start_password_reset(db, settings, "alice@example.com")
    stored = db.query(User).filter(User.id == user.id).one()
    stored.reset_password_expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.put(f"/api/auth/reset-password/{token}", json={"password": "reset-pass"})
    assert response.status_code == 400
