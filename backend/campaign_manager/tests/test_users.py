"""HTTP tests for profile management and the admin user list."""


def test_get_profile(client, headers, user):
    response = client.get("/api/users/profile", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == str(user.id)
    assert data["email"] == "alice@example.com"
    assert data["role"] == "user"
    assert data["platformConnections"] == []
    assert "password" not in data
    assert "passwordHash" not in data


def test_update_profile(client, headers):
    response = client.put(
        "/api/users/profile",
        json={"name": "Alice Cooper", "email": "Alice.New@Example.com", "company": "Acme", "role": "admin"},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Alice Cooper"
    assert data["email"] == "alice.new@example.com"
    assert data["company"] == "Acme"
    assert data["role"] == "user"

    login = client.post("/api/auth/login", json={"email": "alice.new@example.com", "password": "secret123"})
    assert login.status_code == 200


def test_update_profile_email_collision(client, headers, other_user):
    response = client.put("/api/users/profile", json={"email": other_user.email}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Email is already in use"}


def test_update_profile_keeps_own_email(client, headers, user):
    response = client.put("/api/users/profile", json={"email": user.email, "company": "Initech"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["company"] == "Initech"


def test_update_profile_validation(client, headers):
    assert client.put("/api/users/profile", json={"email": "nope"}, headers=headers).status_code == 400
    assert client.put("/api/users/profile", json={"name": ""}, headers=headers).status_code == 400


def test_admin_lists_users(client, admin_headers, user, other_user):
    response = client.get("/api/users", params={"sort": "email"}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 3
    assert [u["email"] for u in body["data"]] == ["admin@example.com", "alice@example.com", "bob@example.com"]
    assert body["pagination"] == {}

    admins = client.get("/api/users", params={"role": "admin", "select": "email"}, headers=admin_headers).json()
    assert admins["data"] == [{"id": admins["data"][0]["id"], "email": "admin@example.com"}]


def test_user_list_is_admin_only(client, headers):
    response = client.get("/api/users", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "User role user is not authorized to access this route"


def test_profile_requires_auth(client):
    assert client.get("/api/users/profile").status_code == 401
