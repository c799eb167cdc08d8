from debtledger.core.auth import pwd_context
from debtledger.core.config import settings


def test_admin_login(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", pwd_context.hash("open sesame"))

    response = client.post("/api/v1/auth/admin/login", json={"password": "open sesame"})

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "admin"
    assert data["token_type"] == "bearer"
    assert data["friend"] is None

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    assert client.get("/api/v1/friends/", headers=headers).status_code == 200


def test_admin_login_wrong_password(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", pwd_context.hash("open sesame"))

    response = client.post("/api/v1/auth/admin/login", json={"password": "guess"})

    assert response.status_code == 401


def test_admin_login_without_configured_hash(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", "")

    response = client.post("/api/v1/auth/admin/login", json={"password": "anything"})

    assert response.status_code == 401


def test_friend_login(client, admin_headers):
    created = client.post("/api/v1/friends/", json={"name": "Alice"}, headers=admin_headers).json()

    response = client.post("/api/v1/auth/friend/login", json={"access_code": created["access_code"]})

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "friend"
    assert data["friend"]["id"] == created["id"]

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    me = client.get("/api/v1/portal/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["name"] == "Alice"


def test_friend_login_unknown_code(client):
    response = client.post("/api/v1/auth/friend/login", json={"access_code": "000000"})
    assert response.status_code == 401


def test_friend_login_malformed_code(client):
    response = client.post("/api/v1/auth/friend/login", json={"access_code": "12ab"})
    assert response.status_code == 422


def test_routes_require_token(client):
    assert client.get("/api/v1/friends/").status_code in (401, 403)
    assert client.get("/api/v1/portal/me").status_code in (401, 403)


def test_friend_token_cannot_use_admin_routes(client, admin_headers, friend_headers):
    created = client.post("/api/v1/friends/", json={"name": "Alice"}, headers=admin_headers).json()

    response = client.get("/api/v1/friends/", headers=friend_headers(created["id"]))

    assert response.status_code == 403


def test_admin_token_cannot_use_portal(client, admin_headers):
    assert client.get("/api/v1/portal/me", headers=admin_headers).status_code == 403


def test_invalid_token(client):
    response = client.get("/api/v1/friends/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
