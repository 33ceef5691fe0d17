from __future__ import annotations

from uuid import uuid4


def test_signup_login_me(client):
    username = f"alice_{uuid4().hex[:8]}"

    resp = client.post("/api/auth/signup", json={"username": username, "password": "password123"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "Bearer"
    assert data["user"]["username"] == username
    assert data["user"]["role"] == "user"

    headers = {"Authorization": f"Bearer {data['access_token']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["username"] == username

    # Signup provisions the home folder.
    home = client.get("/api/repo/folders", headers=headers, params={"path": me.json()["home_folder"]})
    assert home.status_code == 200
    assert home.json()["can_write"] is True

    login = client.post("/api/auth/login", json={"username": username, "password": "password123"})
    assert login.status_code == 200


def test_signup_duplicate_and_invalid(client):
    username = f"dup_{uuid4().hex[:8]}"
    assert client.post("/api/auth/signup", json={"username": username, "password": "password123"}).status_code == 200
    assert client.post("/api/auth/signup", json={"username": username, "password": "password123"}).status_code == 409
    assert client.post("/api/auth/signup", json={"username": "x!", "password": "password123"}).status_code == 422
    assert client.post("/api/auth/signup", json={"username": f"s_{uuid4().hex[:8]}", "password": "short"}).status_code == 422


def test_login_invalid_credentials(client):
    resp = client.post("/api/auth/login", json={"username": "nope", "password": "password123"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"
