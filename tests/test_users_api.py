from __future__ import annotations

from hotel_api.store import StoreError


def test_register_login_and_read_current_user(client, store):
    registered = client.post(
        "/auth/register",
        json={"email": " Ana@Example.com ", "password": "Sup3rSecret!"},
    )
    assert registered.status_code == 201, registered.text
    assert registered.json()["email"] == "ana@example.com"
    assert store.accounts == {"ana@example.com": "Sup3rSecret!"}

    login = client.post("/auth/login", json={"email": "ana@example.com", "password": "Sup3rSecret!"})
    assert login.status_code == 200, login.text
    session = login.json()
    assert session["token_type"] == "bearer"
    assert session["user"]["email"] == "ana@example.com"
    assert "provider_token" not in session

    me = client.get("/users/me", headers={"Authorization": f"Bearer {session['access_token']}"})
    assert me.status_code == 200
    assert me.json() == {"id": "id-ana@example.com", "email": "ana@example.com"}


def test_register_requires_email_and_password(client, store):
    for body in ({"email": "ana@example.com"}, {"password": "secret"}, {"email": " ", "password": "x"}):
        response = client.post("/auth/register", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Email and password are required"}
    assert store.auth_calls == []


def test_duplicate_registration_is_a_client_error(client, store):
    store.accounts["ana@example.com"] = "first"

    response = client.post("/auth/register", json={"email": "ana@example.com", "password": "second"})

    assert response.status_code == 400
    assert response.json() == {"error": "Unable to register user"}


def test_login_with_wrong_password_is_unauthorized(client, store):
    store.accounts["ana@example.com"] = "right"

    response = client.post("/auth/login", json={"email": "ana@example.com", "password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


def test_login_during_auth_outage_is_a_server_error(client, store):
    store.auth_fail_with = StoreError("Service Unavailable", status_code=503)

    response = client.post("/auth/login", json={"email": "ana@example.com", "password": "pw"})

    assert response.status_code == 500
    assert response.json() == {"error": "Upstream store request failed"}


def test_current_user_requires_token(client):
    response = client.get("/users/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing bearer token"}
