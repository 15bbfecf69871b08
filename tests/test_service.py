"""Tests for the application factory and its routing table."""

from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends
from fastapi.testclient import TestClient

from hotel_api.config import Settings
import hotel_api.service as service_module
from hotel_api.service import create_app, describe_routes, route_table
from hotel_api.store import StoreClient


def test_routes_are_served_under_api_prefix_by_default(store):
    app = create_app(store=store)

    with TestClient(app) as client:
        assert client.get("/api/rooms").status_code == 200
        missing = client.get("/rooms")
        assert missing.status_code == 404
        assert missing.json() == {"error": "Not Found"}
        assert client.get("/health").json() == {"status": "ok"}


def test_prefix_follows_settings(store):
    settings = Settings(store_url="https://a.test", store_key="k", api_prefix="/v1")
    app = create_app(settings=settings, store=store)

    with TestClient(app) as client:
        assert client.get("/v1/locations").status_code == 200


def test_unsupported_method_uses_error_body(client):
    response = client.patch("/rooms/room-1", json={})

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}


def test_non_json_body_is_a_client_error(client, auth_headers):
    response = client.post(
        "/rooms",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_describe_routes_marks_gated_routes(store):
    app = create_app(store=store, api_prefix="")

    table = {(method, path): gated for method, path, gated in describe_routes(app)}

    assert table[("GET", "/rooms")] is False
    assert table[("GET", "/rooms/{record_id}")] is False
    assert table[("POST", "/rooms")] is True
    assert table[("PUT", "/locations/{record_id}")] is True
    assert table[("DELETE", "/locations/{record_id}")] is True
    assert table[("GET", "/reservations")] is True
    assert table[("GET", "/reservations/{record_id}")] is True
    assert table[("GET", "/users/me")] is True
    assert table[("POST", "/auth/login")] is False
    assert table[("GET", "/health")] is False


def test_describe_routes_lists_prefixed_paths(store):
    app = create_app(store=store)

    entries = describe_routes(app)
    table = {(method, path): gated for method, path, gated in entries}

    assert table[("GET", "/api/rooms")] is False
    assert table[("POST", "/api/reservations")] is True
    assert table[("POST", "/api/auth/register")] is False
    assert table[("GET", "/health")] is False
    assert ("GET", "/rooms") not in table
    assert len(entries) == len(table)


def test_route_table_reads_dependencies_of_standalone_router(store):
    app = create_app(store=store, api_prefix="")
    auth = app.state.auth
    router = APIRouter(prefix="/extra")

    @router.get("/open")
    async def open_route() -> dict:
        return {}

    @router.get("/closed", dependencies=[Depends(auth)])
    async def closed_route() -> dict:
        return {}

    assert route_table([router], "/v2", auth) == [
        ("GET", "/v2/extra/open", False),
        ("GET", "/v2/extra/closed", True),
    ]


def test_owned_store_is_closed_on_shutdown(monkeypatch):
    calls = []
    built = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=[])

    def build_store(settings: Settings) -> StoreClient:
        store = StoreClient(
            settings.store_url,
            settings.store_key,
            timeout=settings.store_timeout,
            transport=httpx.MockTransport(handler),
        )
        built.append(store)
        return store

    monkeypatch.setattr(service_module, "build_store", build_store)

    settings = Settings(store_url="https://a.test", store_key="k", api_prefix="")
    app = create_app(settings=settings)

    with TestClient(app) as client:
        assert client.get("/rooms").json() == []

    assert calls == ["/rest/v1/rooms"]
    assert app.state.store is built[0]
    assert built[0].closed
