from __future__ import annotations

import copy
import itertools
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hotel_api.service import create_app
from hotel_api.store import StoreError


VALID_TOKEN = "valid-token"
PRINCIPAL = {"id": "user-1", "email": "guest@example.com", "role": "authenticated"}


class FakeStore:
    """In-memory stand-in for :class:`hotel_api.store.StoreClient`."""

    base_url = "https://store.test"

    def __init__(self) -> None:
        self.tables: Dict[str, List[dict]] = {"rooms": [], "locations": [], "reservations": []}
        self.tokens: Dict[str, dict] = {VALID_TOKEN: dict(PRINCIPAL)}
        self.accounts: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self.auth_calls: List[str] = []
        self.fail_with: Optional[Exception] = None
        self.auth_fail_with: Optional[Exception] = None
        self._ids = itertools.count(1)

    def seed(self, collection: str, **fields) -> dict:
        row = {"id": f"{collection}-{next(self._ids)}", "created_at": "2023-05-01T00:00:00+00:00", **fields}
        self.tables[collection].append(row)
        return copy.deepcopy(row)

    def _record(self, operation: str, collection: str, *extra) -> None:
        self.calls.append((operation, collection, *extra))
        if self.fail_with is not None:
            raise self.fail_with

    def _matching(self, collection: str, filters) -> List[dict]:
        rows = self.tables[collection]
        return [row for row in rows if all(str(row.get(k)) == str(v) for k, v in (filters or {}).items())]

    async def select(self, collection, filters=None):
        self._record("select", collection, dict(filters or {}))
        return copy.deepcopy(self._matching(collection, filters))

    async def insert(self, collection, record):
        self._record("insert", collection, dict(record))
        return [self.seed(collection, **record)]

    async def update(self, collection, record, filters):
        self._record("update", collection, dict(record), dict(filters))
        matched = self._matching(collection, filters)
        for row in matched:
            row.update(record)
        return copy.deepcopy(matched)

    async def delete(self, collection, filters):
        self._record("delete", collection, dict(filters))
        matched = self._matching(collection, filters)
        self.tables[collection] = [row for row in self.tables[collection] if row not in matched]
        return copy.deepcopy(matched)

    async def get_user(self, access_token):
        self.auth_calls.append(access_token)
        if self.auth_fail_with is not None:
            raise self.auth_fail_with
        user = self.tokens.get(access_token)
        return dict(user) if user is not None else None

    async def sign_up(self, email, password):
        self.auth_calls.append(email)
        if self.auth_fail_with is not None:
            raise self.auth_fail_with
        if email in self.accounts:
            raise StoreError("User already registered", status_code=422, code="user_already_exists")
        self.accounts[email] = password
        return {"id": f"user-{next(self._ids)}", "email": email}

    async def sign_in(self, email, password):
        self.auth_calls.append(email)
        if self.auth_fail_with is not None:
            raise self.auth_fail_with
        if self.accounts.get(email) != password:
            raise StoreError("Invalid login credentials", status_code=400, code="invalid_credentials")
        token = f"token-for-{email}"
        self.tokens[token] = {"id": f"id-{email}", "email": email}
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": 3600,
            "refresh_token": "refresh",
            "user": {"id": f"id-{email}", "email": email},
            "provider_token": "not-forwarded",
        }


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def client(store: FakeStore):
    app = create_app(store=store, api_prefix="")
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
