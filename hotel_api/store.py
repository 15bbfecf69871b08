"""Async gateway to the hosted data store's REST and auth interfaces."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import httpx

logger = logging.getLogger("hotel_api.store")

Row = Dict[str, Any]

_REST_PATH = "/rest/v1"
_AUTH_PATH = "/auth/v1"
_RETURN_ROWS = {"Prefer": "return=representation"}


class StoreError(RuntimeError):
    """Raised when the store rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class StoreTimeoutError(StoreError):
    """Raised when the store does not answer within the configured timeout."""


@dataclass
class _StoreConfig:
    base_url: str
    api_key: str
    timeout: float


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("Store URL must not be empty")
    return cleaned.rstrip("/")


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "msg", "error_description", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


def _error_from_response(response: httpx.Response) -> StoreError:
    default = f"Store request failed with status {response.status_code}"
    try:
        parsed = response.json()
    except ValueError:
        parsed = response.text

    code: str | None = None
    if isinstance(parsed, dict):
        raw_code = parsed.get("code", parsed.get("error_code"))
        if raw_code is not None:
            code = str(raw_code)

    return StoreError(
        _extract_error_message(parsed, default),
        status_code=response.status_code,
        code=code,
    )


def _filter_params(filters: Mapping[str, object] | None) -> Dict[str, str]:
    params = {"select": "*"}
    for column, value in (filters or {}).items():
        params[column] = f"eq.{value}"
    return params


def _table_path(collection: str) -> str:
    name = collection.strip()
    if not name:
        raise ValueError("Collection name must not be empty")
    return f"{_REST_PATH}/{name}"


class StoreClient:
    """Issue single-table queries and token checks against the store.

    One instance wraps one :class:`httpx.AsyncClient` and is shared by every
    request handler; call :meth:`aclose` when the process shuts down.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = _StoreConfig(
            base_url=_normalize_base_url(base_url),
            api_key=(api_key or "").strip(),
            timeout=timeout,
        )
        if not self._config.api_key:
            raise ValueError("Store API key must not be empty")
        if timeout <= 0:
            raise ValueError("Store timeout must be positive")

        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers={
                "apikey": self._config.api_key,
                "Authorization": f"Bearer {self._config.api_key}",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def timeout(self) -> float:
        return self._config.timeout

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Table access
    # ------------------------------------------------------------------
    async def select(self, collection: str, filters: Mapping[str, object] | None = None) -> List[Row]:
        response = await self._request("GET", _table_path(collection), params=_filter_params(filters))
        return self._rows(response)

    async def insert(self, collection: str, record: Mapping[str, object]) -> List[Row]:
        response = await self._request(
            "POST",
            _table_path(collection),
            params={"select": "*"},
            json=dict(record),
            headers=_RETURN_ROWS,
        )
        return self._rows(response)

    async def update(
        self,
        collection: str,
        record: Mapping[str, object],
        filters: Mapping[str, object],
    ) -> List[Row]:
        if not filters:
            raise ValueError("Updates require at least one filter")
        response = await self._request(
            "PATCH",
            _table_path(collection),
            params=_filter_params(filters),
            json=dict(record),
            headers=_RETURN_ROWS,
        )
        return self._rows(response)

    async def delete(self, collection: str, filters: Mapping[str, object]) -> List[Row]:
        if not filters:
            raise ValueError("Deletes require at least one filter")
        response = await self._request(
            "DELETE",
            _table_path(collection),
            params=_filter_params(filters),
            headers=_RETURN_ROWS,
        )
        return self._rows(response)

    # ------------------------------------------------------------------
    # Auth service
    # ------------------------------------------------------------------
    async def get_user(self, access_token: str) -> Optional[Row]:
        """Return the user owning ``access_token`` or ``None`` if it is rejected."""

        try:
            response = await self._request(
                "GET",
                f"{_AUTH_PATH}/user",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except StoreError as exc:
            if exc.status_code is not None and 400 <= exc.status_code < 500:
                return None
            raise
        return self._object(response)

    async def sign_up(self, email: str, password: str) -> Row:
        response = await self._request(
            "POST",
            f"{_AUTH_PATH}/signup",
            json={"email": email, "password": password},
        )
        return self._object(response)

    async def sign_in(self, email: str, password: str) -> Row:
        response = await self._request(
            "POST",
            f"{_AUTH_PATH}/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._object(response)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: object | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            raise StoreTimeoutError(
                f"Store did not answer {method} {path} within {self._config.timeout}s"
            ) from exc
        except httpx.RequestError as exc:
            raise StoreError(f"Failed to contact the store: {exc}") from exc

        if response.status_code >= 400:
            error = _error_from_response(response)
            logger.debug("Store answered %s %s with %s: %s", method, path, response.status_code, error.message)
            raise error
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> List[Row]:
        try:
            data = response.json()
        except ValueError as exc:
            raise StoreError("Store returned an invalid response") from exc

        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise StoreError("Store returned an unexpected response payload")
        return data

    @staticmethod
    def _object(response: httpx.Response) -> Row:
        try:
            data = response.json()
        except ValueError as exc:
            raise StoreError("Store returned an invalid response") from exc
        if not isinstance(data, dict):
            raise StoreError("Store returned an unexpected response payload")
        return data


__all__ = ["Row", "StoreClient", "StoreError", "StoreTimeoutError"]
