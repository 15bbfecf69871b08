"""Bearer token authentication backed by the store's auth service."""

import logging

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import UnauthorizedError, UpstreamError
from .models import Principal
from .store import StoreClient, StoreError, StoreTimeoutError

logger = logging.getLogger("hotel_api.security")


class BearerAuth:
    """FastAPI dependency that resolves the request's principal.

    Every request is checked on its own; nothing is cached between calls.
    """

    def __init__(self, store: StoreClient) -> None:
        self._store = store
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> Principal:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise UnauthorizedError("Missing bearer token")

        token = credentials.credentials.strip()
        if not token:
            raise UnauthorizedError("Missing bearer token")

        try:
            payload = await self._store.get_user(token)
        except StoreTimeoutError as exc:
            raise UpstreamError("Upstream store request timed out", detail=exc.message) from exc
        except StoreError as exc:
            raise UpstreamError(detail=exc.message) from exc

        if payload is None:
            logger.warning("Rejected bearer token for %s %s", request.method, request.url.path)
            raise UnauthorizedError("Invalid or expired token")

        try:
            principal = Principal.from_user_payload(payload)
        except ValueError as exc:
            raise UpstreamError(detail=str(exc)) from exc

        request.state.principal = principal
        return principal


__all__ = ["BearerAuth"]
