"""Error taxonomy shared by the resource handlers and the auth gate."""
from __future__ import annotations

from fastapi import status


class APIError(Exception):
    """Base class for errors that are rendered as ``{"error": message}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(APIError):
    """Raised when a request body is missing required fields."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(APIError):
    """Raised when a request lacks a valid bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamError(APIError):
    """Raised when the backing store fails to answer a request.

    ``detail`` keeps the store's own message for the logs; clients only ever
    see ``message``.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Upstream store request failed", *, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail


__all__ = [
    "APIError",
    "NotFoundError",
    "UnauthorizedError",
    "UpstreamError",
    "ValidationError",
]
