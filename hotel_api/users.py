"""User accounts, which live in the store's auth service rather than a table."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, field_validator

from .errors import UnauthorizedError, UpstreamError, ValidationError
from .models import Principal
from .security import BearerAuth
from .store import Row, StoreClient, StoreError, StoreTimeoutError

logger = logging.getLogger("hotel_api.users")


class Credentials(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    @field_validator("password", mode="before")
    @classmethod
    def _blank_password(cls, value: object) -> object:
        if isinstance(value, str) and not value:
            return None
        return value


class CurrentUserResponse(BaseModel):
    id: str
    email: Optional[str]


def _require_credentials(payload: Credentials | None) -> Credentials:
    if payload is None or not payload.email or not payload.password:
        raise ValidationError("Email and password are required")
    return payload


def _is_rejection(exc: StoreError) -> bool:
    return exc.status_code is not None and 400 <= exc.status_code < 500


class UserService:
    """Forward registration and login requests to the store's auth service."""

    def __init__(self, store: StoreClient) -> None:
        self._store = store

    async def register(self, payload: Credentials | None) -> Row:
        credentials = _require_credentials(payload)
        try:
            user = await self._store.sign_up(credentials.email, credentials.password)
        except StoreTimeoutError as exc:
            raise UpstreamError("Upstream store request timed out", detail=exc.message) from exc
        except StoreError as exc:
            if _is_rejection(exc):
                logger.warning("Registration rejected for %s: %s", credentials.email, exc.message)
                raise ValidationError("Unable to register user") from exc
            raise UpstreamError(detail=exc.message) from exc

        logger.info("Registered user %s", user.get("id") or credentials.email)
        return user

    async def login(self, payload: Credentials | None) -> Row:
        credentials = _require_credentials(payload)
        try:
            session = await self._store.sign_in(credentials.email, credentials.password)
        except StoreTimeoutError as exc:
            raise UpstreamError("Upstream store request timed out", detail=exc.message) from exc
        except StoreError as exc:
            if _is_rejection(exc):
                logger.warning("Failed login attempt for %s", credentials.email)
                raise UnauthorizedError("Invalid email or password") from exc
            raise UpstreamError(detail=exc.message) from exc

        return {
            key: session.get(key)
            for key in ("access_token", "token_type", "expires_in", "refresh_token", "user")
        }


def build_user_routers(service: UserService, auth: BearerAuth) -> tuple[APIRouter, APIRouter]:
    """Return the ``/auth`` and ``/users`` routers."""

    auth_router = APIRouter(prefix="/auth", tags=["auth"])
    users_router = APIRouter(prefix="/users", tags=["users"])

    @auth_router.post("/register", status_code=status.HTTP_201_CREATED)
    async def register(payload: Optional[Credentials] = Body(default=None)) -> Dict[str, Any]:
        return await service.register(payload)

    @auth_router.post("/login")
    async def login(payload: Optional[Credentials] = Body(default=None)) -> Dict[str, Any]:
        return await service.login(payload)

    @users_router.get("/me", response_model=CurrentUserResponse)
    async def read_current_user(principal: Principal = Depends(auth)) -> CurrentUserResponse:
        return CurrentUserResponse(id=principal.id, email=principal.email)

    return auth_router, users_router


__all__ = ["Credentials", "CurrentUserResponse", "UserService", "build_user_routers"]
