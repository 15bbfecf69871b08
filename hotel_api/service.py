"""Application factory wiring the resource routers, auth gate and error handlers."""

from __future__ import annotations

import inspect
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Tuple

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import DEFAULT_API_PREFIX, Settings, load_settings, normalize_prefix
from .errors import APIError, UpstreamError
from .resources import RESOURCES, ResourceService, build_resource_router
from .security import BearerAuth
from .store import StoreClient
from .users import UserService, build_user_routers

logger = logging.getLogger("hotel_api.service")


def build_store(settings: Settings) -> StoreClient:
    return StoreClient(settings.store_url, settings.store_key, timeout=settings.store_timeout)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"error": message}``."""

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
        if isinstance(exc, UpstreamError):
            logger.error(
                "Upstream failure on %s %s: %s",
                request.method,
                request.url.path,
                exc.detail or exc.message,
            )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected body for %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body"},
        )


RouteEntry = Tuple[str, str, bool]


def _requires(route: APIRoute, auth: BearerAuth) -> bool:
    if any(getattr(dep, "dependency", None) is auth for dep in route.dependencies):
        return True
    parameters = inspect.signature(route.endpoint).parameters.values()
    return any(getattr(param.default, "dependency", None) is auth for param in parameters)


def route_table(routers: Iterable[APIRouter], prefix: str, auth: BearerAuth) -> List[RouteEntry]:
    """Collect ``(method, path, requires_auth)`` from routers not yet included anywhere."""

    table: List[RouteEntry] = []
    for router in routers:
        for route in router.routes:
            if not isinstance(route, APIRoute):
                continue
            gated = _requires(route, auth)
            for method in sorted(route.methods - {"HEAD"}):
                table.append((method, f"{prefix}{route.path}", gated))
    return table


def describe_routes(app: FastAPI) -> List[RouteEntry]:
    """Return ``(method, path, requires_auth)`` for every route ``create_app`` mounted."""

    return list(app.state.route_table)


def create_app(
    *,
    settings: Settings | None = None,
    store: StoreClient | None = None,
    api_prefix: str | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    When ``store`` is omitted a :class:`StoreClient` is built from
    ``settings`` (or from the environment) and closed on shutdown. A store
    passed in stays owned by the caller.
    """

    owns_store = store is None
    if store is None:
        settings = settings or load_settings()
        store = build_store(settings)

    if api_prefix is None:
        api_prefix = settings.api_prefix if settings is not None else DEFAULT_API_PREFIX
    prefix = normalize_prefix(api_prefix)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if owns_store:
                await store.aclose()
                logger.info("Closed store client for %s", store.base_url)

    app = FastAPI(
        title="Hotel Reservation API",
        version="1.0.0",
        description="Rooms, locations and reservations backed by a hosted data store.",
        lifespan=lifespan,
    )

    auth = BearerAuth(store)
    app.state.settings = settings
    app.state.store = store
    app.state.auth = auth

    routers = [build_resource_router(ResourceService(spec, store), auth) for spec in RESOURCES]
    routers.extend(build_user_routers(UserService(store), auth))

    api_router = APIRouter(prefix=prefix)
    for router in routers:
        api_router.include_router(router)
    app.include_router(api_router)

    health_router = APIRouter()

    @health_router.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    app.include_router(health_router)
    app.state.route_table = route_table(routers, prefix, auth) + route_table([health_router], "", auth)

    register_exception_handlers(app)
    return app


__all__ = ["build_store", "create_app", "describe_routes", "register_exception_handlers", "route_table"]
