"""Generic list/get/create/update/delete handling for store-backed resources."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Dict, List, Optional, Tuple, Type, Union

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, ConfigDict, field_validator

from .errors import NotFoundError, UpstreamError, ValidationError
from .models import Principal
from .security import BearerAuth
from .store import Row, StoreClient, StoreError, StoreTimeoutError

logger = logging.getLogger("hotel_api.resources")

# PostgreSQL "invalid text representation": the id cannot exist in the table.
_INVALID_ID_CODE = "22P02"


class ResourcePayload(BaseModel):
    """Request body for create and full-replacement update.

    Every field is optional at parse time so that a missing field is reported
    with the resource's own message instead of a schema error.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def missing_fields(self) -> List[str]:
        return [name for name in type(self).model_fields if getattr(self, name) is None]

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class RoomPayload(ResourcePayload):
    number: Optional[str] = None
    type: Optional[str] = None
    price: Optional[Union[int, float]] = None
    location_id: Optional[str] = None


class LocationPayload(ResourcePayload):
    name: Optional[str] = None
    address: Optional[str] = None


class ReservationPayload(ResourcePayload):
    user_id: Optional[str] = None
    room_id: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None


@dataclass(frozen=True)
class ResourceSpec:
    """Static description of one resource exposed by the API."""

    collection: str
    label: str
    payload_model: Type[ResourcePayload]
    missing_message: str = "All fields are required"
    protect_reads: bool = False

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return tuple(self.payload_model.model_fields)

    @property
    def not_found_message(self) -> str:
        return f"{self.label} not found"

    @property
    def deleted_message(self) -> str:
        return f"{self.label} deleted successfully"


ROOMS = ResourceSpec(collection="rooms", label="Room", payload_model=RoomPayload)
LOCATIONS = ResourceSpec(
    collection="locations",
    label="Location",
    payload_model=LocationPayload,
    missing_message="Name and address are required",
)
RESERVATIONS = ResourceSpec(
    collection="reservations",
    label="Reservation",
    payload_model=ReservationPayload,
    protect_reads=True,
)

RESOURCES: Tuple[ResourceSpec, ...] = (ROOMS, LOCATIONS, RESERVATIONS)


class ResourceService:
    """Run exactly one store call per operation and translate its outcome."""

    def __init__(self, spec: ResourceSpec, store: StoreClient) -> None:
        self.spec = spec
        self._store = store

    async def list(self) -> List[Row]:
        return await self._call("list", self._store.select(self.spec.collection))

    async def get(self, record_id: str) -> Row:
        rows = await self._call(
            "get",
            self._store.select(self.spec.collection, {"id": record_id}),
            by_id=True,
        )
        return self._first(rows)

    async def create(self, payload: Optional[ResourcePayload], principal: Principal) -> Row:
        record = self._record(payload)
        rows = await self._call("create", self._store.insert(self.spec.collection, record))
        if not rows:
            raise UpstreamError(detail=f"Store returned no rows after inserting into {self.spec.collection}")
        created = rows[0]
        logger.info("Principal %s created %s %s", principal.id, self.spec.label.lower(), created.get("id"))
        return created

    async def update(self, record_id: str, payload: Optional[ResourcePayload], principal: Principal) -> Row:
        record = self._record(payload)
        rows = await self._call(
            "update",
            self._store.update(self.spec.collection, record, {"id": record_id}),
            by_id=True,
        )
        updated = self._first(rows)
        logger.info("Principal %s updated %s %s", principal.id, self.spec.label.lower(), record_id)
        return updated

    async def delete(self, record_id: str, principal: Principal) -> Dict[str, str]:
        rows = await self._call(
            "delete",
            self._store.delete(self.spec.collection, {"id": record_id}),
            by_id=True,
        )
        self._first(rows)
        logger.info("Principal %s deleted %s %s", principal.id, self.spec.label.lower(), record_id)
        return {"message": self.spec.deleted_message}

    def _record(self, payload: Optional[ResourcePayload]) -> Dict[str, Any]:
        if payload is None or payload.missing_fields():
            raise ValidationError(self.spec.missing_message)
        return payload.to_record()

    def _first(self, rows: List[Row]) -> Row:
        if not rows:
            raise NotFoundError(self.spec.not_found_message)
        return rows[0]

    async def _call(self, operation: str, pending: Awaitable[List[Row]], *, by_id: bool = False) -> List[Row]:
        try:
            return await pending
        except StoreTimeoutError as exc:
            detail = f"{operation} on {self.spec.collection} timed out: {exc.message}"
            raise UpstreamError("Upstream store request timed out", detail=detail) from exc
        except StoreError as exc:
            if by_id and exc.code == _INVALID_ID_CODE:
                raise NotFoundError(self.spec.not_found_message) from exc
            detail = (
                f"{operation} on {self.spec.collection} failed "
                f"(status={exc.status_code}, code={exc.code}): {exc.message}"
            )
            raise UpstreamError(detail=detail) from exc


def build_resource_router(service: ResourceService, auth: BearerAuth) -> APIRouter:
    """Expose ``service`` as ``/<collection>`` and ``/<collection>/{record_id}``."""

    spec = service.spec
    payload_model = spec.payload_model
    read_dependencies = [Depends(auth)] if spec.protect_reads else []

    router = APIRouter(prefix=f"/{spec.collection}", tags=[spec.collection])

    @router.get("", dependencies=read_dependencies, name=f"list_{spec.collection}")
    async def list_records() -> List[Dict[str, Any]]:
        return await service.list()

    @router.get("/{record_id}", dependencies=read_dependencies, name=f"get_{spec.collection}")
    async def read_record(record_id: str) -> Dict[str, Any]:
        return await service.get(record_id)

    @router.post("", status_code=status.HTTP_201_CREATED, name=f"create_{spec.collection}")
    async def create_record(
        payload: Optional[payload_model] = Body(default=None),
        principal: Principal = Depends(auth),
    ) -> Dict[str, Any]:
        return await service.create(payload, principal)

    @router.put("/{record_id}", name=f"update_{spec.collection}")
    async def update_record(
        record_id: str,
        payload: Optional[payload_model] = Body(default=None),
        principal: Principal = Depends(auth),
    ) -> Dict[str, Any]:
        return await service.update(record_id, payload, principal)

    @router.delete("/{record_id}", name=f"delete_{spec.collection}")
    async def delete_record(record_id: str, principal: Principal = Depends(auth)) -> Dict[str, str]:
        return await service.delete(record_id, principal)

    return router


__all__ = [
    "LOCATIONS",
    "RESERVATIONS",
    "RESOURCES",
    "ROOMS",
    "LocationPayload",
    "ReservationPayload",
    "ResourcePayload",
    "ResourceService",
    "ResourceSpec",
    "RoomPayload",
    "build_resource_router",
]
