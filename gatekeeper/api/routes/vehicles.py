"""
Vehicle allowlist API routes.

Provides CRUD endpoints for vehicles allowed through the barrier.
Operator access only.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status
from pydantic import BaseModel, Field

from gatekeeper.api.deps import CurrentUser, Session
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import DuplicatePlateError
from gatekeeper.domain.models import MAX_PLATE_LENGTH, Vehicle
from gatekeeper.domain.services import PlateTextNormalizer
from gatekeeper.infrastructure.db.repository import VehicleRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/vehicles", tags=["vehicles"])

_normalizer = PlateTextNormalizer()


class VehicleResponse(BaseModel):
    """Response model for an allowlisted vehicle."""

    id: int
    license_plate: str
    owner_name: str | None
    owner_phone: str | None
    vehicle_model: str | None
    vehicle_color: str | None
    notes: str | None
    is_active: bool
    created_by: str | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_domain(cls, vehicle: Vehicle) -> "VehicleResponse":
        return cls(
            id=vehicle.id,
            license_plate=vehicle.license_plate,
            owner_name=vehicle.owner_name,
            owner_phone=vehicle.owner_phone,
            vehicle_model=vehicle.vehicle_model,
            vehicle_color=vehicle.vehicle_color,
            notes=vehicle.notes,
            is_active=vehicle.is_active,
            created_by=vehicle.created_by,
            created_at=vehicle.created_at,
            updated_at=vehicle.updated_at,
        )


class VehicleListResponse(BaseModel):
    vehicles: list[VehicleResponse]
    count: int


class VehicleCreateRequest(BaseModel):
    """Request to allowlist a vehicle."""

    license_plate: str = Field(..., min_length=1, max_length=MAX_PLATE_LENGTH)
    owner_name: str | None = Field(None, max_length=100)
    owner_phone: str | None = Field(None, max_length=30)
    vehicle_model: str | None = Field(None, max_length=100)
    vehicle_color: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=500)


class VehicleUpdateRequest(BaseModel):
    """Request to update a vehicle. The plate itself cannot change."""

    owner_name: str | None = Field(None, max_length=100)
    owner_phone: str | None = Field(None, max_length=30)
    vehicle_model: str | None = Field(None, max_length=100)
    vehicle_color: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=500)
    is_active: bool | None = None


@router.get(
    "",
    response_model=VehicleListResponse,
    summary="List vehicles",
)
async def list_vehicles(
    db: Session,
    _: CurrentUser,
    is_active: bool | None = None,
    limit: int = Query(default=100, le=500),
    offset: int = Query(default=0, ge=0),
) -> VehicleListResponse:
    vehicles = await VehicleRepository(db).list_vehicles(is_active, limit, offset)
    return VehicleListResponse(
        vehicles=[VehicleResponse.from_domain(v) for v in vehicles],
        count=len(vehicles),
    )


@router.post(
    "",
    response_model=VehicleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add vehicle",
)
async def create_vehicle(
    request: VehicleCreateRequest,
    db: Session,
    user: CurrentUser,
) -> VehicleResponse:
    plate = _normalizer.normalize(request.license_plate)
    if not plate:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Empty license plate")

    try:
        vehicle = await VehicleRepository(db).create(
            Vehicle(
                license_plate=plate,
                owner_name=request.owner_name,
                owner_phone=request.owner_phone,
                vehicle_model=request.vehicle_model,
                vehicle_color=request.vehicle_color,
                notes=request.notes,
                created_by=user.username,
            )
        )
    except DuplicatePlateError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Vehicle with this plate already exists",
        )

    logger.info("vehicle_created", plate=plate, owner=request.owner_name)
    return VehicleResponse.from_domain(vehicle)


@router.get(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Get vehicle",
)
async def get_vehicle(
    vehicle_id: Annotated[int, Path(description="Vehicle ID")],
    db: Session,
    _: CurrentUser,
) -> VehicleResponse:
    vehicle = await VehicleRepository(db).get_by_id(vehicle_id)
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    return VehicleResponse.from_domain(vehicle)


@router.put(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Update vehicle",
)
async def update_vehicle(
    vehicle_id: Annotated[int, Path(description="Vehicle ID")],
    request: VehicleUpdateRequest,
    db: Session,
    _: CurrentUser,
) -> VehicleResponse:
    vehicle = await VehicleRepository(db).update(vehicle_id, request.model_dump(exclude_unset=True))
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")

    logger.info("vehicle_updated", vehicle_id=vehicle_id)
    return VehicleResponse.from_domain(vehicle)


@router.delete(
    "/{vehicle_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate vehicle",
    description="Soft delete: passages keep referring to the vehicle.",
)
async def delete_vehicle(
    vehicle_id: Annotated[int, Path(description="Vehicle ID")],
    db: Session,
    _: CurrentUser,
) -> None:
    if not await VehicleRepository(db).deactivate(vehicle_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    logger.info("vehicle_deactivated", vehicle_id=vehicle_id)
