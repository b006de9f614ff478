"""
Hardware integration API routes.

Barrier and camera integrations: registration, primary selection,
connectivity tests, direct barrier commands, snapshots and stream URLs.
Credentials are write-only and never returned. Operator access only.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Response, status
from pydantic import BaseModel, Field

from gatekeeper.api.deps import CurrentUser, Hardware, Session
from gatekeeper.application.hardware_service import HardwareService
from gatekeeper.core.config import get_settings
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import NotFoundError
from gatekeeper.domain.models import (
    BarrierCommand,
    BarrierIntegration,
    BarrierType,
    CameraIntegration,
    CameraType,
    IntegrationKind,
    IntegrationStatus,
    TriggeredBy,
)
from gatekeeper.infrastructure.db.repository import IntegrationRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


class BarrierIntegrationResponse(BaseModel):
    id: int
    name: str
    type: BarrierType
    host: str | None
    port: int | None
    api_endpoint: str | None
    gpio_pin: int | None
    open_duration_ms: int
    timeout_ms: int
    is_active: bool
    is_primary: bool
    last_status: IntegrationStatus
    last_status_check: datetime | None
    last_error: str | None

    @classmethod
    def from_domain(cls, integration: BarrierIntegration) -> "BarrierIntegrationResponse":
        return cls(
            id=integration.id,
            name=integration.name,
            type=integration.type,
            host=integration.host,
            port=integration.port,
            api_endpoint=integration.api_endpoint,
            gpio_pin=integration.gpio_pin,
            open_duration_ms=integration.open_duration_ms,
            timeout_ms=integration.timeout_ms,
            is_active=integration.is_active,
            is_primary=integration.is_primary,
            last_status=integration.last_status,
            last_status_check=integration.last_status_check,
            last_error=integration.last_error,
        )


class CameraIntegrationResponse(BaseModel):
    id: int
    name: str
    type: CameraType
    host: str | None
    port: int | None
    stream_channel: int
    stream_subtype: int
    timeout_ms: int
    is_active: bool
    is_primary: bool
    last_status: IntegrationStatus
    last_status_check: datetime | None
    last_error: str | None

    @classmethod
    def from_domain(cls, integration: CameraIntegration) -> "CameraIntegrationResponse":
        return cls(
            id=integration.id,
            name=integration.name,
            type=integration.type,
            host=integration.host,
            port=integration.port,
            stream_channel=integration.stream_channel,
            stream_subtype=integration.stream_subtype,
            timeout_ms=integration.timeout_ms,
            is_active=integration.is_active,
            is_primary=integration.is_primary,
            last_status=integration.last_status,
            last_status_check=integration.last_status_check,
            last_error=integration.last_error,
        )


class BarrierCreateRequest(BaseModel):
    """Register a barrier controller."""

    name: str = Field(..., min_length=1, max_length=100)
    type: BarrierType
    host: str | None = Field(None, max_length=255)
    port: int | None = Field(None, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    api_endpoint: str | None = None
    api_key: str | None = None
    open_command: str | None = None
    close_command: str | None = None
    status_command: str | None = None
    gpio_pin: int | None = Field(None, ge=0)
    gpio_active_high: bool = True
    open_duration_ms: int = Field(default=5000, ge=0)
    timeout_ms: int | None = Field(None, ge=100)
    is_active: bool = True
    is_primary: bool = False


class CameraCreateRequest(BaseModel):
    """Register a camera."""

    name: str = Field(..., min_length=1, max_length=100)
    type: CameraType
    host: str | None = Field(None, max_length=255)
    port: int | None = Field(None, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    rtsp_url: str | None = None
    http_snapshot_url: str | None = None
    stream_channel: int = Field(default=1, ge=1)
    stream_subtype: int = Field(default=0, ge=0)
    timeout_ms: int | None = Field(None, ge=100)
    is_active: bool = True
    is_primary: bool = False


class BarrierListResponse(BaseModel):
    integrations: list[BarrierIntegrationResponse]


class CameraListResponse(BaseModel):
    integrations: list[CameraIntegrationResponse]


class ExecuteRequest(BaseModel):
    action: BarrierCommand


class CommandResponse(BaseModel):
    success: bool
    status: str | None = None
    error: str | None = None


class StreamResponse(BaseModel):
    success: bool
    rtsp_url: str | None = None
    http_url: str | None = None
    snapshot_url: str | None = None
    error: str | None = None


@router.get("/barriers", response_model=BarrierListResponse, summary="List barriers")
async def list_barriers(db: Session, _: CurrentUser) -> BarrierListResponse:
    barriers = await IntegrationRepository(db).list_barriers()
    return BarrierListResponse(integrations=[BarrierIntegrationResponse.from_domain(b) for b in barriers])


@router.post(
    "/barriers",
    response_model=BarrierIntegrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register barrier",
)
async def create_barrier(
    request: BarrierCreateRequest,
    db: Session,
    _: CurrentUser,
) -> BarrierIntegrationResponse:
    fields = request.model_dump()
    if fields["timeout_ms"] is None:
        fields["timeout_ms"] = get_settings().hardware_default_timeout_ms
    integration = await IntegrationRepository(db).create_barrier(BarrierIntegration(**fields))
    logger.info("barrier_integration_created", integration_id=integration.id, type=integration.type.value)
    return BarrierIntegrationResponse.from_domain(integration)


@router.get("/cameras", response_model=CameraListResponse, summary="List cameras")
async def list_cameras(db: Session, _: CurrentUser) -> CameraListResponse:
    cameras = await IntegrationRepository(db).list_cameras()
    return CameraListResponse(integrations=[CameraIntegrationResponse.from_domain(c) for c in cameras])


@router.post(
    "/cameras",
    response_model=CameraIntegrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register camera",
)
async def create_camera(
    request: CameraCreateRequest,
    db: Session,
    _: CurrentUser,
) -> CameraIntegrationResponse:
    fields = request.model_dump()
    if fields["timeout_ms"] is None:
        fields["timeout_ms"] = get_settings().hardware_default_timeout_ms
    integration = await IntegrationRepository(db).create_camera(CameraIntegration(**fields))
    logger.info("camera_integration_created", integration_id=integration.id, type=integration.type.value)
    return CameraIntegrationResponse.from_domain(integration)


async def _set_primary(hardware: HardwareService, kind: IntegrationKind, integration_id: int) -> None:
    try:
        await hardware.set_primary(kind, integration_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/barriers/{integration_id}/primary",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Make barrier primary",
    description="Clears the primary flag on every other barrier.",
)
async def set_primary_barrier(
    integration_id: Annotated[int, Path(description="Integration ID")],
    hardware: Hardware,
    _: CurrentUser,
) -> None:
    await _set_primary(hardware, IntegrationKind.BARRIER, integration_id)


@router.post(
    "/cameras/{integration_id}/primary",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Make camera primary",
    description="Clears the primary flag on every other camera.",
)
async def set_primary_camera(
    integration_id: Annotated[int, Path(description="Integration ID")],
    hardware: Hardware,
    _: CurrentUser,
) -> None:
    await _set_primary(hardware, IntegrationKind.CAMERA, integration_id)


@router.post(
    "/barriers/{integration_id}/test",
    response_model=CommandResponse,
    summary="Test barrier",
    description="Sends the status command and records the result.",
)
async def test_barrier(
    integration_id: Annotated[int, Path(description="Integration ID")],
    hardware: Hardware,
    user: CurrentUser,
) -> CommandResponse:
    response = await hardware.test_barrier(integration_id, actor=user.username)
    return CommandResponse(success=response.success, status=response.status, error=response.error)


@router.post(
    "/barriers/{integration_id}/execute",
    response_model=CommandResponse,
    summary="Run barrier command",
)
async def execute_barrier(
    integration_id: Annotated[int, Path(description="Integration ID")],
    request: ExecuteRequest,
    hardware: Hardware,
    user: CurrentUser,
) -> CommandResponse:
    execution = await hardware.execute_barrier(
        integration_id,
        request.action,
        triggered_by=TriggeredBy.API,
        actor=user.username,
    )
    if execution.integration_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=execution.response.error)
    response = execution.response
    return CommandResponse(success=response.success, status=response.status, error=response.error)


@router.post(
    "/cameras/{integration_id}/test",
    response_model=CommandResponse,
    summary="Test camera",
    description="Fetches one snapshot and records the result.",
)
async def test_camera(
    integration_id: Annotated[int, Path(description="Integration ID")],
    hardware: Hardware,
    _: CurrentUser,
) -> CommandResponse:
    try:
        snapshot = await hardware.test_camera(integration_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return CommandResponse(
        success=snapshot.success,
        status="online" if snapshot.success else None,
        error=snapshot.error,
    )


@router.get(
    "/cameras/{integration_id}/snapshot",
    summary="Camera snapshot",
    responses={
        200: {"content": {"image/jpeg": {}}},
        502: {"description": "Camera unreachable or returned an error"},
    },
)
async def camera_snapshot(
    integration_id: Annotated[int, Path(description="Integration ID")],
    hardware: Hardware,
    _: CurrentUser,
) -> Response:
    try:
        snapshot = await hardware.snapshot(integration_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if not snapshot.success:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=snapshot.error)
    return Response(content=snapshot.image, media_type=snapshot.content_type or "image/jpeg")


@router.get(
    "/cameras/{integration_id}/stream",
    response_model=StreamResponse,
    summary="Camera stream URLs",
)
async def camera_stream(
    integration_id: Annotated[int, Path(description="Integration ID")],
    hardware: Hardware,
    _: CurrentUser,
) -> StreamResponse:
    try:
        info = await hardware.stream_info(integration_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return StreamResponse(
        success=info.success,
        rtsp_url=info.rtsp_url,
        http_url=info.http_url,
        snapshot_url=info.snapshot_url,
        error=info.error,
    )
