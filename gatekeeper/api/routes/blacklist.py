"""
Blacklist management API routes.

Provides CRUD endpoints, a plate check and CSV transfer for blacklisted
plates. Operator access only.
"""

from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from gatekeeper.api.deps import BlacklistCsv, CurrentUser, Session
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import DuplicatePlateError, ValidationError
from gatekeeper.domain.models import MAX_PLATE_LENGTH, BlacklistEntry, Severity, to_naive_utc, utc_now
from gatekeeper.domain.services import PlateTextNormalizer
from gatekeeper.infrastructure.db.repository import BlacklistRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/blacklist", tags=["blacklist"])

_normalizer = PlateTextNormalizer()


class BlacklistEntryResponse(BaseModel):
    """Response model for a blacklist entry."""

    id: int
    license_plate: str
    severity: Severity
    reason: str | None
    owner_name: str | None
    vehicle_model: str | None
    vehicle_color: str | None
    is_active: bool
    notify_on_detection: bool
    attempt_count: int
    last_attempt: datetime | None
    expires_at: datetime | None
    added_by: str | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_domain(cls, entry: BlacklistEntry) -> "BlacklistEntryResponse":
        return cls(
            id=entry.id,
            license_plate=entry.license_plate,
            severity=entry.severity,
            reason=entry.reason,
            owner_name=entry.owner_name,
            vehicle_model=entry.vehicle_model,
            vehicle_color=entry.vehicle_color,
            is_active=entry.is_active,
            notify_on_detection=entry.notify_on_detection,
            attempt_count=entry.attempt_count,
            last_attempt=entry.last_attempt,
            expires_at=entry.expires_at,
            added_by=entry.added_by,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class BlacklistListResponse(BaseModel):
    entries: list[BlacklistEntryResponse]
    count: int


class BlacklistCreateRequest(BaseModel):
    """Request to blacklist a plate."""

    license_plate: str = Field(..., min_length=1, max_length=MAX_PLATE_LENGTH)
    severity: Severity = Severity.MEDIUM
    reason: str | None = Field(None, max_length=500)
    owner_name: str | None = Field(None, max_length=100)
    vehicle_model: str | None = Field(None, max_length=100)
    vehicle_color: str | None = Field(None, max_length=50)
    notify_on_detection: bool = True
    expires_at: datetime | None = None


class BlacklistUpdateRequest(BaseModel):
    """Request to update a blacklist entry. Counters cannot be changed."""

    severity: Severity | None = None
    reason: str | None = Field(None, max_length=500)
    owner_name: str | None = Field(None, max_length=100)
    vehicle_model: str | None = Field(None, max_length=100)
    vehicle_color: str | None = Field(None, max_length=50)
    is_active: bool | None = None
    notify_on_detection: bool | None = None
    expires_at: datetime | None = None


class BlacklistCheckResponse(BaseModel):
    is_blacklisted: bool
    entry: BlacklistEntryResponse | None = None


class CsvImportRequest(BaseModel):
    csv_data: str = Field(..., description="CSV text with a licensePlate column")
    skip_duplicates: bool = True
    update_existing: bool = Field(default=False, description="Takes precedence over skip_duplicates")


class CsvPreviewRequest(BaseModel):
    csv_data: str


class CsvRowErrorResponse(BaseModel):
    row: int
    plate: str
    error: str


class CsvImportResponse(BaseModel):
    imported: int
    updated: int
    skipped: int
    errors: list[CsvRowErrorResponse]


class CsvPreviewResponse(BaseModel):
    headers: list[str]
    total_rows: int
    sample_rows: list[dict[str, str]]
    duplicates: int
    new_entries: int
    has_required_fields: bool


@router.get(
    "",
    response_model=BlacklistListResponse,
    summary="List blacklist entries",
)
async def list_blacklist(
    db: Session,
    _: CurrentUser,
    include_inactive: bool = False,
    limit: int = Query(default=100, le=500),
    offset: int = Query(default=0, ge=0),
) -> BlacklistListResponse:
    entries = await BlacklistRepository(db).list_entries(include_inactive, limit, offset)
    return BlacklistListResponse(
        entries=[BlacklistEntryResponse.from_domain(e) for e in entries],
        count=len(entries),
    )


@router.get(
    "/check",
    response_model=BlacklistCheckResponse,
    summary="Check a plate",
    description="Whether a plate is currently blacklisted (active and not expired).",
)
async def check_plate(
    db: Session,
    _: CurrentUser,
    plate: str = Query(..., min_length=1),
) -> BlacklistCheckResponse:
    normalized = _normalizer.normalize(plate)
    entry = await BlacklistRepository(db).find_effective(normalized, utc_now())
    return BlacklistCheckResponse(
        is_blacklisted=entry is not None,
        entry=BlacklistEntryResponse.from_domain(entry) if entry else None,
    )


@router.get(
    "/export",
    response_class=PlainTextResponse,
    summary="Export blacklist as CSV",
)
async def export_blacklist(
    service: BlacklistCsv,
    _: CurrentUser,
    include_inactive: bool = False,
) -> PlainTextResponse:
    content = await service.export(include_inactive=include_inactive)
    filename = f"blacklist_export_{date.today().isoformat()}.csv"
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/import",
    response_model=CsvImportResponse,
    summary="Import blacklist from CSV",
    responses={422: {"description": "Empty file or missing licensePlate column"}},
)
async def import_blacklist(
    request: CsvImportRequest,
    service: BlacklistCsv,
    user: CurrentUser,
) -> CsvImportResponse:
    try:
        result = await service.import_csv(
            request.csv_data,
            skip_duplicates=request.skip_duplicates,
            update_existing=request.update_existing,
            actor=user.username,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return CsvImportResponse(
        imported=result.imported,
        updated=result.updated,
        skipped=result.skipped,
        errors=[CsvRowErrorResponse(row=e.row, plate=e.plate, error=e.error) for e in result.errors],
    )


@router.post(
    "/import/preview",
    response_model=CsvPreviewResponse,
    summary="Preview a CSV import",
)
async def preview_import(
    request: CsvPreviewRequest,
    service: BlacklistCsv,
    _: CurrentUser,
) -> CsvPreviewResponse:
    try:
        preview = await service.preview(request.csv_data)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return CsvPreviewResponse(
        headers=preview.headers,
        total_rows=preview.total_rows,
        sample_rows=preview.sample_rows,
        duplicates=preview.duplicates,
        new_entries=preview.new_entries,
        has_required_fields=preview.has_required_fields,
    )


@router.post(
    "",
    response_model=BlacklistEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Blacklist a plate",
)
async def create_entry(
    request: BlacklistCreateRequest,
    db: Session,
    user: CurrentUser,
) -> BlacklistEntryResponse:
    plate = _normalizer.normalize(request.license_plate)
    if not plate:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Empty license plate")

    try:
        entry = await BlacklistRepository(db).create(
            BlacklistEntry(
                license_plate=plate,
                severity=request.severity,
                reason=request.reason,
                owner_name=request.owner_name,
                vehicle_model=request.vehicle_model,
                vehicle_color=request.vehicle_color,
                notify_on_detection=request.notify_on_detection,
                expires_at=to_naive_utc(request.expires_at),
                added_by=user.username,
            )
        )
    except DuplicatePlateError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Plate is already blacklisted",
        )

    logger.info("blacklist_entry_created", plate=plate, severity=request.severity.value)
    return BlacklistEntryResponse.from_domain(entry)


@router.get(
    "/{entry_id}",
    response_model=BlacklistEntryResponse,
    summary="Get blacklist entry",
)
async def get_entry(
    entry_id: Annotated[int, Path(description="Blacklist entry ID")],
    db: Session,
    _: CurrentUser,
) -> BlacklistEntryResponse:
    entry = await BlacklistRepository(db).get_by_id(entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blacklist entry not found")
    return BlacklistEntryResponse.from_domain(entry)


@router.put(
    "/{entry_id}",
    response_model=BlacklistEntryResponse,
    summary="Update blacklist entry",
)
async def update_entry(
    entry_id: Annotated[int, Path(description="Blacklist entry ID")],
    request: BlacklistUpdateRequest,
    db: Session,
    _: CurrentUser,
) -> BlacklistEntryResponse:
    changes = request.model_dump(exclude_unset=True)
    if "expires_at" in changes:
        changes["expires_at"] = to_naive_utc(changes["expires_at"])
    entry = await BlacklistRepository(db).update(entry_id, changes)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blacklist entry not found")

    logger.info("blacklist_entry_updated", entry_id=entry_id)
    return BlacklistEntryResponse.from_domain(entry)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate blacklist entry",
    description="Soft delete: the entry stops blocking but its history is kept.",
)
async def delete_entry(
    entry_id: Annotated[int, Path(description="Blacklist entry ID")],
    db: Session,
    _: CurrentUser,
) -> None:
    if not await BlacklistRepository(db).deactivate(entry_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blacklist entry not found")
    logger.info("blacklist_entry_deactivated", entry_id=entry_id)
