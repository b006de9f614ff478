"""
Passage ledger API routes.

Read-only endpoints for the passage history. Operator access only.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status
from pydantic import BaseModel

from gatekeeper.api.deps import CurrentUser, Session
from gatekeeper.domain.models import AccessOutcome, Passage, to_naive_utc
from gatekeeper.domain.services import PlateTextNormalizer
from gatekeeper.infrastructure.db.repository import PassageRepository

router = APIRouter(prefix="/passages", tags=["passages"])

_normalizer = PlateTextNormalizer()


class PassageResponse(BaseModel):
    """Response model for a passage."""

    id: int
    license_plate: str | None
    outcome: AccessOutcome
    is_allowed: bool
    confidence: int
    photo_url: str | None
    was_manual_open: bool
    barrier_opened: bool
    vehicle_id: int | None
    opened_by: str | None
    notes: str | None
    timestamp: datetime

    @classmethod
    def from_domain(cls, passage: Passage) -> "PassageResponse":
        return cls(
            id=passage.id,
            license_plate=passage.license_plate,
            outcome=passage.outcome,
            is_allowed=passage.is_allowed,
            confidence=passage.confidence,
            photo_url=passage.photo_url,
            was_manual_open=passage.was_manual_open,
            barrier_opened=passage.barrier_opened,
            vehicle_id=passage.vehicle_id,
            opened_by=passage.opened_by,
            notes=passage.notes,
            timestamp=passage.timestamp,
        )


class PassageListResponse(BaseModel):
    passages: list[PassageResponse]
    count: int


class PassageStatsResponse(BaseModel):
    """Aggregated counts over a period."""

    total: int
    allowed: int
    denied: int
    blocked: int
    unknown: int
    manual: int
    success_rate: float


@router.get(
    "",
    response_model=PassageListResponse,
    summary="List passages",
    description="Passages newest first, optionally filtered by plate or outcome.",
)
async def list_passages(
    db: Session,
    _: CurrentUser,
    plate: str | None = None,
    outcome: AccessOutcome | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> PassageListResponse:
    passages = await PassageRepository(db).list_recent(
        limit=limit,
        offset=offset,
        license_plate=_normalizer.normalize(plate) or None,
        outcome=outcome,
    )
    return PassageListResponse(
        passages=[PassageResponse.from_domain(p) for p in passages],
        count=len(passages),
    )


@router.get(
    "/stats",
    response_model=PassageStatsResponse,
    summary="Passage statistics",
    description="Counts in [start, end). Both bounds are optional.",
)
async def passage_stats(
    db: Session,
    _: CurrentUser,
    start: datetime | None = None,
    end: datetime | None = None,
) -> PassageStatsResponse:
    stats = await PassageRepository(db).stats(to_naive_utc(start), to_naive_utc(end))
    return PassageStatsResponse(
        total=stats.total,
        allowed=stats.allowed,
        denied=stats.denied,
        blocked=stats.blocked,
        unknown=stats.unknown,
        manual=stats.manual,
        success_rate=stats.success_rate,
    )


@router.get(
    "/{passage_id}",
    response_model=PassageResponse,
    summary="Get passage",
)
async def get_passage(
    passage_id: Annotated[int, Path(description="Passage ID")],
    db: Session,
    _: CurrentUser,
) -> PassageResponse:
    passage = await PassageRepository(db).get_by_id(passage_id)
    if passage is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Passage not found")
    return PassageResponse.from_domain(passage)
