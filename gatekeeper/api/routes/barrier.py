"""
Barrier API routes.

Manual opening by an operator and the barrier command log.
"""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from gatekeeper.api.deps import Config, CurrentUser, DecisionEngine, Session
from gatekeeper.domain.exceptions import ValidationError
from gatekeeper.domain.models import BarrierCommand, TriggeredBy
from gatekeeper.infrastructure.db.repository import BarrierActionRepository

router = APIRouter(prefix="/barrier", tags=["barrier"])


class ManualOpenRequest(BaseModel):
    """Request to open the barrier by hand."""

    confirm: bool = Field(description="Must be true; guards against accidental calls")
    notes: str | None = Field(default=None, max_length=500)


class ManualOpenResponse(BaseModel):
    success: bool
    passage_id: int
    error: str | None = None


class BarrierAction(BaseModel):
    """Response model for a barrier command log entry."""

    id: int
    command: BarrierCommand
    triggered_by: TriggeredBy
    success: bool
    integration_id: int | None
    actor: str | None
    passage_id: int | None
    error_message: str | None
    timestamp: datetime


class BarrierActionListResponse(BaseModel):
    actions: list[BarrierAction]
    count: int


@router.post(
    "/open",
    response_model=ManualOpenResponse,
    summary="Open barrier manually",
    description="Open the primary barrier. Always records a passage and notifies the owner.",
    responses={422: {"description": "Confirmation missing"}},
)
async def open_barrier(
    request: ManualOpenRequest,
    engine: DecisionEngine,
    config: Config,
    user: CurrentUser,
) -> ManualOpenResponse:
    try:
        result = await engine.manual_open(
            confirm=request.confirm,
            config=config,
            actor=user.username,
            notes=request.notes,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return ManualOpenResponse(
        success=result.success,
        passage_id=result.passage_id,
        error=result.error,
    )


@router.get(
    "/actions",
    response_model=BarrierActionListResponse,
    summary="List barrier commands",
)
async def list_actions(
    db: Session,
    _: CurrentUser,
    limit: int = Query(default=50, ge=1, le=200),
) -> BarrierActionListResponse:
    actions = await BarrierActionRepository(db).list_recent(limit)
    return BarrierActionListResponse(
        actions=[
            BarrierAction(
                id=a.id,
                command=a.command,
                triggered_by=a.triggered_by,
                success=a.success,
                integration_id=a.integration_id,
                actor=a.actor,
                passage_id=a.passage_id,
                error_message=a.error_message,
                timestamp=a.timestamp,
            )
            for a in actions
        ],
        count=len(actions),
    )
