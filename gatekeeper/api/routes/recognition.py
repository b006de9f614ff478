"""
Plate recognition API routes.

Provides the endpoint camera edge devices post captures to.
"""

from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from gatekeeper.api.deps import ApiKeyAuth, RateLimited, RecognitionUseCase
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import RecognitionError, ValidationError
from gatekeeper.domain.models import AccessOutcome

logger = get_logger(__name__)

router = APIRouter(prefix="/recognition", tags=["recognition"])


class RecognitionResponse(BaseModel):
    """Response model for one recognition."""

    plate: str | None = Field(
        description="Normalized plate, null when nothing was recognized",
        examples=["A123BC777"],
    )
    confidence: int = Field(ge=0, le=100, description="Classifier confidence in percent")
    outcome: AccessOutcome = Field(description="Access outcome", examples=["unknown"])
    is_allowed: bool
    is_blacklisted: bool
    barrier_opened: bool
    passage_id: int
    photo_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "plate": "A123BC777",
                    "confidence": 92,
                    "outcome": "unknown",
                    "is_allowed": False,
                    "is_blacklisted": False,
                    "barrier_opened": False,
                    "passage_id": 41,
                    "photo_url": "/photos/2026-10-19/3f2c9a.jpg",
                }
            ]
        }
    }


@router.post(
    "/analyze",
    response_model=RecognitionResponse,
    status_code=status.HTTP_200_OK,
    summary="Analyze vehicle image",
    description="Upload a camera image, recognize the plate and decide access.",
    responses={
        200: {"description": "Decision made and passage recorded"},
        400: {"description": "Invalid image or request"},
        401: {"description": "Invalid API key"},
        429: {"description": "Rate limit exceeded"},
        502: {"description": "Recognition service failed"},
    },
)
async def analyze_image(
    image: Annotated[UploadFile, File(description="Camera image containing the vehicle")],
    use_case: RecognitionUseCase,
    _: ApiKeyAuth,
    __: RateLimited,
    auto_open: Annotated[bool, Form(description="Open the barrier for allowed vehicles")] = True,
) -> RecognitionResponse:
    """
    Recognize a plate and decide access.

    Exactly one passage is recorded per successful recognition. Allowed
    vehicles get the primary barrier opened when ``auto_open`` is set.

    **Authentication**: Requires X-API-Key header.
    """
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Please upload an image.",
        )

    image_bytes = await image.read()

    try:
        result = await use_case.analyze(
            image_bytes,
            auto_open=auto_open,
            actor="camera",
            content_type=image.content_type,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RecognitionError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return RecognitionResponse(
        plate=result.plate,
        confidence=result.confidence,
        outcome=result.outcome,
        is_allowed=result.is_allowed,
        is_blacklisted=result.is_blacklisted,
        barrier_opened=result.barrier_opened,
        passage_id=result.passage_id,
        photo_url=result.photo_url,
    )
