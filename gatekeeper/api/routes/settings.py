"""
Runtime settings API routes.

Read and write the operator-editable settings store. Known keys are
validated before they are written; unknown keys are stored as given.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, status
from pydantic import BaseModel, Field

from gatekeeper.api.deps import CurrentUser, Session
from gatekeeper.application.runtime_config import SETTING_DEFAULTS, validate_setting
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import ValidationError
from gatekeeper.domain.models import Setting
from gatekeeper.infrastructure.db.repository import SettingsRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])

# Never echoed back to clients
SECRET_KEYS = {"telegram_bot_token"}


class SettingResponse(BaseModel):
    key: str
    value: str
    description: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, setting: Setting) -> "SettingResponse":
        value = setting.value
        if setting.key in SECRET_KEYS and value:
            value = "********"
        return cls(
            key=setting.key,
            value=value,
            description=setting.description,
            updated_at=setting.updated_at,
        )


class SettingListResponse(BaseModel):
    settings: list[SettingResponse]


class SettingUpdateRequest(BaseModel):
    value: str = Field(..., max_length=1000)
    description: str | None = Field(None, max_length=255)


@router.get(
    "",
    response_model=SettingListResponse,
    summary="List settings",
    description="Every known key, with its default when it was never written.",
)
async def list_settings(db: Session, _: CurrentUser) -> SettingListResponse:
    stored = {s.key: s for s in await SettingsRepository(db).list_all()}
    for key, (default, description) in SETTING_DEFAULTS.items():
        stored.setdefault(key, Setting(key=key, value=default, description=description))
    return SettingListResponse(
        settings=[SettingResponse.from_domain(stored[k]) for k in sorted(stored)],
    )


@router.get(
    "/{key}",
    response_model=SettingResponse,
    summary="Get setting",
)
async def get_setting(
    key: Annotated[str, Path(description="Setting key")],
    db: Session,
    _: CurrentUser,
) -> SettingResponse:
    value = await SettingsRepository(db).get(key)
    if value is None:
        if key not in SETTING_DEFAULTS:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Setting not found")
        default, description = SETTING_DEFAULTS[key]
        return SettingResponse.from_domain(Setting(key=key, value=default, description=description))
    return SettingResponse.from_domain(Setting(key=key, value=value))


@router.put(
    "/{key}",
    response_model=SettingResponse,
    summary="Update setting",
    responses={422: {"description": "Value not valid for this key"}},
)
async def update_setting(
    key: Annotated[str, Path(description="Setting key", max_length=100)],
    request: SettingUpdateRequest,
    db: Session,
    user: CurrentUser,
) -> SettingResponse:
    try:
        value = validate_setting(key, request.value)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    description = request.description
    if description is None and key in SETTING_DEFAULTS:
        description = SETTING_DEFAULTS[key][1]
    setting = await SettingsRepository(db).set(key, value, description)

    logger.info("setting_updated", key=key, operator=user.username)
    return SettingResponse.from_domain(setting)
