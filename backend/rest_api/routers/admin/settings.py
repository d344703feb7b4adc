"""
Cafeteria settings endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.routers._common import get_identity
from rest_api.services.domain import SettingsService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.schemas import SettingOutput, SettingUpdateRequest

router = APIRouter()


@router.get("/settings", response_model=list[SettingOutput])
def list_settings(
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[SettingOutput]:
    return [SettingOutput.model_validate(row) for row in SettingsService(db).all()]


@router.put("/settings/{key}", response_model=SettingOutput)
def update_setting(
    key: str,
    body: SettingUpdateRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> SettingOutput:
    row = SettingsService(db).set(get_identity(ctx), key, body.value)
    return SettingOutput.model_validate(row)
