"""
Admin role management.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.routers._common import get_identity
from rest_api.services.domain import ProfileService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.schemas import ChangeRoleRequest, ProfileOutput

router = APIRouter()


@router.patch("/profiles/{identity_id}/role", response_model=ProfileOutput)
def change_role(
    identity_id: str,
    body: ChangeRoleRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> ProfileOutput:
    """Change a user's role. Takes effect on the user's next request."""
    profile = ProfileService(db).change_role(get_identity(ctx), identity_id, body.role)
    return ProfileOutput.model_validate(profile)
