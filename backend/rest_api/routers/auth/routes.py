"""
Authentication router.

Tokens are issued by the identity provider; this router only turns a
verified identity into a profile row and exposes the caller's profile.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.routers._common import get_identity
from rest_api.services.domain import ProfileService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, display_name_hint
from shared.utils.schemas import ProfileOutput, ProvisionRequest, UpdateProfileRequest

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/provision", response_model=ProfileOutput)
def provision_profile(
    body: ProvisionRequest | None = None,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> ProfileOutput:
    """
    Create the caller's profile on first sign-in (role `customer`).

    Calling it again returns the existing profile unchanged.
    """
    hint = (body.display_name if body else None) or display_name_hint(ctx)
    profile = ProfileService(db).provision(get_identity(ctx), hint)
    return ProfileOutput.model_validate(profile)


@router.get("/me", response_model=ProfileOutput)
def get_me(
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> ProfileOutput:
    profile = ProfileService(db).get(get_identity(ctx))
    return ProfileOutput.model_validate(profile)


@router.patch("/me", response_model=ProfileOutput)
def update_me(
    body: UpdateProfileRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> ProfileOutput:
    """Update contact fields. Role changes go through the admin router."""
    profile = ProfileService(db).update_contact(
        get_identity(ctx), body.model_dump(exclude_unset=True)
    )
    return ProfileOutput.model_validate(profile)
