"""
Notifications router.
Every endpoint acts on the caller's own notifications and tokens only.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rest_api.routers._common import get_identity
from rest_api.services.domain import NotificationService
from shared.config.constants import Limits
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.exceptions import NotFoundError
from shared.utils.schemas import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListOutput,
    NotificationOutput,
    PushTokenDeleteRequest,
    PushTokenRequest,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListOutput)
def list_notifications(
    unread_only: bool = False,
    limit: int = Query(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> NotificationListOutput:
    identity_id = get_identity(ctx)
    service = NotificationService(db)
    notifications = service.list_for_user(identity_id, unread_only=unread_only, limit=limit)
    return NotificationListOutput(
        notifications=[NotificationOutput.model_validate(n) for n in notifications],
        unread_count=service.unread_count(identity_id),
    )


@router.post("/read", response_model=MarkReadResponse)
def mark_read(
    body: MarkReadRequest | None = None,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> MarkReadResponse:
    """Mark the given ids (or everything unread) as read. Safe to repeat."""
    marked = NotificationService(db).mark_read(get_identity(ctx), body.ids if body else None)
    return MarkReadResponse(marked=marked)


@router.post("/push-tokens", status_code=status.HTTP_204_NO_CONTENT)
def register_push_token(
    body: PushTokenRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> None:
    NotificationService(db).register_token(get_identity(ctx), body.token, body.platform)


@router.delete("/push-tokens", status_code=status.HTTP_204_NO_CONTENT)
def remove_push_token(
    body: PushTokenDeleteRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> None:
    if not NotificationService(db).remove_token(get_identity(ctx), body.token):
        raise NotFoundError("Push token")
