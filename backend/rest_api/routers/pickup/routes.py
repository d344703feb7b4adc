"""
Pickup counter router.

Verification is rate limited per caller so the code space cannot be
walked from one client.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from rest_api.routers._common import get_identity
from rest_api.services.domain import OrderService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.security.rate_limit import PICKUP_VERIFY_LIMIT, limiter
from shared.utils.schemas import OrderOutput, VerifyPickupRequest

router = APIRouter(prefix="/api/pickup", tags=["pickup"])


@router.post("/verify", response_model=OrderOutput)
@limiter.limit(PICKUP_VERIFY_LIMIT)
def verify_pickup(
    request: Request,
    body: VerifyPickupRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    """
    Look up the ready order holding a pickup code.

    Any failure (bad format, unknown code, order not ready) is a 404.
    """
    order = OrderService(db).verify_pickup(body.code, actor_id=get_identity(ctx))
    return OrderOutput.model_validate(order)


@router.post("/{order_id}/complete", response_model=OrderOutput)
def complete_pickup(
    order_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    """Hand the order over (ready -> completed)."""
    order = OrderService(db, background_tasks).complete_pickup(order_id, get_identity(ctx))
    return OrderOutput.model_validate(order)
