"""
Staff order board router.
Requires staff or admin role (checked by the domain services).
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from rest_api.routers._common import get_identity
from rest_api.services.domain import OrderService, PaymentService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.schemas import (
    OrderOutput,
    PaymentOutput,
    QueueEntryOutput,
    UpdateOrderStatusRequest,
    UpdatePaymentStatusRequest,
)

router = APIRouter(prefix="/api/staff", tags=["staff"])


@router.get("/queue", response_model=list[QueueEntryOutput])
def get_queue(
    status: list[str] | None = Query(default=None, description="Only these statuses"),
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[QueueEntryOutput]:
    """
    Non-terminal orders: placed, then confirmed, then preparing, then ready.
    Oldest first inside each stage.
    """
    orders = OrderService(db).list_queue(get_identity(ctx), status)
    return [QueueEntryOutput.model_validate(o) for o in orders]


@router.post("/orders/{order_id}/status", response_model=OrderOutput)
def update_order_status(
    order_id: int,
    body: UpdateOrderStatusRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    """
    Move an order along the state graph.

    409 if another update changed the order first; reload and retry.
    """
    order = OrderService(db, background_tasks).transition_status(
        order_id, body.status, get_identity(ctx), note=body.note
    )
    return OrderOutput.model_validate(order)


@router.patch("/payments/{payment_id}", response_model=PaymentOutput)
def update_payment_status(
    payment_id: int,
    body: UpdatePaymentStatusRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> PaymentOutput:
    payment = PaymentService(db).update_payment_status(payment_id, get_identity(ctx), body.status)
    return PaymentOutput.model_validate(payment)
