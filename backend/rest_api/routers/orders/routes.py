"""
Customer order router.
CLEAN-ARCH: Thin router delegating to OrderService and PaymentService.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common import Pagination, get_identity, get_pagination
from rest_api.services.domain import OrderService, PaymentService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.schemas import (
    CancelOrderRequest,
    CreateOrderRequest,
    OrderOutput,
    PaymentOutput,
    RecordPaymentRequest,
    StatusHistoryOutput,
)

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def create_order(
    body: CreateOrderRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    """
    Place an order.

    Prices come from the current menu; `client_total_cents` is advisory.
    The response carries the pickup code.
    """
    order = OrderService(db, background_tasks).create_order(
        owner_id=get_identity(ctx),
        lines=body.items,
        notes=body.notes,
        pickup_time=body.pickup_time,
        client_total_cents=body.client_total_cents,
    )
    return OrderOutput.model_validate(order)


@router.get("", response_model=list[OrderOutput])
def list_my_orders(
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[OrderOutput]:
    """The caller's orders, newest first."""
    orders = OrderService(db).list_orders_for_owner(
        get_identity(ctx), limit=pagination.limit, offset=pagination.offset
    )
    return [OrderOutput.model_validate(o) for o in orders]


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    order = OrderService(db).get_order(order_id, get_identity(ctx))
    return OrderOutput.model_validate(order)


@router.get("/{order_id}/history", response_model=list[StatusHistoryOutput])
def get_order_history(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[StatusHistoryOutput]:
    entries = OrderService(db).get_history(order_id, get_identity(ctx))
    return [StatusHistoryOutput.model_validate(e) for e in entries]


@router.post("/{order_id}/cancel", response_model=OrderOutput)
def cancel_order(
    order_id: int,
    background_tasks: BackgroundTasks,
    body: CancelOrderRequest | None = None,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    """Cancel an order. Owners may only cancel while it is placed or confirmed."""
    order = OrderService(db, background_tasks).cancel_order(
        order_id, get_identity(ctx), reason=body.reason if body else None
    )
    return OrderOutput.model_validate(order)


@router.post("/{order_id}/payment", response_model=PaymentOutput, status_code=status.HTTP_201_CREATED)
def record_payment(
    order_id: int,
    body: RecordPaymentRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> PaymentOutput:
    """Record the outcome of a provider payment for this order."""
    payment = PaymentService(db).record_payment(
        order_id=order_id,
        actor_id=get_identity(ctx),
        amount_cents=body.amount_cents,
        method=body.method,
        provider_transaction_id=body.provider_transaction_id,
    )
    return PaymentOutput.model_validate(payment)


@router.get("/{order_id}/payment", response_model=PaymentOutput)
def get_payment(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> PaymentOutput:
    payment = PaymentService(db).get_for_order(order_id, get_identity(ctx))
    return PaymentOutput.model_validate(payment)
