"""
Payment Domain Service.

Records the outcome of a payment made with an external provider. There is
no provider integration here: the client (or a provider callback relayed
by staff) reports the result and this service stores it.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import Payment, utcnow
from rest_api.repositories import OrderRepository
from rest_api.services.permissions import RoleResolver
from shared.config.constants import (
    Actions,
    PAYMENT_TRANSITIONS,
    PaymentMethod,
    PaymentStatus,
    TOTAL_TOLERANCE_CENTS,
)
from shared.config.logging import get_logger, mask_identity
from shared.infrastructure.db import safe_commit, store_guard
from shared.utils.exceptions import InvalidTransitionError, NotFoundError, ValidationError

logger = get_logger(__name__)


class PaymentService:
    """
    Domain service for payment records.

    Business rules:
    - one payment per order; a reused provider transaction id is a conflict
    - the amount must match the order total within 5 cents
    - the order owner or staff may record; only staff may change status
    """

    def __init__(self, db: Session):
        self._db = db
        self._orders = OrderRepository(db)
        self._roles = RoleResolver(db)

    def record_payment(
        self,
        order_id: int,
        actor_id: str,
        amount_cents: int,
        method: str,
        provider_transaction_id: str | None = None,
    ) -> Payment:
        """
        Record a pending payment for an order.

        Raises:
            NotFoundError: If the order does not exist.
            ForbiddenError: If the actor is neither the owner nor staff.
            ValidationError: If the method is unknown or the amount is off.
            ConflictError: If the order already has a payment or the
                provider transaction id was already used.
        """
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        self._roles.require(
            actor_id,
            Actions.PAYMENT_RECORD,
            resource_owner=order.owner_id,
            description="record a payment for this order",
        )

        if method not in PaymentMethod.ALL:
            raise ValidationError(f"Unsupported payment method: {method}", field="method")
        if amount_cents < 0 or abs(amount_cents - order.total_cents) > TOTAL_TOLERANCE_CENTS:
            raise ValidationError(
                "Payment amount does not match the order total",
                order_id=order_id,
                amount_cents=amount_cents,
                total_cents=order.total_cents,
            )

        payment = Payment(
            order_id=order_id,
            amount_cents=amount_cents,
            method=method,
            status=PaymentStatus.PENDING,
            provider_transaction_id=provider_transaction_id,
        )
        with store_guard(self._db, "record_payment"):
            self._db.add(payment)
            safe_commit(self._db)
        self._db.refresh(payment)

        logger.info(
            "Payment recorded",
            payment_id=payment.id,
            order_id=order_id,
            method=method,
            actor=mask_identity(actor_id),
        )
        return payment

    def update_payment_status(self, payment_id: int, actor_id: str, status: str) -> Payment:
        """
        Move a payment along pending -> processing -> completed -> refunded.

        Raises:
            ForbiddenError: If the actor is not staff.
            NotFoundError: If the payment does not exist.
            InvalidTransitionError: If the change is not allowed.
        """
        self._roles.require(actor_id, Actions.PAYMENT_UPDATE, description="update payments")
        if status not in PaymentStatus.ALL:
            raise ValidationError(f"Unknown payment status: {status}", field="status")

        payment = self._db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)

        previous = payment.status
        if status not in PAYMENT_TRANSITIONS.get(previous, frozenset()):
            raise InvalidTransitionError("payment", previous, status, payment_id=payment_id)

        with store_guard(self._db, "update_payment_status"):
            payment.status = status
            if status == PaymentStatus.COMPLETED:
                payment.processed_at = utcnow()
            safe_commit(self._db)
        self._db.refresh(payment)

        logger.info(
            "Payment status changed",
            payment_id=payment_id,
            from_status=previous,
            to_status=status,
            actor=mask_identity(actor_id),
        )
        return payment

    def get_for_order(self, order_id: int, requester_id: str) -> Payment:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        self._roles.require(
            requester_id,
            Actions.ORDER_READ,
            resource_owner=order.owner_id,
            description="view this payment",
        )
        payment = self._db.scalar(select(Payment).where(Payment.order_id == order_id))
        if payment is None:
            raise NotFoundError("Payment for order", order_id)
        return payment
