"""
Payment Model: one recorded payment outcome per order.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import PaymentMethod, PaymentStatus
from .base import Base, BigIntPK, TimestampMixin, sql_in

if TYPE_CHECKING:
    from .order import Order


class Payment(TimestampMixin, Base):
    """
    Outcome of a payment made with an external provider.
    No card data is stored; only the provider's transaction id.
    """

    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PaymentStatus.PENDING, index=True
    )
    provider_transaction_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    order: Mapped["Order"] = relationship(back_populates="payment")

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="chk_payment_amount_non_negative"),
        CheckConstraint(f"method IN ({sql_in(PaymentMethod.ALL)})", name="chk_payment_method"),
        CheckConstraint(f"status IN ({sql_in(PaymentStatus.ALL)})", name="chk_payment_status"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, order_id={self.order_id}, status='{self.status}')>"
