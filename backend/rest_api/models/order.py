"""
Order Models: Order, OrderItem, OrderStatusHistory.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus, PICKUP_CODE_LENGTH
from .base import Base, BigIntPK, TimestampMixin, sql_in, utcnow

if TYPE_CHECKING:
    from .menu import MenuItem
    from .payment import Payment


_ACTIVE_ORDER = f"status NOT IN ({sql_in(OrderStatus.TERMINAL)})"


class Order(TimestampMixin, Base):
    """
    Order header.

    Status only moves along ORDER_TRANSITIONS, always through a
    compare-and-swap UPDATE in OrderRepository. The pickup code is unique
    among non-terminal orders; the partial unique index below is the arbiter.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profile.identity_id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OrderStatus.PLACED, index=True
    )
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    pickup_code: Mapped[str] = mapped_column(String(PICKUP_CODE_LENGTH), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    pickup_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", order_by="OrderItem.id", cascade="all, delete-orphan"
    )
    history: Mapped[list["OrderStatusHistory"]] = relationship(
        back_populates="order", order_by="OrderStatusHistory.id"
    )
    payment: Mapped[Optional["Payment"]] = relationship(back_populates="order")

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(OrderStatus.ALL)})", name="chk_order_status"),
        CheckConstraint("total_cents >= 0", name="chk_order_total_non_negative"),
        # Pickup codes are reusable once an order is completed or cancelled
        Index(
            "uq_order_active_pickup_code",
            "pickup_code",
            unique=True,
            postgresql_where=text(_ACTIVE_ORDER),
            sqlite_where=text(_ACTIVE_ORDER),
        ),
        # Staff queue: status priority, then FIFO
        Index("ix_order_status_created", "status", "created_at"),
        Index("ix_order_owner_created", "owner_id", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in OrderStatus.TERMINAL

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, status='{self.status}', owner_id='{self.owner_id}')>"


class OrderItem(Base):
    """
    One line of an order. Price and name are snapshotted at creation.
    Lines are immutable after the order is written.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("menu_item.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
        CheckConstraint("unit_price_cents >= 0", name="chk_order_item_price_non_negative"),
    )

    order: Mapped["Order"] = relationship(back_populates="items")
    menu_item: Mapped["MenuItem"] = relationship()

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_price_cents


class OrderStatusHistory(Base):
    """
    Append-only log of status changes. The first row of every order is
    (None -> placed); no row is ever updated or deleted.
    """

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status: Mapped[Optional[str]] = mapped_column(String(16))
    to_status: Mapped[str] = mapped_column(String(16), nullable=False)
    # None for system-generated entries
    changed_by: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("profile.identity_id"), nullable=True
    )
    note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    order: Mapped["Order"] = relationship(back_populates="history")

    __table_args__ = (
        CheckConstraint(f"to_status IN ({sql_in(OrderStatus.ALL)})", name="chk_history_to_status"),
        Index("ix_order_history_order_created", "order_id", "created_at"),
    )
