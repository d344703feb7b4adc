"""
Menu Models: MenuCategory, MenuItem.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, TimestampMixin



class MenuCategory(TimestampMixin, Base):
    """
    A section of the menu (Beverages, Entrees, ...).
    Inactive categories are hidden from customers with all their items.
    """

    __tablename__ = "menu_category"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    items: Mapped[list["MenuItem"]] = relationship(
        back_populates="category", order_by="MenuItem.name"
    )

    __table_args__ = (
        Index("ix_menu_category_active_order", "active", "display_order"),
    )


class MenuItem(TimestampMixin, Base):
    """
    An orderable item. Prices are integer cents; order lines snapshot the
    price at the time of ordering so later price changes never alter them.
    """

    __tablename__ = "menu_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("menu_category.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allergens: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    prep_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    category: Mapped["MenuCategory"] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="chk_menu_item_price_non_negative"),
        CheckConstraint("prep_time_minutes > 0", name="chk_menu_item_prep_time_positive"),
        Index("ix_menu_item_category_available", "category_id", "available"),
    )

    def __repr__(self) -> str:
        return f"<MenuItem(id={self.id}, name='{self.name}', price_cents={self.price_cents})>"
