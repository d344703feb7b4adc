"""
Notification Models: Notification, PushToken.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import NotificationType, PushPlatform
from .base import Base, BigIntPK, sql_in, utcnow


class Notification(Base):
    """In-app notification record. Only read_at ever changes after insert."""

    __tablename__ = "notification"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profile.identity_id"), nullable=False
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        BigIntPK, ForeignKey("orders.id", ondelete="SET NULL"), index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(f"type IN ({sql_in(NotificationType.ALL)})", name="chk_notification_type"),
        Index("ix_notification_user_read", "user_id", "read_at"),
        Index("ix_notification_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id='{self.user_id}', type='{self.type}')>"


class PushToken(Base):
    """A device token for push delivery. Tokens are globally unique."""

    __tablename__ = "push_token"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profile.identity_id"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(f"platform IN ({sql_in(PushPlatform.ALL)})", name="chk_push_token_platform"),
    )
