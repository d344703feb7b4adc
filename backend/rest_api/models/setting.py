"""
CafeteriaSetting Model: runtime-tunable key/value configuration.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class CafeteriaSetting(Base):
    """One setting. Values are arbitrary JSON (numbers, objects)."""

    __tablename__ = "cafeteria_setting"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    updated_by: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("profile.identity_id")
    )

    def __repr__(self) -> str:
        return f"<CafeteriaSetting(key='{self.key}')>"
