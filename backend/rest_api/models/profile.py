"""
Profile Model: application-side record of an identity provider user.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import Roles
from .base import Base, TimestampMixin, sql_in


class Profile(TimestampMixin, Base):
    """
    One row per identity. The primary key is the identity provider's opaque
    subject id; the role stored here is the only source of authorization.
    Profiles are never deleted.
    """

    __tablename__ = "profile"

    identity_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False, default="User")
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    student_id: Mapped[Optional[str]] = mapped_column(String(50), unique=True)
    role: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Roles.CUSTOMER, index=True
    )

    __table_args__ = (
        CheckConstraint(f"role IN ({sql_in(Roles.ALL)})", name="chk_profile_role"),
    )

    def __repr__(self) -> str:
        return f"<Profile(identity_id='{self.identity_id}', role='{self.role}')>"
