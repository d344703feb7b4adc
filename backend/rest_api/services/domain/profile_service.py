"""
Profile Service.

Profiles are provisioned on first sign-in with the customer role. Only an
admin can change a role, and the change invalidates the role cache so it
applies to the very next request in this process.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from rest_api.models import Profile
from rest_api.services.permissions import RoleResolver
from shared.config.constants import Actions, Limits, Roles
from shared.config.logging import audit_auth_event, audit_role_change, get_logger, mask_identity
from shared.infrastructure.db import safe_commit, store_guard
from shared.utils.exceptions import NotFoundError, ValidationError

logger = get_logger(__name__)

DEFAULT_DISPLAY_NAME = "User"

_CONTACT_FIELDS = ("display_name", "email", "phone", "student_id")


def _insert_for(db: Session):
    """Dialect-specific INSERT supporting ON CONFLICT DO NOTHING."""
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


class ProfileService:
    """Domain service for user profiles."""

    def __init__(self, db: Session):
        self._db = db

    def get(self, identity_id: str) -> Profile:
        profile = self._db.get(Profile, identity_id)
        if profile is None:
            raise NotFoundError("Profile", mask_identity(identity_id))
        return profile

    def provision(self, identity_id: str, display_name_hint: str | None = None) -> Profile:
        """
        Create the profile on first sign-in; return the existing one otherwise.

        Concurrent first sign-ins race on the primary key; ON CONFLICT DO
        NOTHING makes the loser a no-op.
        """
        name = (display_name_hint or "").strip()[: Limits.MAX_NAME_LENGTH] or DEFAULT_DISPLAY_NAME
        insert = _insert_for(self._db)
        stmt = (
            insert(Profile)
            .values(identity_id=identity_id, display_name=name, role=Roles.CUSTOMER)
            .on_conflict_do_nothing(index_elements=[Profile.identity_id])
        )
        with store_guard(self._db, "provision_profile"):
            result = self._db.execute(stmt)
            safe_commit(self._db)
        if result.rowcount:
            audit_auth_event("PROFILE_PROVISIONED", identity_id=identity_id)
        profile = self._db.scalar(
            select(Profile)
            .where(Profile.identity_id == identity_id)
            .execution_options(populate_existing=True)
        )
        return profile

    def update_contact(self, identity_id: str, data: dict[str, Any]) -> Profile:
        """
        Update the caller's own contact fields. Role is never accepted here.
        """
        if "role" in data:
            raise ValidationError("Role cannot be changed through profile update", field="role")
        RoleResolver(self._db).require(identity_id, Actions.PROFILE_UPDATE, resource_owner=identity_id)
        profile = self.get(identity_id)
        for field in _CONTACT_FIELDS:
            if field in data and data[field] is not None:
                setattr(profile, field, data[field])
        with store_guard(self._db, "update_profile"):
            safe_commit(self._db)
        self._db.refresh(profile)
        return profile

    def change_role(self, actor_id: str, identity_id: str, role: str) -> Profile:
        """
        Admin-only role change.

        Raises:
            ForbiddenError: If the actor is not an admin.
            NotFoundError: If the target has no profile.
            ValidationError: If the role is unknown.
        """
        resolver = RoleResolver(self._db)
        resolver.require(actor_id, Actions.PROFILE_CHANGE_ROLE, description="change roles")
        if role not in Roles.ALL:
            raise ValidationError(f"Unknown role: {role}", field="role")

        profile = self.get(identity_id)
        old_role = profile.role
        if old_role == role:
            return profile

        profile.role = role
        with store_guard(self._db, "change_role"):
            safe_commit(self._db)
        resolver.invalidate(identity_id)
        audit_role_change(actor_id, identity_id, old_role, role)
        self._db.refresh(profile)
        return profile
