"""
Role resolution and permission checks.

RoleResolver is the single entry point: it reads the caller's role from the
profile table (cached for a short TTL) and applies the role's strategy.
"""

from __future__ import annotations

import threading
import time

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import Profile
from shared.config.constants import STAFF_ROLES, Roles
from shared.config.logging import get_logger, mask_identity
from shared.config.settings import settings
from shared.infrastructure.db import store_guard
from shared.utils.exceptions import ForbiddenError, NotFoundError
from .strategies import PermissionStrategy, get_strategy

logger = get_logger(__name__)


class RoleCache:
    """
    Process-wide TTL cache of identity -> role.

    Entries expire after `ttl` seconds so a role change made by another
    process takes effect within that bound; changes made in this process
    call invalidate() and take effect immediately.
    """

    def __init__(self, ttl: float):
        self.ttl = ttl
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, identity_id: str) -> str | None:
        with self._lock:
            entry = self._entries.get(identity_id)
            if entry is None:
                return None
            role, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._entries[identity_id]
                return None
            return role

    def put(self, identity_id: str, role: str) -> None:
        if self.ttl <= 0:
            return
        with self._lock:
            self._entries[identity_id] = (role, time.monotonic() + self.ttl)

    def invalidate(self, identity_id: str | None = None) -> None:
        """Drop one entry, or everything when identity_id is None."""
        with self._lock:
            if identity_id is None:
                self._entries.clear()
            else:
                self._entries.pop(identity_id, None)


role_cache = RoleCache(ttl=settings.role_cache_ttl_seconds)


class RoleResolver:
    """
    Resolve roles and authorize actions.

    Usage:
        resolver = RoleResolver(db)
        resolver.require(identity_id, Actions.ORDER_READ, resource_owner=order.owner_id)
    """

    def __init__(self, db: Session, cache: RoleCache | None = None):
        self._db = db
        self._cache = cache or role_cache

    def resolve_role(self, identity_id: str) -> str:
        """
        Return the caller's role.

        Raises:
            NotFoundError: If the identity has no profile yet.
        """
        cached = self._cache.get(identity_id)
        if cached is not None:
            return cached

        with store_guard(self._db, "resolve_role"):
            role = self._db.scalar(select(Profile.role).where(Profile.identity_id == identity_id))
        if role is None:
            raise NotFoundError("Profile", identity=mask_identity(identity_id))
        self._cache.put(identity_id, role)
        return role

    def strategy_for(self, identity_id: str) -> PermissionStrategy:
        return get_strategy(self.resolve_role(identity_id))

    def authorize(self, identity_id: str, action: str, resource_owner: str | None = None) -> bool:
        """True if allowed. Unprovisioned identities are never authorized."""
        try:
            strategy = self.strategy_for(identity_id)
        except NotFoundError:
            return False
        return strategy.allows(identity_id, action, resource_owner)

    def require(
        self,
        identity_id: str,
        action: str,
        resource_owner: str | None = None,
        description: str | None = None,
    ) -> str:
        """
        Authorize or raise ForbiddenError. Returns the resolved role.

        Raises:
            NotFoundError: If the identity has no profile.
            ForbiddenError: If the role does not allow the action.
        """
        role = self.resolve_role(identity_id)
        if not get_strategy(role).allows(identity_id, action, resource_owner):
            raise ForbiddenError(
                description or action,
                identity=mask_identity(identity_id),
                role=role,
            )
        return role

    def is_staff(self, identity_id: str) -> bool:
        """True for staff and admin. Unprovisioned identities are not staff."""
        try:
            return self.resolve_role(identity_id) in STAFF_ROLES
        except NotFoundError:
            return False

    def is_admin(self, identity_id: str) -> bool:
        try:
            return self.resolve_role(identity_id) == Roles.ADMIN
        except NotFoundError:
            return False

    def invalidate(self, identity_id: str | None = None) -> None:
        self._cache.invalidate(identity_id)
