"""
Cafeteria Settings Service.

Runtime-tunable values (operating hours, capacity, ...) live in the
cafeteria_setting table. Reads go through a process-wide snapshot that is
re-read from storage at most every `settings_refresh_seconds`.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import CafeteriaSetting
from shared.config.constants import Actions, DEFAULT_CAFETERIA_SETTINGS, SettingKeys
from shared.config.logging import get_logger, mask_identity
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit, store_guard
from shared.utils.exceptions import NotFoundError, ValidationError
from rest_api.services.permissions import RoleResolver

logger = get_logger(__name__)

_INTEGER_KEYS = frozenset({
    SettingKeys.MAX_CONCURRENT_ORDERS,
    SettingKeys.AVG_PREP_TIME_MINUTES,
    SettingKeys.ORDER_READY_NOTIFICATION_DELAY,
})


class _SettingsSnapshot:
    """Thread-safe copy of all setting values with a refresh deadline."""

    def __init__(self):
        self._values: dict[str, Any] | None = None
        self._loaded_at: float = 0.0
        self._lock = threading.Lock()

    def get(self, max_age: float) -> dict[str, Any] | None:
        with self._lock:
            if self._values is None or time.monotonic() - self._loaded_at >= max_age:
                return None
            return dict(self._values)

    def store(self, values: dict[str, Any]) -> None:
        with self._lock:
            self._values = dict(values)
            self._loaded_at = time.monotonic()

    def invalidate(self) -> None:
        with self._lock:
            self._values = None


settings_snapshot = _SettingsSnapshot()


def validate_setting_value(key: str, value: Any) -> Any:
    """Type-check a value for a known key."""
    if key in _INTEGER_KEYS:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"Setting {key} must be a non-negative integer", key=key)
    elif key in (SettingKeys.OPERATING_HOURS, SettingKeys.PEAK_HOURS):
        if not isinstance(value, dict):
            raise ValidationError(f"Setting {key} must be an object", key=key)
    return value


class SettingsService:
    """
    Domain service for cafeteria settings.

    Business rules:
    - any authenticated user may read
    - only admins may write; writes stamp updated_by
    - unknown keys are rejected
    """

    def __init__(self, db: Session, max_age: float | None = None):
        self._db = db
        self._max_age = settings.settings_refresh_seconds if max_age is None else max_age

    def _load(self) -> dict[str, Any]:
        cached = settings_snapshot.get(self._max_age)
        if cached is not None:
            return cached
        rows = self._db.execute(select(CafeteriaSetting)).scalars().all()
        values = {key: default for key, (default, _) in DEFAULT_CAFETERIA_SETTINGS.items()}
        values.update({row.key: row.value for row in rows})
        settings_snapshot.store(values)
        return values

    def get(self, key: str, default: Any = None) -> Any:
        """Current value of `key` (the built-in default if no row exists)."""
        return self._load().get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Non-integer setting ignored", key=key, value=value)
            return default

    def all(self) -> Sequence[CafeteriaSetting]:
        """Stored rows, ordered by key."""
        return self._db.execute(
            select(CafeteriaSetting).order_by(CafeteriaSetting.key)
        ).scalars().all()

    def get_row(self, key: str) -> CafeteriaSetting:
        row = self._db.get(CafeteriaSetting, key)
        if row is None:
            raise NotFoundError("Setting", key)
        return row

    def set(self, actor_id: str, key: str, value: Any) -> CafeteriaSetting:
        """
        Update a setting.

        Raises:
            ForbiddenError: If the actor is not an admin.
            ValidationError: If the key is unknown or the value has the wrong type.
        """
        RoleResolver(self._db).require(actor_id, Actions.SETTINGS_MUTATE, description="change settings")
        if key not in DEFAULT_CAFETERIA_SETTINGS:
            raise ValidationError(f"Unknown setting: {key}", key=key)
        validate_setting_value(key, value)

        with store_guard(self._db, "set_setting"):
            row = self._db.get(CafeteriaSetting, key)
            if row is None:
                row = CafeteriaSetting(
                    key=key,
                    value=value,
                    description=DEFAULT_CAFETERIA_SETTINGS[key][1],
                    updated_by=actor_id,
                )
                self._db.add(row)
            else:
                row.value = value
                row.updated_by = actor_id
            safe_commit(self._db)
        self._db.refresh(row)
        settings_snapshot.invalidate()
        logger.info("Setting changed", key=key, actor=mask_identity(actor_id))
        return row

    def seed_defaults(self) -> int:
        """Insert missing default rows. Returns how many were added."""
        existing = set(self._db.execute(select(CafeteriaSetting.key)).scalars().all())
        added = 0
        for key, (value, description) in DEFAULT_CAFETERIA_SETTINGS.items():
            if key in existing:
                continue
            self._db.add(CafeteriaSetting(key=key, value=value, description=description))
            added += 1
        if added:
            with store_guard(self._db, "seed_settings"):
                safe_commit(self._db)
            settings_snapshot.invalidate()
        return added
