"""
Push notification delivery (Expo push API).

Best-effort and at-most-once per token: a message is sent once, failures
are logged and never retried or raised. Tokens the provider reports as
no longer registered are deleted.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

import httpx
from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from rest_api.models import Notification, PushToken, utcnow
from shared.config.logging import get_logger, mask_token
from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.infrastructure.events import CircuitBreaker, get_push_circuit_breaker

logger = get_logger(__name__)

# Expo accepts at most 100 messages per request
MAX_BATCH_SIZE = 100
DEVICE_NOT_REGISTERED = "DeviceNotRegistered"


def build_message(token: str, notification: Notification) -> dict[str, Any]:
    data: dict[str, Any] = {"notification_id": notification.id, "type": notification.type}
    if notification.order_id is not None:
        data["order_id"] = notification.order_id
    return {
        "to": token,
        "title": notification.title,
        "body": notification.message,
        "data": data,
        "sound": "default",
    }


class PushDispatcher:
    """
    Sends push messages for committed notifications.

    Usage:
        await PushDispatcher().deliver([notification.id])
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        client: httpx.AsyncClient | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        self._session_factory = session_factory
        self._client = client
        self._breaker = breaker or get_push_circuit_breaker()

    async def deliver(self, notification_ids: Sequence[int]) -> int:
        """
        Push the given notifications to every device of their recipients.

        Returns the number of messages the provider accepted.
        """
        if not notification_ids:
            return 0

        db = self._session_factory()
        try:
            messages = self._collect_messages(db, notification_ids)
            if not messages:
                return 0

            accepted: list[str] = []
            stale: list[str] = []
            for start in range(0, len(messages), MAX_BATCH_SIZE):
                batch = messages[start:start + MAX_BATCH_SIZE]
                ok, dead = await self._send_batch(batch)
                accepted.extend(ok)
                stale.extend(dead)

            self._record_results(db, accepted, stale)
            return len(accepted)
        finally:
            db.close()

    def _collect_messages(self, db: Session, notification_ids: Sequence[int]) -> list[dict[str, Any]]:
        notifications = db.execute(
            select(Notification).where(Notification.id.in_(list(notification_ids)))
        ).scalars().all()
        user_ids = {n.user_id for n in notifications}
        if not user_ids:
            return []
        tokens = db.execute(select(PushToken).where(PushToken.user_id.in_(user_ids))).scalars().all()
        by_user: dict[str, list[str]] = {}
        for token in tokens:
            by_user.setdefault(token.user_id, []).append(token.token)
        return [
            build_message(token, notification)
            for notification in notifications
            for token in by_user.get(notification.user_id, [])
        ]

    async def _send_batch(self, batch: list[dict[str, Any]]) -> tuple[list[str], list[str]]:
        """POST one batch. Returns (accepted tokens, unregistered tokens)."""
        if not self._breaker.can_execute():
            logger.warning("Push skipped - circuit breaker open", messages=len(batch))
            return [], []

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if settings.push_access_token:
            headers["Authorization"] = f"Bearer {settings.push_access_token}"

        try:
            if self._client is not None:
                response = await self._client.post(
                    settings.push_api_url, json=batch, headers=headers,
                    timeout=settings.push_timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(timeout=settings.push_timeout_seconds) as client:
                    response = await client.post(settings.push_api_url, json=batch, headers=headers)
            response.raise_for_status()
            tickets = response.json().get("data", [])
        except (httpx.HTTPError, ValueError) as e:
            self._breaker.record_failure()
            logger.error("Push delivery failed", messages=len(batch), error=str(e))
            return [], []

        self._breaker.record_success()
        accepted: list[str] = []
        stale: list[str] = []
        for message, ticket in zip(batch, tickets):
            token = message["to"]
            if ticket.get("status") == "ok":
                accepted.append(token)
                continue
            error = (ticket.get("details") or {}).get("error")
            if error == DEVICE_NOT_REGISTERED:
                stale.append(token)
            logger.warning(
                "Push rejected by provider",
                token=mask_token(token),
                error=error or ticket.get("message"),
            )
        return accepted, stale

    def _record_results(self, db: Session, accepted: list[str], stale: list[str]) -> None:
        if not accepted and not stale:
            return
        try:
            if accepted:
                db.execute(
                    update(PushToken)
                    .where(PushToken.token.in_(accepted))
                    .values(last_used_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
            if stale:
                db.execute(delete(PushToken).where(PushToken.token.in_(stale)))
                logger.info("Removed unregistered push tokens", count=len(stale))
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error("Failed to record push results", error=str(e))
