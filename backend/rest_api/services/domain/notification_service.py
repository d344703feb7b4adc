"""
Notification Service.

Notification rows are written in the caller's transaction; push delivery
happens after commit through the order event dispatcher and never affects
the operation that produced the notification.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from rest_api.models import Notification, Order, PushToken, utcnow
from shared.config.constants import NotificationType, PushPlatform
from shared.config.logging import get_logger, mask_identity, mask_token
from shared.infrastructure.db import safe_commit, store_guard
from shared.utils.exceptions import ValidationError

logger = get_logger(__name__)


# =============================================================================
# Message templates
# =============================================================================


def order_reference(order_id: int) -> str:
    """Human reference for an order, as shown to customers."""
    return str(order_id).zfill(6)


def render_order_notification(order: Order, notification_type: str) -> tuple[str, str]:
    """Title and message for an order lifecycle notification."""
    ref = order_reference(order.id)
    if notification_type == NotificationType.ORDER_PLACED:
        return (
            "Order Confirmed",
            "Your order has been received and is being prepared. "
            "We'll notify you when it's ready!",
        )
    if notification_type == NotificationType.ORDER_CONFIRMED:
        return ("Order Accepted", f"Order #{ref} has been accepted by the cafeteria.")
    if notification_type == NotificationType.ORDER_READY:
        return (
            "Your Order is Ready!",
            f"Order #{ref} is ready for pickup. Your pickup code is: {order.pickup_code}",
        )
    if notification_type == NotificationType.ORDER_COMPLETED:
        return ("Order Picked Up", f"Order #{ref} has been picked up. Enjoy your meal!")
    if notification_type == NotificationType.ORDER_CANCELLED:
        return ("Order Cancelled", f"Order #{ref} has been cancelled.")
    raise ValueError(f"No template for notification type {notification_type!r}")


class NotificationService:
    """
    Domain service for notifications and push tokens.

    Business rules:
    - enqueue() only adds the row; the caller commits
    - mark_read() never touches rows that are already read
    - push tokens are globally unique; re-registering moves the token
    """

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Command Methods
    # =========================================================================

    def enqueue(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        order_id: int | None = None,
    ) -> Notification:
        """Add a notification in the current transaction (flushes for the id)."""
        if notification_type not in NotificationType.ALL:
            raise ValidationError(f"Unknown notification type: {notification_type}")
        notification = Notification(
            user_id=user_id,
            order_id=order_id,
            type=notification_type,
            title=title,
            message=message,
        )
        self._db.add(notification)
        self._db.flush()
        logger.debug(
            "Notification enqueued",
            notification_id=notification.id,
            user=mask_identity(user_id),
            type=notification_type,
            order_id=order_id,
        )
        return notification

    def enqueue_for_order(self, order: Order, notification_type: str) -> Notification:
        title, message = render_order_notification(order, notification_type)
        return self.enqueue(
            user_id=order.owner_id,
            notification_type=notification_type,
            title=title,
            message=message,
            order_id=order.id,
        )

    def mark_read(self, user_id: str, ids: Sequence[int] | None = None) -> int:
        """
        Mark the user's unread notifications (or only `ids`) as read.

        Ids that belong to someone else or are already read are skipped.
        Returns the number of rows changed; calling it twice returns 0.
        """
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
            .values(read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if ids:
            stmt = stmt.where(Notification.id.in_(list(ids)))
        with store_guard(self._db, "mark_read"):
            result = self._db.execute(stmt)
            safe_commit(self._db)
        return result.rowcount

    def register_token(self, user_id: str, token: str, platform: str) -> PushToken:
        """Upsert a device token. A token seen under another user moves to this one."""
        if platform not in PushPlatform.ALL:
            raise ValidationError(f"Unsupported platform: {platform}", field="platform")
        with store_guard(self._db, "register_push_token"):
            existing = self._db.scalar(select(PushToken).where(PushToken.token == token))
            if existing is None:
                existing = PushToken(user_id=user_id, token=token, platform=platform)
                self._db.add(existing)
            else:
                existing.user_id = user_id
                existing.platform = platform
            safe_commit(self._db)
        logger.info("Push token registered", user=mask_identity(user_id), token=mask_token(token))
        return existing

    def remove_token(self, user_id: str, token: str) -> bool:
        """Delete the user's token. Returns False if it was not theirs or absent."""
        with store_guard(self._db, "remove_push_token"):
            result = self._db.execute(
                delete(PushToken).where(PushToken.user_id == user_id, PushToken.token == token)
            )
            safe_commit(self._db)
        return result.rowcount > 0

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> Sequence[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read_at.is_(None))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        return self._db.execute(query).scalars().all()

    def unread_count(self, user_id: str) -> int:
        return self._db.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        ) or 0

