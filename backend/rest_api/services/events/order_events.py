"""
Post-commit side effects of order changes.

After an order transaction commits, the change is published to Redis
(owner and staff channels) and its notifications are pushed to devices.
Both are best-effort: failures are logged and never reach the caller.

In a request, work is scheduled on FastAPI BackgroundTasks so it runs
after the response. Outside a request (CLI) it runs inline.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import redis.asyncio as redis

from rest_api.models import Order
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.events import (
    ORDER_PLACED,
    ORDER_STATUS_CHANGED,
    get_redis_pool,
    publish_order_event,
)
from .push_dispatcher import PushDispatcher

if TYPE_CHECKING:
    from fastapi import BackgroundTasks

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderChange:
    """Snapshot of a committed order change, safe to use after the session closes."""

    event_type: str
    order_id: int
    owner_id: str
    status: str
    pickup_code: str
    previous_status: str | None = None
    actor_id: str | None = None
    notification_ids: tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def placed(cls, order: Order, notification_ids: tuple[int, ...] = ()) -> "OrderChange":
        return cls(
            event_type=ORDER_PLACED,
            order_id=order.id,
            owner_id=order.owner_id,
            status=order.status,
            pickup_code=order.pickup_code,
            actor_id=order.owner_id,
            notification_ids=notification_ids,
        )

    @classmethod
    def transitioned(
        cls,
        order: Order,
        previous_status: str,
        actor_id: str,
        notification_ids: tuple[int, ...] = (),
    ) -> "OrderChange":
        return cls(
            event_type=ORDER_STATUS_CHANGED,
            order_id=order.id,
            owner_id=order.owner_id,
            status=order.status,
            pickup_code=order.pickup_code,
            previous_status=previous_status,
            actor_id=actor_id,
            notification_ids=notification_ids,
        )


async def deliver_order_change(change: OrderChange) -> None:
    """Publish and push one change. Never raises."""
    if settings.realtime_enabled:
        try:
            client = await get_redis_pool()
            await publish_order_event(
                client,
                event_type=change.event_type,
                order_id=change.order_id,
                owner_id=change.owner_id,
                status=change.status,
                previous_status=change.previous_status,
                pickup_code=change.pickup_code,
                actor_id=change.actor_id,
            )
        except (redis.RedisError, OSError) as e:
            logger.error("Order event publish failed", order_id=change.order_id, error=str(e))

    if settings.push_enabled and change.notification_ids:
        try:
            await PushDispatcher().deliver(change.notification_ids)
        except Exception as e:
            logger.error("Push dispatch failed", order_id=change.order_id, error=str(e))


def _task_error_callback(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Order side-effect task failed", task_name=task.get_name(), error=str(exc))


def dispatch_order_change(
    change: OrderChange,
    background_tasks: "BackgroundTasks | None" = None,
) -> None:
    """Schedule delivery of a committed change."""
    if not settings.realtime_enabled and not (settings.push_enabled and change.notification_ids):
        return

    if background_tasks is not None:
        background_tasks.add_task(deliver_order_change, change)
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(deliver_order_change(change))
        return
    task = loop.create_task(deliver_order_change(change), name=f"order_change:{change.order_id}")
    task.add_done_callback(_task_error_callback)
