"""
Order lifecycle event publishing.

Each change goes to the owner's channel and to the staff channel. The pickup
code is only included on the owner's copy.
"""

from __future__ import annotations

import redis.asyncio as redis

from shared.config.logging import get_logger
from .channels import channel_user, channel_staff_orders
from .event_schema import Event
from .publisher import publish_event

logger = get_logger(__name__)


async def publish_order_event(
    redis_client: redis.Redis,
    event_type: str,
    order_id: int,
    owner_id: str,
    status: str,
    previous_status: str | None = None,
    pickup_code: str | None = None,
    actor_id: str | None = None,
) -> None:
    """
    Publish an order lifecycle event to the owner and staff channels.

    Failures on one channel are logged and do not prevent the other.
    """
    actor = {"identity_id": actor_id} if actor_id else {}

    owner_event = Event(
        type=event_type,
        order_id=order_id,
        owner_id=owner_id,
        status=status,
        previous_status=previous_status,
        entity={"order_id": order_id, "status": status, "pickup_code": pickup_code},
        actor=actor,
    )
    staff_event = Event(
        type=event_type,
        order_id=order_id,
        owner_id=owner_id,
        status=status,
        previous_status=previous_status,
        entity={"order_id": order_id, "status": status},
        actor=actor,
    )

    for channel, event in (
        (channel_user(owner_id), owner_event),
        (channel_staff_orders(), staff_event),
    ):
        try:
            await publish_event(redis_client, channel, event)
        except (redis.RedisError, OSError, ValueError) as e:
            logger.error(
                "Order event not published",
                channel=channel,
                order_id=order_id,
                event_type=event_type,
                error=str(e),
            )
