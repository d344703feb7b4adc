"""
PUBLISH an Event to one Redis channel, retrying transient failures.
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger
from .event_schema import Event, MAX_EVENT_SIZE
from .circuit_breaker import get_event_circuit_breaker, calculate_retry_delay_with_jitter

logger = get_logger(__name__)


async def publish_event(
    redis_client: redis.Redis,
    channel: str,
    event: Event,
) -> int:
    """
    Returns the subscriber count Redis reports, or 0 if the breaker is open.

    Raises ValueError for an oversized payload and the last Redis error
    once `redis_publish_max_retries` attempts have failed.
    """
    payload = event.to_json()
    size = len(payload.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(f"Event {event.type} is {size} bytes, limit {MAX_EVENT_SIZE}")

    breaker = get_event_circuit_breaker()
    if not breaker.can_execute():
        logger.warning("Circuit open, event dropped", channel=channel, event_type=event.type)
        return 0

    attempts = max(1, settings.redis_publish_max_retries)
    for attempt in range(attempts):
        try:
            receivers = await redis_client.publish(channel, payload)
        except (redis.RedisError, OSError) as e:
            if attempt == attempts - 1:
                breaker.record_failure()
                logger.error(
                    "Redis publish gave up",
                    channel=channel,
                    event_type=event.type,
                    attempts=attempts,
                    error=str(e),
                )
                raise
            delay = calculate_retry_delay_with_jitter(attempt, settings.redis_publish_retry_delay)
            logger.warning(
                "Redis publish failed, retrying",
                channel=channel,
                attempt=attempt + 1,
                delay_seconds=round(delay, 2),
                error=str(e),
            )
            await asyncio.sleep(delay)
        else:
            breaker.record_success()
            return receivers
    return 0
