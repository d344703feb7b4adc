"""
Process-wide async Redis client used for order fan-out and health checks.
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


class _PoolHolder:
    client: redis.Redis | None = None
    lock: asyncio.Lock | None = None


def _build_client() -> redis.Redis:
    timeout = settings.redis_socket_timeout
    return redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=timeout,
        socket_timeout=timeout,
        health_check_interval=30,
    )


async def get_redis_pool() -> redis.Redis:
    """Return the shared client, creating it on first use."""
    if _PoolHolder.client is not None:
        return _PoolHolder.client

    # Created lazily so the lock binds to the running event loop
    if _PoolHolder.lock is None:
        _PoolHolder.lock = asyncio.Lock()

    async with _PoolHolder.lock:
        if _PoolHolder.client is None:
            _PoolHolder.client = _build_client()
            logger.info("Redis client created", timeout=settings.redis_socket_timeout)
    return _PoolHolder.client


async def close_redis_pool() -> None:
    """Shutdown hook; safe to call when no client was ever created."""
    client, _PoolHolder.client = _PoolHolder.client, None
    _PoolHolder.lock = None
    if client is not None:
        await client.aclose()
        logger.info("Redis client closed")
