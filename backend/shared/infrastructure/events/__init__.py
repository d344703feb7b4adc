"""
Real-time order events via Redis pub/sub.

- circuit_breaker.py: circuit breaker for best-effort outbound I/O
- event_schema.py: Event dataclass with validation
- channels.py: channel naming
- redis_pool.py: async connection pool
- publisher.py: publish_event with retry
- order_publishers.py: owner + staff fan-out for order changes
"""

from .circuit_breaker import (
    CircuitState,
    CircuitBreaker,
    get_event_circuit_breaker,
    get_push_circuit_breaker,
    calculate_retry_delay_with_jitter,
)
from .event_schema import (
    Event,
    MAX_EVENT_SIZE,
    ORDER_PLACED,
    ORDER_STATUS_CHANGED,
)
from .channels import (
    channel_user,
    channel_staff_orders,
    STAFF_ORDERS_CHANNEL,
)
from .redis_pool import (
    get_redis_pool,
    close_redis_pool,
)
from .publisher import publish_event
from .order_publishers import publish_order_event

__all__ = [
    "CircuitState",
    "CircuitBreaker",
    "get_event_circuit_breaker",
    "get_push_circuit_breaker",
    "calculate_retry_delay_with_jitter",
    "Event",
    "MAX_EVENT_SIZE",
    "ORDER_PLACED",
    "ORDER_STATUS_CHANGED",
    "channel_user",
    "channel_staff_orders",
    "STAFF_ORDERS_CHANNEL",
    "get_redis_pool",
    "close_redis_pool",
    "publish_event",
    "publish_order_event",
]
