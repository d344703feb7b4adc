"""
Event Services - post-commit side effects of order changes.

- order_events: OrderChange snapshot and dispatch (Redis fan-out + push)
- push_dispatcher: Expo push delivery over httpx
"""

from .order_events import (
    OrderChange,
    deliver_order_change,
    dispatch_order_change,
)
from .push_dispatcher import PushDispatcher, build_message

__all__ = [
    "OrderChange",
    "deliver_order_change",
    "dispatch_order_change",
    "PushDispatcher",
    "build_message",
]
