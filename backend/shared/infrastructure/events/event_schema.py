"""
Event Schema.

Defines the Event dataclass published on Redis for order lifecycle changes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any

from shared.config.constants import OrderStatus

# Redis messages larger than this are rejected before publishing
MAX_EVENT_SIZE = 64 * 1024

ORDER_PLACED = "ORDER_PLACED"
ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"

EVENT_TYPES = frozenset({ORDER_PLACED, ORDER_STATUS_CHANGED})


@dataclass
class Event:
    """
    Order lifecycle event.

    The 'entity' field carries the order snapshot (id, status, pickup code
    for the owner channel only). The 'actor' field identifies who
    triggered the change.
    """

    type: str
    order_id: int
    owner_id: str
    status: str
    previous_status: str | None = None
    entity: dict[str, Any] = field(default_factory=dict)
    actor: dict[str, Any] = field(default_factory=dict)
    ts: str | None = None
    v: int = 1

    def __post_init__(self) -> None:
        """Reject malformed events before they reach Redis."""
        if self.type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.type!r}")

        if not isinstance(self.order_id, int) or self.order_id <= 0:
            raise ValueError("Event order_id must be a positive integer")

        if not self.owner_id or not isinstance(self.owner_id, str):
            raise ValueError("Event owner_id must be a non-empty string")

        if self.status not in OrderStatus.ALL:
            raise ValueError(f"Event status must be an order status, got {self.status!r}")

        if self.previous_status is not None and self.previous_status not in OrderStatus.ALL:
            raise ValueError("Event previous_status must be an order status or None")

        if self.entity is not None and not isinstance(self.entity, dict):
            raise ValueError("Event entity must be a dict or None")

        if self.actor is not None and not isinstance(self.actor, dict):
            raise ValueError("Event actor must be a dict or None")

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        data = asdict(self)
        data["entity"] = data["entity"] or {}
        data["actor"] = data["actor"] or {}
        data["ts"] = data["ts"] or datetime.now(timezone.utc).isoformat()
        return json.dumps(data, ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "Event":
        """Deserialize event from JSON string. Validation runs in __post_init__."""
        data = json.loads(json_str)
        return cls(**data)
