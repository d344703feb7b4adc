"""
Services module for business logic.

- domain/: application services (business logic) - USE THESE
- permissions/: role resolution and strategy-based access control
- events/: post-commit side effects (Redis fan-out, push delivery)
- pickup_codes: pickup code allocation

Usage:
    from rest_api.services.domain import OrderService
    service = OrderService(db)
    order = service.verify_pickup("0420", actor_id=staff_id)
"""

from .permissions import RoleResolver, role_cache
from .pickup_codes import PickupCodeAllocator
from .events import OrderChange, PushDispatcher, dispatch_order_change

__all__ = [
    "RoleResolver",
    "role_cache",
    "PickupCodeAllocator",
    "OrderChange",
    "PushDispatcher",
    "dispatch_order_change",
]
