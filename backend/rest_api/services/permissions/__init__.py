"""
Permission Strategy Pattern implementation.

Usage:
    from rest_api.services.permissions import RoleResolver
    from shared.config.constants import Actions

    resolver = RoleResolver(db)
    if not resolver.authorize(identity_id, Actions.ORDER_READ, order.owner_id):
        raise ForbiddenError("view this order")
"""

from .strategies import (
    PermissionStrategy,
    CustomerStrategy,
    StaffStrategy,
    AdminStrategy,
    get_strategy,
)
from .context import RoleResolver, RoleCache, role_cache

__all__ = [
    "PermissionStrategy",
    "CustomerStrategy",
    "StaffStrategy",
    "AdminStrategy",
    "get_strategy",
    "RoleResolver",
    "RoleCache",
    "role_cache",
]
