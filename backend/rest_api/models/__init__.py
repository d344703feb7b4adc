"""
SQLAlchemy ORM Models Package.

- base: Base class, TimestampMixin, BigIntPK
- profile: Profile
- menu: MenuCategory, MenuItem
- order: Order, OrderItem, OrderStatusHistory
- payment: Payment
- notification: Notification, PushToken
- setting: CafeteriaSetting
"""

from .base import Base, TimestampMixin, BigIntPK, utcnow

from .profile import Profile
from .menu import MenuCategory, MenuItem
from .order import Order, OrderItem, OrderStatusHistory
from .payment import Payment
from .notification import Notification, PushToken
from .setting import CafeteriaSetting

__all__ = [
    "Base",
    "TimestampMixin",
    "BigIntPK",
    "utcnow",
    "Profile",
    "MenuCategory",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "Payment",
    "Notification",
    "PushToken",
    "CafeteriaSetting",
]
