"""
Domain Services - application layer.

Services contain business logic and orchestrate operations.
They use Repositories for data access and schedule side effects.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderService

    # In router
    service = OrderService(db, background_tasks)
    order = service.transition_status(order_id, "ready", actor_id)
"""

from .profile_service import ProfileService
from .catalog_service import CatalogService
from .settings_service import SettingsService, settings_snapshot
from .notification_service import (
    NotificationService,
    order_reference,
    render_order_notification,
)
from .order_service import OrderService
from .payment_service import PaymentService

__all__ = [
    "ProfileService",
    "CatalogService",
    "SettingsService",
    "settings_snapshot",
    "NotificationService",
    "order_reference",
    "render_order_notification",
    "OrderService",
    "PaymentService",
]
