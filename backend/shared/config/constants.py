"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import Roles, OrderStatus, ORDER_TRANSITIONS

    if status in OrderStatus.TERMINAL:
        ...
"""

from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """Profile role constants."""

    CUSTOMER: Final[str] = "customer"
    STAFF: Final[str] = "staff"
    ADMIN: Final[str] = "admin"

    ALL: Final[list[str]] = [CUSTOMER, STAFF, ADMIN]


STAFF_ROLES: Final[frozenset[str]] = frozenset({Roles.STAFF, Roles.ADMIN})


# =============================================================================
# Authorization actions
# =============================================================================


class Actions:
    """Actions checked by the role resolver."""

    ORDER_CREATE: Final[str] = "order.create"
    ORDER_READ: Final[str] = "order.read"
    ORDER_CANCEL: Final[str] = "order.cancel"
    ORDER_TRANSITION: Final[str] = "order.transition"
    ORDER_QUEUE: Final[str] = "order.queue"
    PICKUP_VERIFY: Final[str] = "pickup.verify"
    PAYMENT_RECORD: Final[str] = "payment.record"
    PAYMENT_UPDATE: Final[str] = "payment.update"
    NOTIFICATION_READ: Final[str] = "notification.read"
    PROFILE_UPDATE: Final[str] = "profile.update"

    # Admin only
    PROFILE_CHANGE_ROLE: Final[str] = "profile.change_role"
    MENU_MUTATE: Final[str] = "menu.mutate"
    SETTINGS_MUTATE: Final[str] = "settings.mutate"

    ADMIN_ONLY: Final[frozenset[str]] = frozenset(
        {PROFILE_CHANGE_ROLE, MENU_MUTATE, SETTINGS_MUTATE}
    )
    # Actions that only make sense for staff, regardless of ownership
    STAFF_ONLY: Final[frozenset[str]] = frozenset(
        {ORDER_TRANSITION, ORDER_QUEUE, PICKUP_VERIFY, PAYMENT_UPDATE}
    )


# =============================================================================
# Order lifecycle
# =============================================================================


class OrderStatus:
    """Order status values. The strings are part of the wire contract."""

    PLACED: Final[str] = "placed"
    CONFIRMED: Final[str] = "confirmed"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"

    ALL: Final[list[str]] = [PLACED, CONFIRMED, PREPARING, READY, COMPLETED, CANCELLED]
    ACTIVE: Final[list[str]] = [PLACED, CONFIRMED, PREPARING, READY]
    TERMINAL: Final[list[str]] = [COMPLETED, CANCELLED]
    # Owners may cancel their own order only while it is still in these states
    OWNER_CANCELLABLE: Final[list[str]] = [PLACED, CONFIRMED]


ORDER_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Staff queue ordering: earlier stages first, FIFO inside a stage
QUEUE_PRIORITY: Final[dict[str, int]] = {
    OrderStatus.PLACED: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
}


def allowed_transitions(current: str, allow_cancel_from_preparing: bool = False) -> frozenset[str]:
    """Return the legal successor states for ``current``."""
    successors = ORDER_TRANSITIONS.get(current, frozenset())
    if allow_cancel_from_preparing and current == OrderStatus.PREPARING:
        successors = successors | {OrderStatus.CANCELLED}
    return successors


def validate_order_status(status: str) -> bool:
    """Check if status is a valid order status."""
    return status in OrderStatus.ALL


# =============================================================================
# Pickup codes
# =============================================================================


PICKUP_CODE_LENGTH: Final[int] = 4
PICKUP_CODE_SPACE: Final[int] = 10 ** PICKUP_CODE_LENGTH


# =============================================================================
# Money
# =============================================================================


# Allowed drift between a stored total and the sum of its lines (5 cents)
TOTAL_TOLERANCE_CENTS: Final[int] = 5


# =============================================================================
# Payments
# =============================================================================


class PaymentMethod:
    """Accepted payment methods."""

    CREDIT_CARD: Final[str] = "credit_card"
    DEBIT_CARD: Final[str] = "debit_card"
    MOBILE_PAYMENT: Final[str] = "mobile_payment"
    UNIVERSITY_ACCOUNT: Final[str] = "university_account"

    ALL: Final[list[str]] = [CREDIT_CARD, DEBIT_CARD, MOBILE_PAYMENT, UNIVERSITY_ACCOUNT]


class PaymentStatus:
    """Payment record status values."""

    PENDING: Final[str] = "pending"
    PROCESSING: Final[str] = "processing"
    COMPLETED: Final[str] = "completed"
    FAILED: Final[str] = "failed"
    REFUNDED: Final[str] = "refunded"

    ALL: Final[list[str]] = [PENDING, PROCESSING, COMPLETED, FAILED, REFUNDED]


PAYMENT_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PROCESSING, PaymentStatus.COMPLETED, PaymentStatus.FAILED}
    ),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


# =============================================================================
# Notifications
# =============================================================================


class NotificationType:
    """Notification type values."""

    ORDER_PLACED: Final[str] = "order_placed"
    ORDER_CONFIRMED: Final[str] = "order_confirmed"
    ORDER_READY: Final[str] = "order_ready"
    ORDER_COMPLETED: Final[str] = "order_completed"
    ORDER_CANCELLED: Final[str] = "order_cancelled"
    SYSTEM_MESSAGE: Final[str] = "system_message"

    ALL: Final[list[str]] = [
        ORDER_PLACED,
        ORDER_CONFIRMED,
        ORDER_READY,
        ORDER_COMPLETED,
        ORDER_CANCELLED,
        SYSTEM_MESSAGE,
    ]


# Status change -> notification type written alongside it
STATUS_NOTIFICATIONS: Final[dict[str, str]] = {
    OrderStatus.CONFIRMED: NotificationType.ORDER_CONFIRMED,
    OrderStatus.READY: NotificationType.ORDER_READY,
    OrderStatus.COMPLETED: NotificationType.ORDER_COMPLETED,
    OrderStatus.CANCELLED: NotificationType.ORDER_CANCELLED,
}


class PushPlatform:
    """Device platforms accepted for push tokens."""

    IOS: Final[str] = "ios"
    ANDROID: Final[str] = "android"

    ALL: Final[list[str]] = [IOS, ANDROID]


# =============================================================================
# Cafeteria settings keys
# =============================================================================


class SettingKeys:
    """Keys of the cafeteria_setting table."""

    OPERATING_HOURS: Final[str] = "operating_hours"
    PEAK_HOURS: Final[str] = "peak_hours"
    MAX_CONCURRENT_ORDERS: Final[str] = "max_concurrent_orders"
    AVG_PREP_TIME_MINUTES: Final[str] = "avg_prep_time_minutes"
    ORDER_READY_NOTIFICATION_DELAY: Final[str] = "order_ready_notification_delay"


DEFAULT_CAFETERIA_SETTINGS: Final[dict[str, tuple[object, str]]] = {
    SettingKeys.OPERATING_HOURS: (
        {
            "monday_friday": {"open": "07:00", "close": "16:00"},
            "saturday_sunday": {"open": "09:00", "close": "14:00"},
        },
        "Cafeteria operating hours by day",
    ),
    SettingKeys.PEAK_HOURS: ({"start": "11:00", "end": "14:00"}, "Peak hours for order volume"),
    SettingKeys.MAX_CONCURRENT_ORDERS: (50, "Maximum orders that can be in flight at once"),
    SettingKeys.AVG_PREP_TIME_MINUTES: (10, "Average preparation time for orders"),
    SettingKeys.ORDER_READY_NOTIFICATION_DELAY: (30, "Seconds to wait before sending ready notification"),
}


# =============================================================================
# Input limits
# =============================================================================


class Limits:
    """Input validation limits."""

    MAX_ORDER_LINES: Final[int] = 50
    MAX_LINE_QUANTITY: Final[int] = 99
    MAX_NOTES_LENGTH: Final[int] = 500
    MAX_NAME_LENGTH: Final[int] = 255
    MAX_MARK_READ_IDS: Final[int] = 200
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200
