"""
Redis Channel Naming.

Customers subscribe to their own channel; the staff dashboard and the
pickup counter subscribe to the shared order channel.
"""

from __future__ import annotations


STAFF_ORDERS_CHANNEL = "staff:orders"


def channel_user(identity_id: str) -> str:
    """Channel for direct notifications to one customer."""
    if not identity_id or not isinstance(identity_id, str):
        raise ValueError(f"identity_id must be a non-empty string, got {identity_id!r}")
    return f"user:{identity_id}"


def channel_staff_orders() -> str:
    """Channel carrying every order lifecycle change for staff screens."""
    return STAFF_ORDERS_CHANNEL
