"""
Notification routers - /api/notifications/*
In-app notifications and push token registration.
"""

from .routes import router

__all__ = ["router"]
