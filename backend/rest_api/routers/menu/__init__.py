"""
Menu routers - /api/menu/*
Read-only catalog for signed-in users.
"""

from .routes import router

__all__ = ["router"]
