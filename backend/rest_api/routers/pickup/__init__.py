"""
Pickup routers - /api/pickup/*
Counter-side code verification and hand-over.
"""

from .routes import router

__all__ = ["router"]
