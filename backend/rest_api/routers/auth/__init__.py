"""
Authentication routers - /api/auth/*
Profile provisioning on first sign-in and the caller's own profile.
"""

from .routes import router

__all__ = ["router"]
