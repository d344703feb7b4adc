"""
Staff routers - /api/staff/*
Order queue and status board for cafeteria staff.
"""

from .routes import router

__all__ = ["router"]
