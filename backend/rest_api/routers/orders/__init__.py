"""
Order routers - /api/orders/*
Customer-facing order placement, tracking, cancellation and payment.
"""

from .routes import router

__all__ = ["router"]
