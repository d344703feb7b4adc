"""
Admin routers - /api/admin/*
Menu maintenance, role management and cafeteria settings.
All endpoints require the admin role (checked by the domain services).
"""

from fastapi import APIRouter

from .menu import router as menu_router
from .profiles import router as profiles_router
from .settings import router as settings_router

router = APIRouter(prefix="/api/admin", tags=["admin"])
router.include_router(menu_router)
router.include_router(profiles_router)
router.include_router(settings_router)

__all__ = ["router"]
