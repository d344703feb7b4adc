"""
Repository Pattern implementation.
Centralizes data access with guaranteed eager loading.

Usage:
    from rest_api.repositories import OrderRepository

    repo = OrderRepository(db)
    order = repo.get(123)
    queue = repo.queue()
"""

from .base import BaseRepository, RepositoryFilters
from .menu import CategoryRepository, MenuItemRepository
from .order import OrderRepository, OrderLine, compute_total_cents

__all__ = [
    "BaseRepository",
    "RepositoryFilters",
    "CategoryRepository",
    "MenuItemRepository",
    "OrderRepository",
    "OrderLine",
    "compute_total_cents",
]
