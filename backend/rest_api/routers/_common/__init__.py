"""
Common utilities shared across routers.
"""

from .base import get_identity
from .pagination import (
    Pagination,
    get_pagination,
)

__all__ = [
    "get_identity",
    "Pagination",
    "get_pagination",
]
