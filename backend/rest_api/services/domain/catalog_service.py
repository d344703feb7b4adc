"""
Menu Catalog Service.

Usage:
    from rest_api.services.domain import CatalogService

    service = CatalogService(db)
    for category in service.list_active_categories_with_available_items():
        ...
"""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy.orm import Session

from rest_api.models import MenuCategory, MenuItem
from rest_api.repositories import CategoryRepository, MenuItemRepository
from rest_api.services.permissions import RoleResolver
from shared.config.constants import Actions
from shared.config.logging import get_logger, mask_identity
from shared.infrastructure.db import safe_commit, store_guard
from shared.utils.exceptions import ConflictError, NotFoundError, ValidationError

logger = get_logger(__name__)

_CATEGORY_FIELDS = ("name", "description", "display_order", "active")
_ITEM_FIELDS = (
    "category_id",
    "name",
    "description",
    "price_cents",
    "image_url",
    "available",
    "allergens",
    "prep_time_minutes",
)


class CatalogService:
    """
    Domain service for the menu.

    Business rules:
    - customers see active categories with only their available items
    - category names are unique
    - a category with items cannot be deleted
    - an item referenced by any order line cannot be deleted; mark it
      unavailable instead
    - all mutations are admin-only
    """

    def __init__(self, db: Session):
        self._db = db
        self._categories = CategoryRepository(db)
        self._items = MenuItemRepository(db)

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_active_categories_with_available_items(self) -> Sequence[MenuCategory]:
        return self._categories.active_with_available_items()

    def list_categories(self) -> Sequence[MenuCategory]:
        return self._categories.find_all()

    def get_category(self, category_id: int) -> MenuCategory:
        category = self._categories.find_by_id(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def get_item(self, item_id: int) -> MenuItem:
        item = self._items.find_by_id(item_id)
        if item is None:
            raise NotFoundError("Menu item", item_id)
        return item

    def is_available(self, item_id: int) -> bool:
        """False for unknown ids, unavailable items and items in inactive categories."""
        return item_id in self._items.find_for_order([item_id])

    # =========================================================================
    # Command Methods (admin only)
    # =========================================================================

    def _require_admin(self, actor_id: str) -> None:
        RoleResolver(self._db).require(actor_id, Actions.MENU_MUTATE, description="change the menu")

    def create_category(self, actor_id: str, data: dict[str, Any]) -> MenuCategory:
        self._require_admin(actor_id)
        self._ensure_unique_name(data["name"])
        category = MenuCategory(**{k: v for k, v in data.items() if k in _CATEGORY_FIELDS})
        with store_guard(self._db, "create_category"):
            self._categories.save(category)
            safe_commit(self._db)
        logger.info("Category created", category_id=category.id, actor=mask_identity(actor_id))
        return category

    def update_category(self, actor_id: str, category_id: int, data: dict[str, Any]) -> MenuCategory:
        self._require_admin(actor_id)
        category = self.get_category(category_id)
        if data.get("name") and data["name"] != category.name:
            self._ensure_unique_name(data["name"])
        for field in _CATEGORY_FIELDS:
            if field in data and data[field] is not None:
                setattr(category, field, data[field])
        with store_guard(self._db, "update_category"):
            safe_commit(self._db)
        self._db.refresh(category)
        return category

    def delete_category(self, actor_id: str, category_id: int) -> None:
        self._require_admin(actor_id)
        category = self.get_category(category_id)
        item_count = self._categories.item_count(category_id)
        if item_count:
            raise ConflictError(
                f"Category has {item_count} items; move or delete them first",
                category_id=category_id,
            )
        with store_guard(self._db, "delete_category"):
            self._categories.delete(category)
            safe_commit(self._db)
        logger.info("Category deleted", category_id=category_id, actor=mask_identity(actor_id))

    def create_item(self, actor_id: str, data: dict[str, Any]) -> MenuItem:
        self._require_admin(actor_id)
        self._validate_item(data)
        self.get_category(data["category_id"])
        item = MenuItem(**{k: v for k, v in data.items() if k in _ITEM_FIELDS})
        with store_guard(self._db, "create_item"):
            self._items.save(item)
            safe_commit(self._db)
        logger.info("Menu item created", item_id=item.id, actor=mask_identity(actor_id))
        return item

    def update_item(self, actor_id: str, item_id: int, data: dict[str, Any]) -> MenuItem:
        """Update an item. Existing order lines keep their snapshotted price."""
        self._require_admin(actor_id)
        item = self.get_item(item_id)
        self._validate_item(data)
        if data.get("category_id") is not None:
            self.get_category(data["category_id"])
        for field in _ITEM_FIELDS:
            if field in data and data[field] is not None:
                setattr(item, field, data[field])
        with store_guard(self._db, "update_item"):
            safe_commit(self._db)
        self._db.refresh(item)
        return item

    def delete_item(self, actor_id: str, item_id: int) -> None:
        self._require_admin(actor_id)
        item = self.get_item(item_id)
        if self._items.is_referenced_by_orders(item_id):
            raise ConflictError(
                "Menu item appears in orders; mark it unavailable instead",
                item_id=item_id,
            )
        with store_guard(self._db, "delete_item"):
            self._items.delete(item)
            safe_commit(self._db)
        logger.info("Menu item deleted", item_id=item_id, actor=mask_identity(actor_id))

    # =========================================================================
    # Validation
    # =========================================================================

    def _ensure_unique_name(self, name: str) -> None:
        if self._categories.find_by_name(name) is not None:
            raise ConflictError(f"Category '{name}' already exists", name=name)

    @staticmethod
    def _validate_item(data: dict[str, Any]) -> None:
        price = data.get("price_cents")
        if price is not None and price < 0:
            raise ValidationError("Price must not be negative", field="price_cents")
        prep = data.get("prep_time_minutes")
        if prep is not None and prep <= 0:
            raise ValidationError("Preparation time must be positive", field="prep_time_minutes")
