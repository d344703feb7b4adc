"""
Menu Repositories - Data access for categories and items.
"""

from typing import Sequence

from sqlalchemy import Select, select, func
from sqlalchemy.orm import contains_eager

from rest_api.models import MenuCategory, MenuItem, OrderItem
from .base import BaseRepository


class CategoryRepository(BaseRepository[MenuCategory]):
    """Repository for MenuCategory entities."""

    @property
    def model(self) -> type[MenuCategory]:
        return MenuCategory

    def _base_query(self) -> Select:
        return select(MenuCategory).order_by(MenuCategory.display_order, MenuCategory.name)

    def find_by_name(self, name: str) -> MenuCategory | None:
        return self._db.scalar(select(MenuCategory).where(MenuCategory.name == name))

    def active_with_available_items(self) -> Sequence[MenuCategory]:
        """
        Active categories, each with only its available items loaded.

        Outer join so categories with nothing available are still returned.
        """
        query = (
            select(MenuCategory)
            .outerjoin(
                MenuItem,
                (MenuItem.category_id == MenuCategory.id) & MenuItem.available.is_(True),
            )
            .where(MenuCategory.active.is_(True))
            .options(contains_eager(MenuCategory.items))
            .order_by(MenuCategory.display_order, MenuCategory.name, MenuItem.name)
            .execution_options(populate_existing=True)
        )
        return self._db.execute(query).scalars().unique().all()

    def item_count(self, category_id: int) -> int:
        return self._db.scalar(
            select(func.count()).select_from(MenuItem).where(MenuItem.category_id == category_id)
        ) or 0


class MenuItemRepository(BaseRepository[MenuItem]):
    """Repository for MenuItem entities."""

    @property
    def model(self) -> type[MenuItem]:
        return MenuItem

    def _base_query(self) -> Select:
        return select(MenuItem).order_by(MenuItem.name)

    def find_for_order(self, item_ids: list[int]) -> dict[int, MenuItem]:
        """
        Load the referenced items joined with their category.

        Items in an inactive category are not orderable, so they are
        excluded here the same way as unavailable items.
        """
        if not item_ids:
            return {}
        query = (
            select(MenuItem)
            .join(MenuCategory, MenuCategory.id == MenuItem.category_id)
            .where(
                MenuItem.id.in_(item_ids),
                MenuItem.available.is_(True),
                MenuCategory.active.is_(True),
            )
        )
        return {item.id: item for item in self._db.execute(query).scalars().all()}

    def is_referenced_by_orders(self, item_id: int) -> bool:
        query = select(OrderItem.id).where(OrderItem.menu_item_id == item_id).limit(1)
        return self._db.scalar(query) is not None
