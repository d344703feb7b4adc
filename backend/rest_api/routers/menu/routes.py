"""
Menu router.
CLEAN-ARCH: Thin router delegating to CatalogService.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.services.domain import CatalogService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.schemas import MenuCategoryOutput, MenuItemOutput, MenuOutput

router = APIRouter(prefix="/api/menu", tags=["menu"])


@router.get("", response_model=MenuOutput)
def get_menu(
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> MenuOutput:
    """Active categories by display order, each with its available items."""
    categories = CatalogService(db).list_active_categories_with_available_items()
    return MenuOutput(
        categories=[MenuCategoryOutput.model_validate(c) for c in categories]
    )


@router.get("/items/{item_id}", response_model=MenuItemOutput)
def get_menu_item(
    item_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> MenuItemOutput:
    return MenuItemOutput.model_validate(CatalogService(db).get_item(item_id))
