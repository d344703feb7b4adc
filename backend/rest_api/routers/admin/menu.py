"""
Admin menu endpoints: categories and items.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common import get_identity
from rest_api.services.domain import CatalogService
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.schemas import (
    CategoryCreate,
    CategoryOutput,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemOutput,
    MenuItemUpdate,
)

router = APIRouter()


# =============================================================================
# Categories
# =============================================================================


@router.get("/categories", response_model=list[CategoryOutput])
def list_categories(
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[CategoryOutput]:
    """All categories, including inactive ones."""
    return [CategoryOutput.model_validate(c) for c in CatalogService(db).list_categories()]


@router.post("/categories", response_model=CategoryOutput, status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> CategoryOutput:
    category = CatalogService(db).create_category(get_identity(ctx), body.model_dump())
    return CategoryOutput.model_validate(category)


@router.patch("/categories/{category_id}", response_model=CategoryOutput)
def update_category(
    category_id: int,
    body: CategoryUpdate,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> CategoryOutput:
    category = CatalogService(db).update_category(
        get_identity(ctx), category_id, body.model_dump(exclude_unset=True)
    )
    return CategoryOutput.model_validate(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> None:
    """Delete an empty category. 409 if it still has items."""
    CatalogService(db).delete_category(get_identity(ctx), category_id)


# =============================================================================
# Items
# =============================================================================


@router.post("/items", response_model=MenuItemOutput, status_code=status.HTTP_201_CREATED)
def create_item(
    body: MenuItemCreate,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> MenuItemOutput:
    item = CatalogService(db).create_item(get_identity(ctx), body.model_dump())
    return MenuItemOutput.model_validate(item)


@router.patch("/items/{item_id}", response_model=MenuItemOutput)
def update_item(
    item_id: int,
    body: MenuItemUpdate,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> MenuItemOutput:
    item = CatalogService(db).update_item(
        get_identity(ctx), item_id, body.model_dump(exclude_unset=True)
    )
    return MenuItemOutput.model_validate(item)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> None:
    """Delete an item never ordered. 409 otherwise; mark it unavailable instead."""
    CatalogService(db).delete_item(get_identity(ctx), item_id)
