"""
Shared Pydantic schemas used across the application.

Money on the wire is integer cents, like in storage.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from shared.config.constants import Limits
from shared.utils.validators import (
    normalize_allergens,
    sanitize_text,
    validate_image_url,
    validate_phone,
)


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["customer", "staff", "admin"]
OrderStatusLiteral = Literal["placed", "confirmed", "preparing", "ready", "completed", "cancelled"]
PaymentMethodLiteral = Literal["credit_card", "debit_card", "mobile_payment", "university_account"]
PaymentStatusLiteral = Literal["pending", "processing", "completed", "failed", "refunded"]
NotificationTypeLiteral = Literal[
    "order_placed",
    "order_confirmed",
    "order_ready",
    "order_completed",
    "order_cancelled",
    "system_message",
]
PlatformLiteral = Literal["ios", "android"]


# =============================================================================
# Profile Schemas
# =============================================================================


class ProvisionRequest(BaseModel):
    """First sign-in. The name hint usually comes from identity provider metadata."""

    display_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)


class ProfileOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    identity_id: str
    display_name: str
    email: str | None = None
    phone: str | None = None
    student_id: str | None = None
    role: Role
    created_at: datetime


class UpdateProfileRequest(BaseModel):
    """Contact fields a user may change on their own profile. Role is not here."""

    display_name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    email: EmailStr | None = None
    phone: str | None = None
    student_id: str | None = Field(default=None, max_length=50)

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, v: str | None) -> str | None:
        return validate_phone(v)


class ChangeRoleRequest(BaseModel):
    role: Role


# =============================================================================
# Menu Schemas
# =============================================================================


class MenuItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    name: str
    description: str | None = None
    price_cents: int
    image_url: str | None = None
    available: bool
    allergens: list[str] = Field(default_factory=list)
    prep_time_minutes: int


class CategoryOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    display_order: int
    active: bool


class MenuCategoryOutput(CategoryOutput):
    """A category with its currently available items."""

    items: list[MenuItemOutput] = Field(default_factory=list)


class MenuOutput(BaseModel):
    categories: list[MenuCategoryOutput]


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = None
    display_order: int = Field(default=0, ge=0)
    active: bool = True


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = None
    display_order: int | None = Field(default=None, ge=0)
    active: bool | None = None


class MenuItemCreate(BaseModel):
    category_id: int
    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = None
    price_cents: int = Field(ge=0)
    image_url: str | None = None
    available: bool = True
    allergens: list[str] = Field(default_factory=list)
    prep_time_minutes: int = Field(default=10, gt=0)

    @field_validator("image_url")
    @classmethod
    def _check_image_url(cls, v: str | None) -> str | None:
        return validate_image_url(v)

    @field_validator("allergens")
    @classmethod
    def _normalize_allergens(cls, v: list[str]) -> list[str]:
        return normalize_allergens(v)


class MenuItemUpdate(BaseModel):
    category_id: int | None = None
    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = None
    price_cents: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    available: bool | None = None
    allergens: list[str] | None = None
    prep_time_minutes: int | None = Field(default=None, gt=0)

    @field_validator("image_url")
    @classmethod
    def _check_image_url(cls, v: str | None) -> str | None:
        return validate_image_url(v)

    @field_validator("allergens")
    @classmethod
    def _normalize_allergens(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else normalize_allergens(v)


# =============================================================================
# Order Schemas
# =============================================================================


class OrderLineInput(BaseModel):
    """A single line of a new order."""

    menu_item_id: int
    quantity: int = Field(ge=1, le=Limits.MAX_LINE_QUANTITY)
    special_instructions: str | None = Field(default=None, max_length=200)


class CreateOrderRequest(BaseModel):
    items: list[OrderLineInput] = Field(min_length=1, max_length=Limits.MAX_ORDER_LINES)
    notes: str | None = None
    pickup_time: datetime | None = None
    # Advisory only: the server recomputes the total from catalog prices
    client_total_cents: int | None = Field(default=None, ge=0)

    @field_validator("notes")
    @classmethod
    def _clean_notes(cls, v: str | None) -> str | None:
        return sanitize_text(v)


class OrderItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    item_name: str
    quantity: int
    unit_price_cents: int
    subtotal_cents: int
    special_instructions: str | None = None


class OrderOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    status: OrderStatusLiteral
    total_cents: int
    pickup_code: str
    notes: str | None = None
    pickup_time: datetime | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    items: list[OrderItemOutput] = Field(default_factory=list)


class QueueEntryOutput(BaseModel):
    """Staff queue row. Pickup codes are shown to staff."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    status: OrderStatusLiteral
    pickup_code: str
    total_cents: int
    item_count: int
    notes: str | None = None
    pickup_time: datetime | None = None
    created_at: datetime


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatusLiteral
    note: str | None = None

    @field_validator("note")
    @classmethod
    def _clean_note(cls, v: str | None) -> str | None:
        return sanitize_text(v)


class CancelOrderRequest(BaseModel):
    reason: str | None = None

    @field_validator("reason")
    @classmethod
    def _clean_reason(cls, v: str | None) -> str | None:
        return sanitize_text(v)


class StatusHistoryOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    from_status: OrderStatusLiteral | None = None
    to_status: OrderStatusLiteral
    changed_by: str | None = None
    note: str | None = None
    created_at: datetime


class VerifyPickupRequest(BaseModel):
    # Malformed codes are accepted here and answered with 404 like unknown ones
    code: str = Field(max_length=16)


# =============================================================================
# Payment Schemas
# =============================================================================


class RecordPaymentRequest(BaseModel):
    amount_cents: int = Field(ge=0)
    method: PaymentMethodLiteral
    provider_transaction_id: str | None = Field(default=None, max_length=255)


class UpdatePaymentStatusRequest(BaseModel):
    status: PaymentStatusLiteral


class PaymentOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    amount_cents: int
    method: PaymentMethodLiteral
    status: PaymentStatusLiteral
    provider_transaction_id: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


# =============================================================================
# Notification Schemas
# =============================================================================


class NotificationOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int | None = None
    type: NotificationTypeLiteral
    title: str
    message: str
    read_at: datetime | None = None
    created_at: datetime


class NotificationListOutput(BaseModel):
    notifications: list[NotificationOutput]
    unread_count: int


class MarkReadRequest(BaseModel):
    """Empty or missing `ids` marks every unread notification."""

    ids: list[int] | None = Field(default=None, max_length=Limits.MAX_MARK_READ_IDS)


class MarkReadResponse(BaseModel):
    marked: int


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=512)
    platform: PlatformLiteral


class PushTokenDeleteRequest(BaseModel):
    token: str = Field(min_length=1, max_length=512)


# =============================================================================
# Settings Schemas
# =============================================================================


class SettingOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: Any
    description: str | None = None
    updated_at: datetime
    updated_by: str | None = None


class SettingUpdateRequest(BaseModel):
    value: Any


# =============================================================================
# Health / Error Schemas
# =============================================================================


class HealthOutput(BaseModel):
    status: Literal["ok", "degraded"]
    database: Literal["ok", "error"]
    redis: Literal["ok", "error", "disabled"]


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str


