"""
Application errors, each bound to one HTTP status.

    NotFoundError            404
    ForbiddenError           403
    ValidationError          400
      InvalidItemError
      InvalidTransitionError
    ConflictError            409
    UnavailableError         503  (Retry-After)
    InternalError            500
      OrderTotalMismatchError

Errors log themselves when raised. Keyword context goes to the log line
only; clients see `detail`.

    raise NotFoundError("Order", order_id)
    raise ForbiddenError("cancel this order", order_id=order_id)
"""

from fastapi import HTTPException, status
from typing import Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """HTTPException that writes one log line at construction."""

    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level: str = "warning"

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        code = status_code or self.status_code_default
        getattr(logger, self.log_level)(detail, status_code=code, **log_context)
        super().__init__(status_code=code, detail=detail, headers=headers)


class NotFoundError(AppException):
    status_code_default = status.HTTP_404_NOT_FOUND
    log_level = "info"

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        detail = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(detail, entity=entity, entity_id=entity_id, **log_context)


class ForbiddenError(AppException):
    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, action: str | None = None, **log_context: Any):
        detail = f"Not allowed to {action}" if action else "Access denied"
        super().__init__(detail, action=action, **log_context)


class ValidationError(AppException):
    """Rejected input (400)."""

    status_code_default = status.HTTP_400_BAD_REQUEST


class InvalidItemError(ValidationError):
    """Order line references a menu item that is unknown or not orderable."""

    def __init__(self, item_id: int, reason: str = "not available", **log_context: Any):
        self.item_id = item_id
        super().__init__(f"Menu item {item_id} is {reason}", item_id=item_id, **log_context)


class InvalidTransitionError(ValidationError):
    """Edge missing from the status graph of orders or payments."""

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move {entity} from '{from_status}' to '{to_status}'",
            entity=entity,
            from_status=from_status,
            to_status=to_status,
            **log_context,
        )


class ConflictError(AppException):
    """Lost compare-and-swap, duplicate key, or a restrict-delete reference (409)."""

    status_code_default = status.HTTP_409_CONFLICT


class UnavailableError(AppException):
    """Database or another backing service timed out; retry later (503)."""

    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    log_level = "error"

    def __init__(self, service: str, retry_after: int = 2, **log_context: Any):
        super().__init__(
            f"Service {service} temporarily unavailable",
            headers={"Retry-After": str(retry_after)},
            service=service,
            **log_context,
        )


class InternalError(AppException):
    log_level = "error"

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(detail, **log_context)


class OrderTotalMismatchError(InternalError):
    """Stored order total drifted from the sum of its lines."""

    def __init__(self, order_id: int, stored_cents: int, computed_cents: int, **log_context: Any):
        self.order_id = order_id
        self.stored_cents = stored_cents
        self.computed_cents = computed_cents
        super().__init__(
            f"Order {order_id} total does not match its items",
            order_id=order_id,
            stored_cents=stored_cents,
            computed_cents=computed_cents,
            **log_context,
        )
