"""
Utilities module: Exceptions, validators, schemas.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    ForbiddenError,
    ValidationError,
    InvalidItemError,
    InvalidTransitionError,
    ConflictError,
    UnavailableError,
    InternalError,
    OrderTotalMismatchError,
)
from shared.utils.validators import (
    validate_image_url,
    validate_quantity,
    is_well_formed_pickup_code,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "AppException",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "InvalidItemError",
    "InvalidTransitionError",
    "ConflictError",
    "UnavailableError",
    "InternalError",
    "OrderTotalMismatchError",
    # validators
    "validate_image_url",
    "validate_quantity",
    "is_well_formed_pickup_code",
    # schemas
    "ErrorResponse",
]
