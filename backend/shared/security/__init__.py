"""
Security module: Authentication and rate limiting.
"""

from shared.security.auth import (
    sign_jwt,
    verify_jwt,
    get_bearer_token,
    current_user_context,
    display_name_hint,
)
from shared.security.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    PICKUP_VERIFY_LIMIT,
)

__all__ = [
    # auth
    "sign_jwt",
    "verify_jwt",
    "get_bearer_token",
    "current_user_context",
    "display_name_hint",
    # rate_limit
    "limiter",
    "rate_limit_exceeded_handler",
    "PICKUP_VERIFY_LIMIT",
]
