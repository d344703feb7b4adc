"""
Rate limiting using slowapi.

Pickup verification is limited per caller so the 10,000-code space cannot
be enumerated from a single client.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


def identity_or_address(request: Request) -> str:
    """
    Rate limit key: the bearer token when present, otherwise the client IP.

    Keying on the token keeps several counter devices behind one NAT from
    sharing a bucket.
    """
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        return f"token:{token[-24:]}"
    return get_remote_address(request)


limiter = Limiter(key_func=identity_or_address)

PICKUP_VERIFY_LIMIT = settings.pickup_verify_rate_limit


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return a JSON 429 with retry information."""
    logger.warning(
        "Rate limit exceeded",
        path=request.url.path,
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Try again later.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": "60"},
    )
