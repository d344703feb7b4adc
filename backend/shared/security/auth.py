"""
Authentication utilities.

Tokens are issued by the external identity provider (HS256 with a shared
secret). The subject claim is the opaque identity id; `name` / `full_name`
may carry a display name hint used on first sign-in.
"""

from __future__ import annotations

import hashlib
import time
from typing import Any

import jwt
from fastapi import Header, HTTPException, status

from shared.config.settings import settings
from shared.config.logging import get_logger, audit_auth_event

logger = get_logger(__name__)

MAX_SUBJECT_LENGTH = 64


def _token_fingerprint(token: str) -> str:
    """Short hash of a token for log correlation."""
    return hashlib.sha256(token.encode()).hexdigest()[:8]


# =============================================================================
# JWT Functions
# =============================================================================


def sign_jwt(
    identity_id: str,
    name: str | None = None,
    ttl_seconds: int | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Sign a token the way the identity provider does.

    Used by the CLI, local development and tests. Production tokens come
    from the provider itself.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_dev_token_expire_minutes * 60

    now = int(time.time())
    data: dict[str, Any] = {
        "sub": identity_id,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    if settings.jwt_issuer:
        data["iss"] = settings.jwt_issuer
    if name:
        data["name"] = name
    if extra_claims:
        data.update(extra_claims)
    return jwt.encode(data, settings.jwt_secret, algorithm="HS256")


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode a bearer token.

    Returns:
        Decoded claims. `sub` is guaranteed to be a non-empty string.

    Raises:
        HTTPException(401): If the token is invalid, expired or has no subject.
    """
    options = {"require": ["exp", "sub"]}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        audit_auth_event("TOKEN_EXPIRED", success=False, fingerprint=_token_fingerprint(token))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        # Internal reason goes to the log, never to the client
        audit_auth_event(
            "TOKEN_REJECTED",
            success=False,
            reason=str(e),
            fingerprint=_token_fingerprint(token),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.strip() or len(sub) > MAX_SUBJECT_LENGTH:
        audit_auth_event("TOKEN_REJECTED", success=False, reason="malformed subject")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: malformed subject claim",
        )
    return payload


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract bearer token from Authorization header.

    Raises:
        HTTPException(401): If header is missing or malformed.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format. Expected: Bearer <token>",
        )
    return token.strip()


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """
    FastAPI dependency returning the verified token claims.

    Usage:
        @router.get("/orders")
        def list_orders(ctx = Depends(current_user_context)):
            identity_id = ctx["sub"]

    Role is NOT taken from the token; it is resolved from the profile table
    by the role resolver on every authorization decision.
    """
    token = get_bearer_token(authorization)
    return verify_jwt(token)


def display_name_hint(ctx: dict[str, Any]) -> str | None:
    """Display name carried in token metadata, if any."""
    for claim in ("full_name", "name"):
        value = ctx.get(claim)
        if isinstance(value, str) and value.strip():
            return value.strip()
    metadata = ctx.get("user_metadata")
    if isinstance(metadata, dict):
        value = metadata.get("full_name") or metadata.get("name")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
