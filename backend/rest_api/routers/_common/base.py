"""
Helpers shared by the routers.
"""

from typing import Any

from fastapi import HTTPException, status


def get_identity(ctx: dict[str, Any]) -> str:
    """Identity id (the `sub` claim) of the authenticated caller."""
    identity_id = ctx.get("sub")
    if not identity_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject claim",
        )
    return identity_id
