"""
Identity gateway seam.

Authentication happens upstream; requests reach us with the identity
provider's user id in the ``X-User-Id`` header.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

USER_ID_HEADER = "X-User-Id"

async def optional_user_id(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)
) -> Optional[str]:
    """Return the caller's user id, or None for anonymous requests."""
    if x_user_id is None:
        return None
    x_user_id = x_user_id.strip()
    return x_user_id or None

async def current_user_id(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)
) -> str:
    """Return the caller's user id or reject the request with 401."""
    user_id = await optional_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return user_id
