"""Request dependencies shared by endpoints."""

import uuid

from fastapi import Header, HTTPException, status

from app.core.constants import USER_ID_HEADER


async def get_current_user_id(
    user_id: uuid.UUID | None = Header(None, alias=USER_ID_HEADER),
) -> uuid.UUID:
    """
    Acting user, as identified by the caller. Authentication happens in front of
    this service; endpoints pass the id on explicitly to every service call.
    """
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {USER_ID_HEADER} header",
        )
    return user_id
