"""Caller identity dependency for FastAPI."""
from typing import Annotated

from fastapi import Header, HTTPException, status

from learnsync.utils.validation import validate_id


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Get the id of the calling learner from the ``X-User-Id`` header.

    Raises:
        HTTPException: 401 if the header is missing.
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return validate_id("userId", x_user_id)
