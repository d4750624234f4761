"""
Authentication utilities for FastAPI routes.

Most functions are anonymous (keyed by session id); claiming requires a
signed-in user.
"""

import logging

from fastapi import Header, HTTPException
from pydantic import BaseModel

from sidehive_functions.db import get_service_client

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """Authenticated user info from Supabase JWT."""
    id: str
    email: str | None
    access_token: str


def _validate_token(access_token: str) -> AuthenticatedUser:
    try:
        user_response = get_service_client().auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Auth validation failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = user_response.user
    return AuthenticatedUser(id=user.id, email=user.email, access_token=access_token)


async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """
    Validate Supabase JWT and extract user info.

    Expects Authorization header: "Bearer <access_token>"
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization format")

    return _validate_token(authorization[7:])


async def get_optional_user(authorization: str = Header(None)) -> AuthenticatedUser | None:
    """Signed-in user when a valid bearer token is present, else None."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    try:
        return _validate_token(authorization[7:])
    except HTTPException:
        # The anon key also travels as a bearer token
        return None
