"""
Authentication for FastAPI routes.

Every /api route depends on get_current_user; the returned access token is
forwarded to Supabase so row level security scopes each query to the chef.
"""

import logging

from fastapi import Header, HTTPException
from pydantic import BaseModel

from chefdesk.db.client import get_service_client

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """The chef behind a request, from their Supabase JWT."""

    id: str
    email: str | None = None
    access_token: str


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        raise HTTPException(status_code=401, detail="Invalid authorization format")
    return token


async def get_current_user(authorization: str | None = Header(None)) -> AuthenticatedUser:
    """
    Validate the Supabase JWT and return the user.

    Expects Authorization header: "Bearer <access_token>"
    """
    access_token = _bearer_token(authorization)

    try:
        user_response = get_service_client().auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Auth validation failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = user_response.user
    return AuthenticatedUser(id=user.id, email=user.email, access_token=access_token)
