"""
Huddle API - Authentication & Dependencies
Handles JWT validation and user context
"""

import anyio
from typing import Optional
from fastapi import Depends, WebSocket
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from jose import jwt, JWTError
import logging

from app.core.supabase import supabase, SupabaseClient
from app.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Current authenticated user context."""
    id: str
    email: Optional[str] = None

    # Raw token, kept for calls that must run under the user's RLS context
    access_token: str


class AuthService:
    """Authentication service using Supabase Auth."""

    def __init__(self, supabase_client: SupabaseClient):
        self.supabase = supabase_client

    async def authenticate(self, token: Optional[str]) -> CurrentUser:
        """
        Validate a Supabase access token and return the user context.

        Args:
            token: Raw JWT issued by Supabase Auth

        Returns:
            CurrentUser for the token's subject
        """
        if not token:
            raise AuthenticationError("Missing authentication token")

        try:
            # Reject malformed tokens before the network round trip
            jwt.get_unverified_claims(token)

            # Verify token with Supabase (sync call wrapped in thread)
            user_response = await anyio.to_thread.run_sync(
                lambda: self.supabase.anon.auth.get_user(token)
            )

            if not user_response or not user_response.user:
                raise AuthenticationError("Invalid or expired token")

            supabase_user = user_response.user
            return CurrentUser(
                id=str(supabase_user.id),
                email=supabase_user.email,
                access_token=token
            )

        except AuthenticationError:
            raise
        except JWTError as e:
            logger.error(f"JWT validation error: {e}")
            raise AuthenticationError("Invalid token format")
        except Exception as e:
            logger.error(f"Authentication error: {e}")
            raise AuthenticationError("Authentication failed")


# Dependency instances
auth_service = AuthService(supabase)


# ==================== FastAPI Dependencies ====================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    """
    Dependency to get current authenticated user.

    Usage:
        @router.get("/items")
        async def list_items(user: CurrentUser = Depends(get_current_user)):
            ...
    """
    token = credentials.credentials if credentials else None
    return await auth_service.authenticate(token)


async def get_websocket_user(websocket: WebSocket) -> Optional[CurrentUser]:
    """
    Websocket variant: the token travels as ``?token=``.
    Returns None instead of raising so the handler can close with 1008.
    """
    try:
        return await auth_service.authenticate(websocket.query_params.get("token"))
    except AuthenticationError:
        return None
