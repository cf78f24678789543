"""
Huddle API - Core Module
"""

from app.core.config import settings, get_settings
from app.core.supabase import supabase, get_supabase, SupabaseClient
from app.core.auth import (
    auth_service,
    get_current_user,
    get_websocket_user,
    CurrentUser
)
from app.core.exceptions import (
    HuddleException,
    ValidationError,
    AuthenticationError,
    StorageError,
    DeliveryError
)

__all__ = [
    # Config
    "settings",
    "get_settings",

    # Supabase
    "supabase",
    "get_supabase",
    "SupabaseClient",

    # Auth
    "auth_service",
    "get_current_user",
    "get_websocket_user",
    "CurrentUser",

    # Exceptions
    "HuddleException",
    "ValidationError",
    "AuthenticationError",
    "StorageError",
    "DeliveryError",
]
