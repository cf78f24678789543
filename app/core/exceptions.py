"""
Huddle API - Custom Exceptions
"""

from typing import Optional, Dict, Any, List
from fastapi import HTTPException, status


class HuddleException(HTTPException):
    """Base exception for Huddle API."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.extra = extra or {}


class ValidationError(HuddleException):
    """Validation error."""

    def __init__(self, detail: str, field: str = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR",
            extra={"field": field} if field else {}
        )


class AuthenticationError(HuddleException):
    """Missing or invalid session."""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class StorageError(HuddleException):
    """Storage operation error."""

    def __init__(self, detail: str, operation: str = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="STORAGE_ERROR",
            extra={"operation": operation}
        )


class DeliveryError(HuddleException):
    """Every recipient of a fan-out failed."""

    def __init__(self, recipients: List[str], errors: Dict[str, str]):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="No notifications inserted",
            error_code="DELIVERY_FAILED",
            extra={
                "recipients": recipients,
                "errors": errors
            }
        )
