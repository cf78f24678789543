"""
Huddle API - Schemas Package
Centralized exports for all Pydantic schemas
"""

# Common (Enums and Base Models)
from .common import (
    # Enums
    NotificationType,
    # Responses
    OkResponse,
)

# Notifications
from .notifications import (
    NotificationMeta,
    WorkspaceInviteMeta,
    WorkspaceRemovedMeta,
    WorkspaceMemberLeftMeta,
    MessageMeta,
    TaskCreatedMeta,
    TaskAssignedMeta,
    TaskUpdateMeta,
    META_MODELS,
    FanoutRequest,
    FanoutResponse,
    NotificationResponse,
    NotificationListResponse,
    MarkReadRequest,
    MarkReadResponse,
    ClearResponse,
    NotificationPayload,
)

__all__ = [
    # Enums
    "NotificationType",
    # Responses
    "OkResponse",
    # Template inputs
    "NotificationMeta",
    "WorkspaceInviteMeta",
    "WorkspaceRemovedMeta",
    "WorkspaceMemberLeftMeta",
    "MessageMeta",
    "TaskCreatedMeta",
    "TaskAssignedMeta",
    "TaskUpdateMeta",
    "META_MODELS",
    # Fan-out
    "FanoutRequest",
    "FanoutResponse",
    # Inbox
    "NotificationResponse",
    "NotificationListResponse",
    "MarkReadRequest",
    "MarkReadResponse",
    "ClearResponse",
    # Realtime
    "NotificationPayload",
]
