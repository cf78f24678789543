"""
Huddle API - Common Schemas
Base models and enums shared across the application
"""

from pydantic import BaseModel
from enum import Enum


# ==================== Enums ====================

class NotificationType(str, Enum):
    WORKSPACE_INVITE = "workspace_invite"
    WORKSPACE_REMOVED = "workspace_removed"
    WORKSPACE_MEMBER_LEFT = "workspace_member_left"
    MESSAGE_NEW = "message_new"
    MESSAGE_MENTION = "message_mention"
    TASK_CREATED = "task_created"
    TASK_ASSIGNED = "task_assigned"
    TASK_UPDATE = "task_update"


# ==================== Base Response Models ====================

class OkResponse(BaseModel):
    """Acknowledgement for mutations without a payload."""
    ok: bool = True

