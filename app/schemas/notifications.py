"""
Huddle API - Notification Schemas
Fan-out requests, per-type template inputs and inbox models
"""

from typing import Optional, List, Dict, Any, Union, Type
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import NotificationType


# ==================== Template Inputs ====================

class NotificationMeta(BaseModel):
    """
    Fields shared by every notification type.

    Unknown keys are kept so the stored ``meta`` column receives
    exactly what the caller sent.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    subtitle: Optional[str] = None
    dedupe_key: Optional[Any] = Field(None, alias="dedupeKey")
    workspace_name: Optional[str] = None


class WorkspaceInviteMeta(NotificationMeta):
    inviter_name: Optional[str] = None


class WorkspaceRemovedMeta(NotificationMeta):
    pass


class WorkspaceMemberLeftMeta(NotificationMeta):
    leaver_name: Optional[str] = None


class MessageMeta(NotificationMeta):
    actor_name: Optional[str] = None
    snippet: Optional[str] = None


class TaskCreatedMeta(NotificationMeta):
    task_title: Optional[str] = None
    assignee_is_actor: Optional[bool] = None
    assignee_name: Optional[str] = None
    project_name: Optional[str] = None


class TaskAssignedMeta(NotificationMeta):
    task_title: Optional[str] = None
    project_name: Optional[str] = None


class TaskUpdateMeta(NotificationMeta):
    pass


META_MODELS: Dict[NotificationType, Type[NotificationMeta]] = {
    NotificationType.WORKSPACE_INVITE: WorkspaceInviteMeta,
    NotificationType.WORKSPACE_REMOVED: WorkspaceRemovedMeta,
    NotificationType.WORKSPACE_MEMBER_LEFT: WorkspaceMemberLeftMeta,
    NotificationType.MESSAGE_NEW: MessageMeta,
    NotificationType.MESSAGE_MENTION: MessageMeta,
    NotificationType.TASK_CREATED: TaskCreatedMeta,
    NotificationType.TASK_ASSIGNED: TaskAssignedMeta,
    NotificationType.TASK_UPDATE: TaskUpdateMeta,
}


# ==================== Fan-out ====================

class FanoutRequest(BaseModel):
    """One logical event to deliver to several users."""
    model_config = ConfigDict(populate_by_name=True)

    type: NotificationType
    actor_id: Optional[str] = Field(None, alias="actorId")
    recipients: List[Optional[Union[str, int]]]
    workspace_id: Optional[str] = Field(None, alias="workspaceId")
    project_id: Optional[str] = Field(None, alias="projectId")
    task_id: Optional[str] = Field(None, alias="taskId")
    thread_id: Optional[str] = Field(None, alias="threadId")
    message_id: Optional[str] = Field(None, alias="messageId")
    meta: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("meta", mode="before")
    @classmethod
    def _meta_default(cls, value):
        return {} if value is None else value

    def normalized_recipients(self) -> List[str]:
        """Drop falsy entries and duplicates, keeping first occurrence order."""
        return list(dict.fromkeys(str(r) for r in self.recipients if r))

    @property
    def ref_id(self) -> Optional[str]:
        """First non-null of task, thread, message, project."""
        for candidate in (self.task_id, self.thread_id, self.message_id, self.project_id):
            if candidate:
                return candidate
        return None


class FanoutResponse(BaseModel):
    ids: List[str]
    errors: Optional[Dict[str, str]] = None


# ==================== Inbox ====================

class NotificationResponse(BaseModel):
    """Single notification as stored."""
    model_config = ConfigDict(extra="ignore")

    id: str
    type: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    is_read: bool = False
    created_at: datetime
    workspace_id: Optional[str] = None
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    thread_id: Optional[str] = None
    message_id: Optional[str] = None
    ref_id: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    href: Optional[str] = None

    @field_validator(
        "id", "workspace_id", "project_id", "task_id", "thread_id", "message_id", "ref_id",
        mode="before"
    )
    @classmethod
    def _stringify_ids(cls, value):
        return None if value is None else str(value)


class NotificationListResponse(BaseModel):
    """Notification page with unread count and cursor."""
    model_config = ConfigDict(populate_by_name=True)

    items: List[NotificationResponse]
    next_cursor: Optional[str] = Field(None, alias="nextCursor")
    unread: int


class MarkReadRequest(BaseModel):
    ids: List[Union[str, int]] = Field(..., min_length=1, max_length=100)


class MarkReadResponse(BaseModel):
    updated: int


class ClearResponse(BaseModel):
    ok: bool = True
    deleted: int


# ==================== Realtime ====================

class NotificationPayload(BaseModel):
    """Row pushed to a subscriber when a notification is inserted."""
    model_config = ConfigDict(extra="ignore")

    id: str
    type: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    created_at: Optional[str] = None
    workspace_id: Optional[str] = None
    ref_id: Optional[str] = None
    thread_id: Optional[str] = None
    message_id: Optional[str] = None
    task_id: Optional[str] = None
    project_id: Optional[str] = None

    @field_validator(
        "id", "workspace_id", "ref_id", "thread_id", "message_id", "task_id", "project_id",
        mode="before"
    )
    @classmethod
    def _stringify_ids(cls, value):
        return None if value is None else str(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _stringify_timestamp(cls, value):
        if isinstance(value, datetime):
            return value.isoformat()
        return value
