"""
Huddle API - Notification Templates
Title, body and deep-link rendering per notification type
"""

from typing import Optional, Dict, Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError
from app.schemas.common import NotificationType
from app.schemas.notifications import (
    META_MODELS,
    NotificationMeta,
    WorkspaceInviteMeta,
    WorkspaceRemovedMeta,
    WorkspaceMemberLeftMeta,
    MessageMeta,
    TaskCreatedMeta,
    TaskAssignedMeta,
    TaskUpdateMeta,
)

T = TypeVar("T")


def _or(value: Optional[T], default: T) -> T:
    # Only None falls back; an empty string is rendered as is
    return default if value is None else value


def parse_meta(type_: NotificationType, meta: Optional[Dict[str, Any]]) -> NotificationMeta:
    """Validate a raw meta map against the model registered for ``type_``."""
    type_ = NotificationType(type_)
    model = META_MODELS[type_]
    try:
        return model.model_validate(meta or {})
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(f"Invalid meta for {type_.value}: {first.get('msg')}", field=f"meta.{field}")


def render_title(type_: NotificationType, meta: NotificationMeta) -> str:
    """Headline shown in the inbox. Pure function of type and meta."""
    if isinstance(meta, WorkspaceInviteMeta):
        return f"You were invited to {_or(meta.workspace_name, 'a workspace')}"
    if isinstance(meta, WorkspaceRemovedMeta):
        return f"You were removed from {_or(meta.workspace_name, 'a workspace')}"
    if isinstance(meta, WorkspaceMemberLeftMeta):
        return f"{_or(meta.leaver_name, 'A member')} left {_or(meta.workspace_name, 'workspace')}"
    if isinstance(meta, MessageMeta):
        actor = _or(meta.actor_name, 'Someone')
        if type_ == NotificationType.MESSAGE_MENTION:
            return f"{actor} mentioned you"
        return f"{actor} sent a new message"
    if isinstance(meta, TaskCreatedMeta):
        task = _or(meta.task_title, 'a task')
        if meta.assignee_is_actor:
            return f"You created '{task}' (assigned to you)"
        if meta.assignee_name:
            return f"Task '{task}' created (assigned to {meta.assignee_name})"
        return f"Task '{task}' created"
    if isinstance(meta, TaskAssignedMeta):
        return f"You were assigned '{_or(meta.task_title, 'a task')}'"
    if isinstance(meta, TaskUpdateMeta):
        return "Notification"
    raise TypeError(f"No title template for {type(meta).__name__}")


def render_subtitle(type_: NotificationType, meta: NotificationMeta) -> Optional[str]:
    """Secondary line derived from the template inputs, or None."""
    if isinstance(meta, MessageMeta):
        return str(meta.snippet) if meta.snippet else None
    if isinstance(meta, WorkspaceInviteMeta):
        return f"Invited by {meta.inviter_name}" if meta.inviter_name else None
    if isinstance(meta, (TaskCreatedMeta, TaskAssignedMeta)):
        return meta.project_name or meta.workspace_name or None
    return meta.workspace_name or None


def render_body(type_: NotificationType, meta: NotificationMeta) -> Optional[str]:
    """An explicit, non-blank ``subtitle`` wins over the derived one."""
    if isinstance(meta.subtitle, str) and meta.subtitle.strip():
        return meta.subtitle
    return render_subtitle(type_, meta)


def render_href(
    type_: NotificationType,
    workspace_id: Optional[str] = None,
    project_id: Optional[str] = None,
    task_id: Optional[str] = None,
    thread_id: Optional[str] = None,
    message_id: Optional[str] = None
) -> Optional[str]:
    """Client route a notification opens, or None when there is none."""
    if type_ in (
        NotificationType.WORKSPACE_INVITE,
        NotificationType.WORKSPACE_REMOVED,
        NotificationType.WORKSPACE_MEMBER_LEFT,
    ):
        return f"/workspaces/{workspace_id}" if workspace_id else "/workspaces"

    if type_ in (NotificationType.MESSAGE_NEW, NotificationType.MESSAGE_MENTION):
        if workspace_id and thread_id:
            href = f"/workspaces/{workspace_id}/messages?thread={thread_id}"
            if message_id:
                href += f"&m={message_id}"
            return href
        if workspace_id:
            return f"/workspaces/{workspace_id}/messages"
        return "/workspaces"

    if type_ in (NotificationType.TASK_CREATED, NotificationType.TASK_ASSIGNED):
        return f"/projects/{project_id}/tasks" if project_id else "/projects"

    return None


def href_for_row(row: Dict[str, Any]) -> Optional[str]:
    """Deep link for a stored row; unknown or legacy types have none."""
    try:
        type_ = NotificationType(row.get("type"))
    except ValueError:
        return None

    thread_id = row.get("thread_id")
    if thread_id is None and type_ in (NotificationType.MESSAGE_NEW, NotificationType.MESSAGE_MENTION):
        thread_id = row.get("ref_id")

    return render_href(
        type_,
        workspace_id=row.get("workspace_id"),
        project_id=row.get("project_id"),
        task_id=row.get("task_id") or row.get("ref_id"),
        thread_id=thread_id,
        message_id=row.get("message_id"),
    )
