"""
Huddle API - Notifications Routes
Fan-out, inbox and realtime stream
"""

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse
from typing import Optional
import logging

import anyio

from app.core.auth import get_current_user, get_websocket_user, CurrentUser
from app.core.exceptions import DeliveryError
from app.core.config import settings
from app.schemas import (
    FanoutRequest,
    FanoutResponse,
    NotificationListResponse,
    MarkReadRequest,
    MarkReadResponse,
    ClearResponse,
    OkResponse,
)
from app.services.fanout_service import FanoutService, fanout_service
from app.services.notifications_service import NotificationsService, notifications_service
from app.services.realtime_bridge import RealtimeBridge, realtime_bridge

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ==================== Dependencies ====================

def get_fanout_service() -> FanoutService:
    return fanout_service


def get_notifications_service() -> NotificationsService:
    return notifications_service


def get_realtime_bridge() -> RealtimeBridge:
    return realtime_bridge


# ==================== Fan-out ====================

@router.post("/fanout", response_model=FanoutResponse, response_model_exclude_none=True)
async def fanout_notification(
    request: FanoutRequest,
    user: CurrentUser = Depends(get_current_user),
    service: FanoutService = Depends(get_fanout_service)
):
    """
    Create one notification per recipient for a single event.

    - Falsy and duplicate recipients are dropped; an empty list is a no-op.
    - `meta.dedupeKey` suppresses a repeat of the same title for the same
      recipient within the dedup window.
    - Partial failures are reported in `errors` with status 200; a
      non-empty list with no notification inserted returns 500.
    """
    report = await service.fanout(request, user)
    if report.is_total_failure:
        raise DeliveryError(report.recipients, report.errors)
    return report.as_payload()


@router.get("/fanout/debug")
async def fanout_debug(
    user: CurrentUser = Depends(get_current_user),
    service: NotificationsService = Depends(get_notifications_service)
):
    """
    Check that the fan-out path can write for the caller.

    Inserts a DEBUG_PING notification and deletes it again.
    """
    result = await service.diagnose(user)
    return JSONResponse(
        result,
        status_code=status.HTTP_200_OK if result["ok"] else status.HTTP_500_INTERNAL_SERVER_ERROR
    )


# ==================== Inbox ====================

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(settings.NOTIFICATIONS_PAGE_DEFAULT, ge=1),
    cursor: Optional[str] = Query(None, description="created_at of the last item seen"),
    user: CurrentUser = Depends(get_current_user),
    service: NotificationsService = Depends(get_notifications_service)
):
    """
    List the caller's notifications, newest first.

    `limit` is capped at the configured page maximum. `nextCursor` is set
    when the page is full; pass it back as `cursor` for the next page.
    """
    return await service.list_notifications(user, limit=limit, cursor=cursor)


@router.get("/unread-count")
async def get_unread_count(
    user: CurrentUser = Depends(get_current_user),
    service: NotificationsService = Depends(get_notifications_service)
):
    """Get count of unread notifications."""
    count = await service.unread_count(user)
    return {"success": True, "unread_count": count}


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    request: MarkReadRequest,
    user: CurrentUser = Depends(get_current_user),
    service: NotificationsService = Depends(get_notifications_service)
):
    """Mark the caller's notifications in `ids` as read."""
    updated = await service.mark_read(user, request.ids)
    return {"updated": updated}


@router.post("/mark-all-read", response_model=OkResponse)
async def mark_all_read(
    user: CurrentUser = Depends(get_current_user),
    service: NotificationsService = Depends(get_notifications_service)
):
    """Mark all of the caller's notifications as read."""
    await service.mark_all_read(user)
    return {"ok": True}


@router.post("/clear", response_model=ClearResponse)
async def clear_notifications(
    user: CurrentUser = Depends(get_current_user),
    service: NotificationsService = Depends(get_notifications_service)
):
    """Delete all of the caller's notifications."""
    deleted = await service.clear(user)
    return {"ok": True, "deleted": deleted}


# ==================== Realtime ====================

@router.websocket("/ws")
async def notifications_websocket(
    websocket: WebSocket,
    user: Optional[CurrentUser] = Depends(get_websocket_user),
    bridge: RealtimeBridge = Depends(get_realtime_bridge)
):
    """
    Stream notifications inserted for the authenticated user.

    Frames: `{"type": "notification", "data": {...}}`. A `{"type": "ping"}`
    frame is answered with `{"type": "pong"}`.
    """
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async with bridge.listen(user.id) as stream:
        async with anyio.create_task_group() as tg:

            async def forward():
                async for notification in stream:
                    await websocket.send_json({"type": "notification", "data": notification.model_dump()})

            async def receive():
                try:
                    while True:
                        try:
                            message = await websocket.receive_json()
                        except ValueError:
                            continue
                        if isinstance(message, dict) and message.get("type") == "ping":
                            await websocket.send_json({"type": "pong"})
                except WebSocketDisconnect:
                    logger.info(f"Notification websocket closed for {user.id}")
                tg.cancel_scope.cancel()

            tg.start_soon(forward)
            tg.start_soon(receive)
