"""
Huddle API - Notifications Service
Inbox operations scoped to the authenticated user
"""

from typing import Optional, Dict, Any, List, Union
import logging

import anyio

from app.core.config import settings
from app.core.auth import CurrentUser
from app.core.exceptions import StorageError
from app.services.notification_store import NotificationStore, notification_store
from app.services.notification_templates import href_for_row

logger = logging.getLogger(__name__)


class NotificationsService:
    """Service for notification inbox operations."""

    def __init__(self, store: NotificationStore):
        self.store = store

    async def list_notifications(
        self,
        user: CurrentUser,
        limit: int = settings.NOTIFICATIONS_PAGE_DEFAULT,
        cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        One page of the user's notifications, newest first.

        Returns:
            Dict with items, nextCursor (created_at of the last item when the
            page is full) and the unread count
        """
        limit = max(1, min(limit, settings.NOTIFICATIONS_PAGE_MAX))
        results: Dict[str, Any] = {}
        try:
            async with anyio.create_task_group() as tg:
                async def load_items():
                    results["items"] = await anyio.to_thread.run_sync(
                        lambda: self.store.list_for_user(user.id, limit, cursor)
                    )

                async def load_unread():
                    results["unread"] = await anyio.to_thread.run_sync(
                        lambda: self.store.count_unread(user.id)
                    )

                tg.start_soon(load_items)
                tg.start_soon(load_unread)
        except Exception as e:
            logger.error(f"Error listing notifications for {user.id}: {e}")
            raise StorageError("Failed to fetch notifications", operation="list")

        items = [{**row, "href": href_for_row(row)} for row in results["items"]]
        next_cursor = str(items[-1]["created_at"]) if len(items) == limit else None
        return {"items": items, "next_cursor": next_cursor, "unread": results["unread"]}

    async def unread_count(self, user: CurrentUser) -> int:
        try:
            return await anyio.to_thread.run_sync(lambda: self.store.count_unread(user.id))
        except Exception as e:
            logger.error(f"Error counting unread notifications for {user.id}: {e}")
            raise StorageError("Failed to count notifications", operation="count")

    async def mark_read(self, user: CurrentUser, ids: List[Union[str, int]]) -> int:
        """Mark the user's rows in ``ids`` read. Already-read rows still count."""
        ids = [str(i) for i in ids]
        try:
            return await anyio.to_thread.run_sync(lambda: self.store.mark_read(user.id, ids))
        except Exception as e:
            logger.error(f"Error marking notifications read for {user.id}: {e}")
            raise StorageError("Failed to mark read", operation="mark_read")

    async def mark_all_read(self, user: CurrentUser) -> int:
        try:
            return await anyio.to_thread.run_sync(lambda: self.store.mark_all_read(user.id))
        except Exception as e:
            logger.error(f"Error marking all notifications read for {user.id}: {e}")
            raise StorageError("Failed to mark all read", operation="mark_all_read")

    async def clear(self, user: CurrentUser) -> int:
        try:
            deleted = await anyio.to_thread.run_sync(lambda: self.store.clear(user.id))
        except Exception as e:
            logger.error(f"[clear-notifications] database error for {user.id}: {e}")
            raise StorageError("Failed to clear notifications", operation="clear")
        logger.info(f"Cleared {deleted} notifications for {user.id}")
        return deleted

    async def diagnose(self, user: CurrentUser) -> Dict[str, Any]:
        """
        Probe the fan-out path end to end for the caller.

        Inserts a DEBUG_PING row for the caller and deletes it again.
        ``ok`` is true when the insert succeeded.
        """
        checks: Dict[str, Any] = {
            "serviceKeyPresent": bool(settings.SUPABASE_SERVICE_ROLE_KEY),
            "authUserId": user.id,
        }
        result: Dict[str, Any] = {"ok": False, "checks": checks, "insertedId": None}

        try:
            await anyio.to_thread.run_sync(self.store.probe)
            checks["selectOk"], checks["selectError"] = True, None
        except Exception as e:
            checks["selectOk"], checks["selectError"] = False, str(e)

        test_row = {
            "user_id": user.id,
            "type": "task_update",
            "ref_id": None,
            "workspace_id": None,
            "title": "DEBUG_PING",
            "body": "debug",
            "is_read": False,
        }
        try:
            inserted = await anyio.to_thread.run_sync(lambda: self.store.insert(test_row))
            checks["insertOk"], checks["insertError"] = True, None
            result["insertedId"] = str(inserted["id"])
        except Exception as e:
            checks["insertOk"], checks["insertError"] = False, getattr(e, "message", None) or str(e)

        if result["insertedId"]:
            try:
                await anyio.to_thread.run_sync(lambda: self.store.delete(result["insertedId"]))
                checks["cleanupOk"], checks["cleanupError"] = True, None
            except Exception as e:
                checks["cleanupOk"], checks["cleanupError"] = False, str(e)

        result["ok"] = bool(result["insertedId"])
        if not result["ok"]:
            logger.warning(f"Fan-out diagnostics failed: {checks}")
        return result


notifications_service = NotificationsService(notification_store)
