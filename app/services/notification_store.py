"""
Huddle API - Notification Store
Row-level access to the notifications table through the Supabase query builder
"""

from typing import Optional, Dict, Any, List
from datetime import datetime
import logging

from app.core.config import settings
from app.core.supabase import supabase, SupabaseClient
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class NotificationStore:
    """
    Blocking storage calls for notification rows.

    Every method scopes by ``user_id`` explicitly; the service-role client
    bypasses RLS, so the caller's identity is the only filter.
    Services run these in worker threads.
    """

    def __init__(self, client: SupabaseClient, table_name: str = settings.NOTIFICATIONS_TABLE):
        self.client = client
        self.table_name = table_name

    def _table(self):
        return self.client.table(self.table_name)

    # ==================== Fan-out ====================

    def find_recent_duplicate(
        self,
        user_id: str,
        title: str,
        since: datetime
    ) -> Optional[Dict[str, Any]]:
        """Newest row for ``user_id`` with exactly ``title`` created after ``since``."""
        result = (
            self._table()
            .select("id, created_at")
            .eq("user_id", user_id)
            .eq("title", title)
            .gt("created_at", since.isoformat())
            .limit(1)
            .execute()
        )
        rows = result.data or []
        return rows[0] if rows else None

    def insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        result = self._table().insert(row).execute()
        rows = result.data or []
        if not rows or rows[0].get("id") is None:
            raise StorageError("Insert returned no row", operation="insert")
        return rows[0]

    def delete(self, notification_id: str) -> None:
        self._table().delete().eq("id", notification_id).execute()

    def probe(self) -> None:
        """Cheap select used by the diagnostics endpoint."""
        self._table().select("id").limit(1).execute()

    # ==================== Inbox ====================

    def list_for_user(
        self,
        user_id: str,
        limit: int,
        cursor: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Newest first; ``cursor`` returns rows strictly older than it."""
        query = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
        )
        if cursor:
            query = query.lt("created_at", cursor)
        return query.execute().data or []

    def count_unread(self, user_id: str) -> int:
        result = (
            self._table()
            .select("id", count="exact", head=True)
            .eq("user_id", user_id)
            .eq("is_read", False)
            .execute()
        )
        return result.count or 0

    def mark_read(self, user_id: str, ids: List[str]) -> int:
        result = (
            self._table()
            .update({"is_read": True})
            .eq("user_id", user_id)
            .in_("id", ids)
            .execute()
        )
        return len(result.data or [])

    def mark_all_read(self, user_id: str) -> int:
        result = (
            self._table()
            .update({"is_read": True})
            .eq("user_id", user_id)
            .eq("is_read", False)
            .execute()
        )
        return len(result.data or [])

    def clear(self, user_id: str) -> int:
        """Hard delete of every row owned by ``user_id``."""
        result = self._table().delete().eq("user_id", user_id).execute()
        return len(result.data or [])


notification_store = NotificationStore(supabase)
