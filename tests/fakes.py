"""In-memory stand-ins for the Supabase table and realtime client."""

from datetime import datetime, timezone
import threading
from typing import Any, Dict, List, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class FakeNotificationStore:
    """
    Mirrors NotificationStore over a list of rows.

    ``fail_for`` makes inserts for those users raise, ``hang_for`` blocks
    them until ``release`` is set, ``fail_lookup`` breaks the dedup query
    and ``fail_reads`` breaks listing.
    """

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self.fail_for: set = set()
        self.hang_for: set = set()
        self.fail_lookup = False
        self.fail_reads = False
        self.fail_probe = False
        self.release = threading.Event()
        self.lookups: List[Dict[str, Any]] = []
        self.deleted_ids: List[str] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def seed(self, user_id: str, title: str, created_at: datetime, **fields) -> Dict[str, Any]:
        with self._lock:
            row = {
                "id": self._next_id,
                "user_id": user_id,
                "type": fields.pop("type", "task_assigned"),
                "title": title,
                "body": None,
                "is_read": False,
                "created_at": created_at,
                "workspace_id": None,
                "project_id": None,
                "task_id": None,
                "thread_id": None,
                "message_id": None,
                "ref_id": None,
                "meta": {},
                **fields,
            }
            self._next_id += 1
            self.rows.append(row)
            return row

    def for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return [row for row in self.rows if row["user_id"] == user_id]

    @staticmethod
    def _out(row: Dict[str, Any]) -> Dict[str, Any]:
        return {**row, "created_at": row["created_at"].isoformat()}

    # ==================== NotificationStore interface ====================

    def find_recent_duplicate(self, user_id: str, title: str, since: datetime) -> Optional[Dict[str, Any]]:
        self.lookups.append({"user_id": user_id, "title": title, "since": since})
        if self.fail_lookup:
            raise RuntimeError("lookup failed")
        for row in self.rows:
            if row["user_id"] == user_id and row["title"] == title and row["created_at"] > since:
                return {"id": row["id"], "created_at": row["created_at"].isoformat()}
        return None

    def insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        user_id = row["user_id"]
        if user_id in self.hang_for:
            self.release.wait(5)
            raise RuntimeError(f"gave up on {user_id}")
        if user_id in self.fail_for:
            raise RuntimeError(f"insert rejected for {user_id}")
        fields = {k: v for k, v in row.items() if k not in ("user_id", "title")}
        return self._out(self.seed(user_id, row["title"], _utcnow(), **fields))

    def delete(self, notification_id: str) -> None:
        self.deleted_ids.append(str(notification_id))
        self.rows = [row for row in self.rows if str(row["id"]) != str(notification_id)]

    def probe(self) -> None:
        if self.fail_probe:
            raise RuntimeError("table missing")

    def list_for_user(self, user_id: str, limit: int, cursor: Optional[str] = None) -> List[Dict[str, Any]]:
        if self.fail_reads:
            raise RuntimeError("read failed")
        rows = sorted(self.for_user(user_id), key=lambda r: r["created_at"], reverse=True)
        if cursor:
            rows = [row for row in rows if row["created_at"] < _as_datetime(cursor)]
        return [self._out(row) for row in rows[:limit]]

    def count_unread(self, user_id: str) -> int:
        if self.fail_reads:
            raise RuntimeError("read failed")
        return sum(1 for row in self.for_user(user_id) if not row["is_read"])

    def mark_read(self, user_id: str, ids: List[str]) -> int:
        matched = [row for row in self.for_user(user_id) if str(row["id"]) in ids]
        for row in matched:
            row["is_read"] = True
        return len(matched)

    def mark_all_read(self, user_id: str) -> int:
        matched = [row for row in self.for_user(user_id) if not row["is_read"]]
        for row in matched:
            row["is_read"] = True
        return len(matched)

    def clear(self, user_id: str) -> int:
        before = len(self.rows)
        self.rows = [row for row in self.rows if row["user_id"] != user_id]
        return before - len(self.rows)


class FakeChannel:
    def __init__(self, name: str, client: "FakeRealtimeClient"):
        self.name = name
        self.client = client
        self.bindings: List[Dict[str, Any]] = []
        self.subscribed = False

    def on_postgres_changes(self, event, callback, table="*", schema="public", filter=None):
        self.bindings.append({
            "event": event,
            "callback": callback,
            "table": table,
            "schema": schema,
            "filter": filter,
        })
        return self

    async def subscribe(self, callback=None):
        if self.name in self.client.fail_join:
            raise RuntimeError(f"join refused for {self.name}")
        gate = self.client.gates.get(self.name)
        if gate is not None:
            joining, release = gate
            joining.set()
            await release.wait()
        self.subscribed = True
        return self

    def emit(self, record: Dict[str, Any]) -> None:
        """Deliver an INSERT event shaped like the realtime client's payload."""
        payload = {
            "data": {"record": record, "type": "INSERT", "schema": "public", "table": "notifications"},
            "ids": [1],
        }
        for binding in self.bindings:
            binding["callback"](payload)


class FakeRealtimeClient:
    def __init__(self):
        self.channels: List[FakeChannel] = []
        self.removed: List[FakeChannel] = []
        # channel name -> (joining, release) events that hold a join open
        self.gates: Dict[str, tuple] = {}
        self.fail_join: set = set()

    def channel(self, name: str) -> FakeChannel:
        channel = FakeChannel(name, self)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        channel.subscribed = False
        self.removed.append(channel)
