"""
Huddle API - Realtime Bridge
Pushes newly inserted notification rows to the owner's listeners
"""

from contextlib import asynccontextmanager
from enum import Enum
from typing import Optional, Dict, Any, List, Callable, Awaitable, AsyncIterator
import logging

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.supabase import supabase
from app.schemas.notifications import NotificationPayload

logger = logging.getLogger(__name__)

Listener = Callable[[NotificationPayload], None]
Unsubscribe = Callable[[], Awaitable[None]]


class SubscriptionState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBED = "subscribed"


def _extract_row(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Inserted record from a postgres_changes event, whatever the client version."""
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("record"), dict):
        return data["record"]
    for key in ("new", "record"):
        if isinstance(payload.get(key), dict):
            return payload[key]
    return None


class NotificationSubscription:
    """
    One realtime channel for INSERTs on one user's notification rows.

    unsubscribed -> subscribed -> unsubscribed. Events arriving after
    ``stop()`` are ignored.
    """

    def __init__(
        self,
        client,
        user_id: str,
        on_receive: Listener,
        table: str = settings.NOTIFICATIONS_TABLE,
        schema: str = "public"
    ):
        self.client = client
        self.user_id = user_id
        self.on_receive = on_receive
        self.table = table
        self.schema = schema
        self.state = SubscriptionState.UNSUBSCRIBED
        self._channel = None

    @property
    def channel_name(self) -> str:
        return f"notifications-table-{self.user_id}"

    async def start(self) -> None:
        """
        Join the channel. A ``stop()`` issued while the join is in flight
        wins: the channel is removed and no event is forwarded.
        """
        if self.state == SubscriptionState.SUBSCRIBED:
            return
        channel = self.client.channel(self.channel_name)
        channel.on_postgres_changes(
            "INSERT",
            schema=self.schema,
            table=self.table,
            filter=f"user_id=eq.{self.user_id}",
            callback=self._handle_insert
        )
        self._channel = channel
        self.state = SubscriptionState.SUBSCRIBED
        try:
            await channel.subscribe()
        except BaseException:
            with anyio.CancelScope(shield=True):
                await self.stop()
            raise
        if self.state == SubscriptionState.SUBSCRIBED:
            logger.info(f"Realtime subscription active for user {self.user_id}")

    async def stop(self) -> None:
        if self.state == SubscriptionState.UNSUBSCRIBED:
            return
        self.state = SubscriptionState.UNSUBSCRIBED
        channel, self._channel = self._channel, None
        await self.client.remove_channel(channel)
        logger.info(f"Realtime subscription removed for user {self.user_id}")

    def _handle_insert(self, payload: Dict[str, Any]) -> None:
        if self.state != SubscriptionState.SUBSCRIBED:
            return

        row = _extract_row(payload)
        if not row or row.get("id") is None:
            logger.error(f"Invalid realtime notification received for {self.user_id}: {payload}")
            return

        try:
            notification = NotificationPayload.model_validate(row)
        except PydanticValidationError as e:
            logger.error(f"Unreadable realtime notification for {self.user_id}: {e}")
            return
        self.on_receive(notification)


class RealtimeBridge:
    """
    At most one channel per user id, shared by any number of listeners.

    The channel opens with the first listener and is removed when the last
    one is released.
    """

    def __init__(
        self,
        client_provider: Callable[[], Awaitable[Any]],
        buffer_size: int = settings.REALTIME_BUFFER_SIZE
    ):
        self.client_provider = client_provider
        self.buffer_size = buffer_size
        self._subscriptions: Dict[str, NotificationSubscription] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = anyio.Lock()

    def is_subscribed(self, user_id: str) -> bool:
        return user_id in self._subscriptions

    def listener_count(self, user_id: str) -> int:
        return len(self._listeners.get(user_id, []))

    async def subscribe(self, user_id: str, listener: Listener) -> Unsubscribe:
        """
        Register ``listener`` for ``user_id``.

        Returns:
            Coroutine function that releases the listener; calling it more
            than once is a no-op
        """
        client = await self.client_provider()
        async with self._lock:
            subscription = self._subscriptions.get(user_id)
            joining = subscription is None
            if joining:
                subscription = NotificationSubscription(
                    client,
                    user_id,
                    lambda payload: self._dispatch(user_id, payload)
                )
                self._subscriptions[user_id] = subscription
            self._listeners.setdefault(user_id, []).append(listener)

        # The join runs outside the lock so a slow channel only delays its own user
        if joining:
            try:
                await subscription.start()
            except BaseException:
                with anyio.CancelScope(shield=True):
                    await self._abandon(user_id, subscription, listener)
                raise

        released = False

        async def unsubscribe() -> None:
            nonlocal released
            if released:
                return
            released = True
            await self._release(user_id, listener)

        return unsubscribe

    async def _release(self, user_id: str, listener: Listener) -> None:
        async with self._lock:
            listeners = self._listeners.get(user_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if listeners:
                return
            self._listeners.pop(user_id, None)
            subscription = self._subscriptions.pop(user_id, None)
            if subscription is not None:
                await subscription.stop()

    async def _abandon(self, user_id: str, subscription: NotificationSubscription, listener: Listener) -> None:
        """Undo a registration whose channel never joined; the next subscriber retries."""
        logger.error(f"Realtime subscription failed for user {user_id}")
        async with self._lock:
            listeners = self._listeners.get(user_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(user_id, None)
            if self._subscriptions.get(user_id) is subscription:
                del self._subscriptions[user_id]

    def _dispatch(self, user_id: str, payload: NotificationPayload) -> None:
        for listener in list(self._listeners.get(user_id, [])):
            try:
                listener(payload)
            except Exception as e:
                logger.error(f"Realtime listener for {user_id} failed: {e}")

    @asynccontextmanager
    async def listen(self, user_id: str) -> AsyncIterator[MemoryObjectReceiveStream]:
        """
        Lazy, unbounded stream of notifications inserted for ``user_id``.

        Usage:
            async with realtime_bridge.listen(user.id) as stream:
                async for notification in stream:
                    ...

        Leaving the block, by any path, releases the listener. Payloads are
        dropped with a warning while the consumer's buffer is full.
        """
        send_stream, receive_stream = anyio.create_memory_object_stream(self.buffer_size)

        def push(payload: NotificationPayload) -> None:
            try:
                send_stream.send_nowait(payload)
            except anyio.WouldBlock:
                logger.warning(f"Realtime buffer full for {user_id}, dropping notification {payload.id}")

        unsubscribe = await self.subscribe(user_id, push)
        try:
            yield receive_stream
        finally:
            with anyio.CancelScope(shield=True):
                await unsubscribe()
            send_stream.close()
            receive_stream.close()

    async def close(self) -> None:
        """Remove every channel; used at shutdown."""
        async with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
            self._listeners.clear()
            for subscription in subscriptions:
                try:
                    await subscription.stop()
                except Exception as e:
                    logger.error(f"Error removing realtime channel for {subscription.user_id}: {e}")


realtime_bridge = RealtimeBridge(supabase.realtime)
