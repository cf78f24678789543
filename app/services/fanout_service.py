"""
Huddle API - Fan-out Service
Turns one event into one notification row per recipient
"""

from typing import Optional, Dict, Any, Callable
from datetime import datetime, timedelta, timezone
import logging

import anyio

from app.core.config import settings
from app.core.auth import CurrentUser
from app.schemas.notifications import FanoutRequest
from app.services.delivery_report import DeliveryReport, DeliveryStatus, RecipientOutcome
from app.services.notification_store import NotificationStore, notification_store
from app.services.notification_templates import parse_meta, render_title, render_body

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FanoutService:
    """
    Per-recipient delivery with partial-failure semantics.

    Each recipient is an independent unit: a dedup skip, an insert error or
    a timeout for one of them never affects the others, and nothing is
    rolled back.
    """

    def __init__(
        self,
        store: NotificationStore,
        dedup_window: timedelta = timedelta(seconds=settings.NOTIFICATION_DEDUP_WINDOW_SECONDS),
        max_concurrency: int = settings.FANOUT_MAX_CONCURRENCY,
        recipient_timeout: float = settings.FANOUT_RECIPIENT_TIMEOUT,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.store = store
        self.dedup_window = dedup_window
        self.max_concurrency = max_concurrency
        self.recipient_timeout = recipient_timeout
        self.clock = clock

    async def fanout(self, request: FanoutRequest, actor: CurrentUser) -> DeliveryReport:
        """
        Deliver ``request`` to every distinct recipient.

        Args:
            request: Validated fan-out payload
            actor: Authenticated caller; used when ``actorId`` is omitted

        Returns:
            DeliveryReport with ids, per-recipient errors and skips
        """
        recipients = request.normalized_recipients()
        report = DeliveryReport(recipients=recipients)
        if not recipients:
            return report

        meta = parse_meta(request.type, request.meta)
        title = render_title(request.type, meta)
        dedupe = bool(meta.dedupe_key)

        template = {
            "type": request.type.value,
            "title": title,
            "body": render_body(request.type, meta),
            "workspace_id": request.workspace_id,
            "project_id": request.project_id,
            "task_id": request.task_id,
            "thread_id": request.thread_id,
            "message_id": request.message_id,
            "ref_id": request.ref_id,
            "meta": request.meta,
            "is_read": False,
        }

        limiter = anyio.CapacityLimiter(self.max_concurrency)

        async def deliver(recipient: str) -> None:
            async with limiter:
                report.record(await self._deliver_one(recipient, template, dedupe))

        async with anyio.create_task_group() as tg:
            for recipient in recipients:
                tg.start_soon(deliver, recipient)

        logger.info(
            f"Fan-out {request.type.value} by {request.actor_id or actor.id}: "
            f"{len(report.ids)} delivered, {len(report.skipped)} skipped, {len(report.errors)} failed"
        )
        if report.errors:
            logger.warning(f"Fan-out {request.type.value} failures: {report.errors}")
        return report

    async def _deliver_one(
        self,
        recipient: str,
        template: Dict[str, Any],
        dedupe: bool
    ) -> RecipientOutcome:
        try:
            with anyio.fail_after(self.recipient_timeout):
                if dedupe and await self._is_duplicate(recipient, template["title"]):
                    return RecipientOutcome(recipient, DeliveryStatus.SKIPPED)

                row = {**template, "user_id": recipient}
                inserted = await anyio.to_thread.run_sync(
                    lambda: self.store.insert(row),
                    abandon_on_cancel=True
                )
                return RecipientOutcome(recipient, DeliveryStatus.DELIVERED, notification_id=str(inserted["id"]))
        except TimeoutError:
            return RecipientOutcome(
                recipient,
                DeliveryStatus.FAILED,
                error=f"Timed out after {self.recipient_timeout}s"
            )
        except Exception as e:
            logger.error(f"Error inserting notification for {recipient}: {e}")
            return RecipientOutcome(recipient, DeliveryStatus.FAILED, error=getattr(e, "message", None) or str(e))

    async def _is_duplicate(self, recipient: str, title: str) -> bool:
        """
        Same recipient, same exact title, inside the trailing window.
        Lookup errors count as "not a duplicate".
        """
        since = self.clock() - self.dedup_window
        try:
            existing = await anyio.to_thread.run_sync(
                lambda: self.store.find_recent_duplicate(recipient, title, since),
                abandon_on_cancel=True
            )
        except Exception as e:
            logger.warning(f"Dedup lookup failed for {recipient}, inserting anyway: {e}")
            return False
        return existing is not None


fanout_service = FanoutService(notification_store)
