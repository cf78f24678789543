"""
Huddle API - Services Module
Business logic layer for notification delivery
"""

from app.services.notification_store import NotificationStore, notification_store
from app.services.fanout_service import FanoutService, fanout_service
from app.services.notifications_service import NotificationsService, notifications_service
from app.services.realtime_bridge import RealtimeBridge, realtime_bridge
from app.services.delivery_report import DeliveryReport, DeliveryStatus, RecipientOutcome

__all__ = [
    "NotificationStore",
    "notification_store",
    "FanoutService",
    "fanout_service",
    "NotificationsService",
    "notifications_service",
    "RealtimeBridge",
    "realtime_bridge",
    "DeliveryReport",
    "DeliveryStatus",
    "RecipientOutcome",
]
