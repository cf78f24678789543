"""
Huddle API - Delivery Report
Aggregates per-recipient fan-out outcomes into one response
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RecipientOutcome:
    """What happened to one recipient."""
    recipient: str
    status: DeliveryStatus
    notification_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class DeliveryReport:
    """
    Collects outcomes as they arrive.

    ``ids`` keeps arrival order, not recipient order: recipients run
    concurrently and finish in any order.
    """
    recipients: List[str] = field(default_factory=list)
    ids: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    def record(self, outcome: RecipientOutcome) -> None:
        if outcome.status == DeliveryStatus.DELIVERED:
            self.ids.append(str(outcome.notification_id))
        elif outcome.status == DeliveryStatus.SKIPPED:
            self.skipped.append(outcome.recipient)
        else:
            self.errors[outcome.recipient] = outcome.error or "Unknown error"

    @property
    def is_total_failure(self) -> bool:
        """Nothing inserted for a non-empty recipient list, dedup skips included."""
        return bool(self.recipients) and not self.ids

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ids": list(self.ids)}
        if self.errors:
            payload["errors"] = dict(self.errors)
        return payload
