"""
Catalog Service — purchase saga events

Published on the `purchase_events` Redis channel once a saga has finished.
`PurchaseFailed` means stock could not be fully restored and needs manual
reconciliation.
"""

from datetime import datetime

from pydantic import BaseModel

PURCHASE_EVENTS_CHANNEL = "purchase_events"


class PurchaseEvent(BaseModel):
    event_type: str
    requester_id: str
    order_id: str | None = None
    error: str | None = None
    saga_log: list[dict]
    compensation_failures: list[dict] = []
    timestamp: datetime


class PurchaseCompleted(PurchaseEvent):
    """Stock reserved and the order accepted."""

    event_type: str = "PurchaseCompleted"


class PurchaseCompensated(PurchaseEvent):
    """A later step failed and every reservation was restored."""

    event_type: str = "PurchaseCompensated"


class PurchaseFailed(PurchaseEvent):
    """A later step failed and at least one reservation could not be restored."""

    event_type: str = "PurchaseFailed"
