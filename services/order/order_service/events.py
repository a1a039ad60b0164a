"""
Order Service — event definitions
"""

from datetime import datetime

from pydantic import BaseModel

ORDER_EVENTS_CHANNEL = "order_events"


class OrderCreated(BaseModel):
    """An order was accepted in `pending` state."""

    order_id: str
    customer_id: str
    item_count: int
    total_amount: float
    timestamp: datetime
