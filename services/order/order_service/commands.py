"""
Order Service — command handlers (write side)

Orders are created in `pending` state. Creation is the operation the
catalog's purchase saga depends on: a non-2xx answer here makes the catalog
put the reserved stock back.
"""

import json
import logging
from datetime import datetime, timezone
from uuid import uuid4

import redis.asyncio as aioredis
import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from .db import orders
from .events import ORDER_EVENTS_CHANNEL, OrderCreated
from .queries import serialize_order

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = [
    "customerId",
    "customerName",
    "customerEmail",
    "items (array)",
    "shippingAddress",
]
REQUIRED_ITEM_FIELDS = ["productId", "productName", "quantity", "price"]


class OrderValidationError(ValueError):
    def __init__(self, message: str, required: list[str]) -> None:
        super().__init__(message)
        self.message = message
        self.required = required


class OrderItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str = Field(min_length=1)
    product_name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)
    image_url: str | None = None
    merchant_id: str | None = None
    merchant_name: str | None = None


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    customer_id: str
    customer_name: str
    customer_email: str
    items: list[OrderItem]
    shipping_address: str
    payment_method: str | None = None


def parse_create_order(payload) -> CreateOrderRequest:
    if not isinstance(payload, dict):
        raise OrderValidationError("Missing required fields", REQUIRED_FIELDS)
    items = payload.get("items")
    required = ("customerId", "customerName", "customerEmail", "shippingAddress")
    if (
        any(not payload.get(name) for name in required)
        or not isinstance(items, list)
        or not items
    ):
        raise OrderValidationError("Missing required fields", REQUIRED_FIELDS)

    parsed_items = []
    for item in items:
        if not isinstance(item, dict):
            raise OrderValidationError("Invalid item structure", REQUIRED_ITEM_FIELDS)
        try:
            parsed_items.append(OrderItem.model_validate(item))
        except ValueError as exc:
            raise OrderValidationError(
                "Invalid item structure", REQUIRED_ITEM_FIELDS
            ) from exc

    try:
        return CreateOrderRequest.model_validate({**payload, "items": parsed_items})
    except ValueError as exc:
        raise OrderValidationError("Missing required fields", REQUIRED_FIELDS) from exc


def order_total(items: list[OrderItem]) -> float:
    return round(sum(item.price * item.quantity for item in items), 2)


async def create_order(
    session: AsyncSession,
    redis: aioredis.Redis | None,
    req: CreateOrderRequest,
) -> dict:
    """
    Create an order.

    1. Compute the total from the line items
    2. Insert the order row (status `pending`)
    3. Publish OrderCreated on Redis Pub/Sub
    """
    now = datetime.now(timezone.utc)
    row = {
        "id": uuid4().hex,
        "customer_id": req.customer_id,
        "customer_name": req.customer_name,
        "customer_email": req.customer_email,
        "items": [item.model_dump(mode="json", by_alias=True) for item in req.items],
        "total_amount": order_total(req.items),
        "status": "pending",
        "shipping_address": req.shipping_address,
        "payment_method": req.payment_method,
        "created_at": now,
        "updated_at": now,
    }
    await session.execute(sa.insert(orders).values(**row))
    await session.commit()

    logger.info(
        "Order created (id=%s, customer=%s, total=%s)",
        row["id"],
        req.customer_id,
        row["total_amount"],
    )

    if redis is not None:
        event = OrderCreated(
            order_id=row["id"],
            customer_id=req.customer_id,
            item_count=len(req.items),
            total_amount=row["total_amount"],
            timestamp=now,
        )
        try:
            await redis.publish(
                ORDER_EVENTS_CHANNEL,
                json.dumps(
                    {"event_type": "OrderCreated", "data": event.model_dump(mode="json")}
                ),
            )
        except RedisError:
            logger.exception("Failed to publish OrderCreated for %s", row["id"])

    return serialize_order(row)
