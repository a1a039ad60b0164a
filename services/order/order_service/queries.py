"""
Order Service — query handlers (read side)
"""

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from .db import orders


def _iso(value) -> str | None:
    return value.isoformat() if isinstance(value, datetime) else value


def serialize_order(row) -> dict:
    return {
        "id": row["id"],
        "customerId": row["customer_id"],
        "customerName": row["customer_name"],
        "customerEmail": row["customer_email"],
        "items": row["items"],
        "totalAmount": float(row["total_amount"]),
        "status": row["status"],
        "shippingAddress": row["shipping_address"],
        "paymentMethod": row["payment_method"],
        "createdAt": _iso(row["created_at"]),
        "updatedAt": _iso(row["updated_at"]),
    }


async def get_order(session: AsyncSession, order_id: str) -> dict | None:
    result = await session.execute(sa.select(orders).where(orders.c.id == order_id))
    row = result.mappings().first()
    if not row:
        return None
    return serialize_order(row)


async def list_orders(
    session: AsyncSession,
    status: str | None = None,
    customer_id: str | None = None,
) -> list[dict]:
    """Orders newest first, optionally filtered by status and/or customer."""
    stmt = sa.select(orders).order_by(orders.c.created_at.desc())
    if status:
        stmt = stmt.where(orders.c.status == status)
    if customer_id:
        stmt = stmt.where(orders.c.customer_id == customer_id)
    result = await session.execute(stmt)
    return [serialize_order(row) for row in result.mappings().all()]


async def get_order_status(session: AsyncSession, order_id: str) -> dict | None:
    result = await session.execute(
        sa.select(orders.c.id, orders.c.status, orders.c.updated_at).where(
            orders.c.id == order_id
        )
    )
    row = result.fetchone()
    if not row:
        return None
    return {"orderId": row.id, "status": row.status, "updatedAt": _iso(row.updated_at)}


async def merchant_orders(session: AsyncSession, merchant_id: str) -> dict:
    """
    Orders holding at least one line sold by `merchant_id`, newest first.

    Revenue and units count that merchant's own lines only; the other lines
    of a mixed-merchant order are left out of the stats.
    """
    matching = [
        order
        for order in await list_orders(session)
        if any(item.get("merchantId") == merchant_id for item in order["items"])
    ]

    revenue = 0.0
    items_sold = 0
    for order in matching:
        for item in order["items"]:
            if item.get("merchantId") == merchant_id:
                revenue += item["price"] * item["quantity"]
                items_sold += item["quantity"]

    return {
        "orders": matching,
        "stats": {
            "totalOrders": len(matching),
            "totalRevenue": round(revenue, 2),
            "itemsSold": items_sold,
        },
    }
