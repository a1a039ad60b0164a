"""
Order Service — FastAPI entry point

Stores orders in their own database. `POST /api/orders` is called by the
catalog service once stock has been reserved; anything other than 201 makes
the catalog undo its reservation.
"""

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from . import commands, queries
from .config import Settings, configure_logging, get_settings
from .db import Database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.LOG_LEVEL)

    app.state.db = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    await app.state.db.create_schema()
    app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    yield
    await app.state.redis.aclose()
    await app.state.db.dispose()


def _not_found(order_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": "Order not found", "id": order_id},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(title="Order Service", lifespan=lifespan)
    app.state.settings = settings or get_settings()

    # ── Commands (write side) ───────────────────────

    @app.post("/api/orders", status_code=201)
    async def cmd_create_order(request: Request):
        """Create an order in `pending` state."""
        try:
            body = await request.json()
        except ValueError:
            body = None

        try:
            req = commands.parse_create_order(body)
        except commands.OrderValidationError as exc:
            logger.info("Rejected order: %s", exc.message)
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": exc.message, "required": exc.required},
            )

        try:
            async with request.app.state.db.session() as session:
                order = await commands.create_order(session, request.app.state.redis, req)
        except Exception:
            logger.exception("Error creating order for %s", req.customer_id)
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Failed to create order"},
            )

        return JSONResponse(
            status_code=201,
            content={
                "success": True,
                "message": "Order created successfully",
                "data": order,
            },
        )

    # ── Queries (read side) ─────────────────────────

    @app.get("/api/orders")
    async def query_list_orders(
        request: Request,
        status: str | None = None,
        customer_id: str | None = Query(default=None, alias="customerId"),
    ):
        async with request.app.state.db.session() as session:
            orders = await queries.list_orders(session, status=status, customer_id=customer_id)
        return {"success": True, "count": len(orders), "data": orders}

    @app.get("/api/orders/merchant/{merchant_id}")
    async def query_merchant_orders(merchant_id: str, request: Request):
        """Orders containing a merchant's products, with that merchant's sales stats."""
        async with request.app.state.db.session() as session:
            result = await queries.merchant_orders(session, merchant_id)
        return {"success": True, "count": len(result["orders"]), "data": result}

    @app.get("/api/orders/{order_id}")
    async def query_get_order(order_id: str, request: Request):
        async with request.app.state.db.session() as session:
            order = await queries.get_order(session, order_id)
        if not order:
            return _not_found(order_id)
        return {"success": True, "data": order}

    @app.get("/api/orders/{order_id}/status")
    async def query_order_status(order_id: str, request: Request):
        async with request.app.state.db.session() as session:
            status = await queries.get_order_status(session, order_id)
        if not status:
            return _not_found(order_id)
        return {"success": True, "data": status}

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "order-service"}

    return app


app = create_app()
