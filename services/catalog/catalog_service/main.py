"""
Catalog Service — FastAPI entry point

Owns the product database and runs the purchase saga:

  ┌────────┐  POST /api/purchase  ┌─────────────────┐  POST /api/orders  ┌───────────────┐
  │ Client │ ───────────────────▶ │ Catalog Service │ ─────────────────▶ │ Order Service │
  └────────┘                      │  (stock owner)  │                    └───────────────┘
                                  └───────┬─────────┘
                                          │ purchase_events
                                          ▼
                                       Redis Pub/Sub
"""

import logging
from contextlib import asynccontextmanager

import httpx
import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .auth import can_purchase, get_requester
from .config import Settings, configure_logging, get_settings
from .db import Database
from .errors import PurchaseError, PurchaseValidationError
from .order_gateway import OrderGateway
from .orchestrator import PurchaseOrchestrator
from .products import ProductStore
from .schemas import REQUIRED_FIELDS, Requester

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.LOG_LEVEL)

    database = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    await database.create_schema()
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    http_client = httpx.AsyncClient(timeout=settings.ORDER_SERVICE_TIMEOUT)

    app.state.products = ProductStore(database)
    app.state.orchestrator = PurchaseOrchestrator(
        app.state.products,
        OrderGateway(http_client, settings.ORDER_SERVICE_URL),
        redis,
        atomic_reservation=settings.ATOMIC_RESERVATION,
    )
    logger.info("Catalog service started (orders at %s)", settings.ORDER_SERVICE_URL)
    yield
    await http_client.aclose()
    await redis.aclose()
    await database.dispose()


def get_products(request: Request) -> ProductStore:
    return request.app.state.products


def get_orchestrator(request: Request) -> PurchaseOrchestrator:
    return request.app.state.orchestrator


async def purchase_error_handler(request: Request, exc: PurchaseError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(title="Catalog Service", lifespan=lifespan)
    app.state.settings = settings or get_settings()
    app.add_exception_handler(PurchaseError, purchase_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)

    # ── Purchase (saga entry point) ─────────────────

    @app.post("/api/purchase", status_code=201)
    async def purchase(
        request: Request,
        requester: Requester = Depends(get_requester),
        orchestrator: PurchaseOrchestrator = Depends(get_orchestrator),
    ):
        """Reserve stock and create the order for the authenticated caller."""
        if not can_purchase(requester, request.app.state.settings.purchase_roles):
            raise HTTPException(status_code=403, detail="Insufficient permissions")

        try:
            body = await request.json()
        except ValueError as exc:
            raise PurchaseValidationError("Missing required fields", REQUIRED_FIELDS) from exc

        try:
            confirmation = await orchestrator.submit_purchase(body, requester)
        except PurchaseError:
            raise
        except Exception:
            logger.exception("Error processing purchase for %s", requester.id)
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Failed to process purchase"},
            )

        return JSONResponse(
            status_code=201,
            content={
                "success": True,
                "message": "Purchase completed successfully",
                "data": confirmation.to_json(),
            },
        )

    # ── Product queries ─────────────────────────────

    @app.get("/api/products")
    async def list_products(
        category: str | None = None,
        merchant_id: str | None = Query(default=None, alias="merchantId"),
        products: ProductStore = Depends(get_products),
    ):
        items = await products.list_products(category=category, merchant_id=merchant_id)
        return {
            "success": True,
            "count": len(items),
            "data": [product.to_json() for product in items],
        }

    @app.get("/api/products/{product_id}")
    async def get_product(product_id: str, products: ProductStore = Depends(get_products)):
        product = await products.find_by_id(product_id)
        if product is None:
            return JSONResponse(
                status_code=404,
                content={"success": False, "error": "Product not found", "id": product_id},
            )
        return {"success": True, "data": product.to_json()}

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "catalog-service"}

    return app


app = create_app()
