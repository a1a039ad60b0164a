# tests/conftest.py
from __future__ import annotations

import json
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis

from catalog_service.config import Settings as CatalogSettings
from catalog_service.db import Database as CatalogDatabase
from catalog_service.events import PURCHASE_EVENTS_CHANNEL
from catalog_service.main import create_app as create_catalog_app
from catalog_service.orchestrator import PurchaseOrchestrator
from catalog_service.order_gateway import OrderGateway
from catalog_service.products import ProductStore
from catalog_service.schemas import Requester
from order_service.config import Settings as OrderSettings
from order_service.db import Database as OrderDatabase
from order_service.main import create_app as create_order_app

ORDER_SERVICE_URL = "http://order-service"


# ==========================
# Redis (in-process fake)
# ==========================
@pytest_asyncio.fixture
async def redis() -> AsyncGenerator[fake_aioredis.FakeRedis, None]:
    client = fake_aioredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


async def _read_events(pubsub, attempts: int = 20) -> list[dict]:
    events = []
    for _ in range(attempts):
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.05)
        if message is not None:
            events.append(json.loads(message["data"]))
    return events


@pytest_asyncio.fixture
async def purchase_events(redis):
    """Callable returning every event published on purchase_events so far."""
    pubsub = redis.pubsub()
    await pubsub.subscribe(PURCHASE_EVENTS_CHANNEL)

    async def read() -> list[dict]:
        return await _read_events(pubsub)

    try:
        yield read
    finally:
        await pubsub.unsubscribe(PURCHASE_EVENTS_CHANNEL)
        await pubsub.aclose()


@pytest_asyncio.fixture
async def order_events(redis):
    pubsub = redis.pubsub()
    await pubsub.subscribe("order_events")

    async def read() -> list[dict]:
        return await _read_events(pubsub)

    try:
        yield read
    finally:
        await pubsub.unsubscribe("order_events")
        await pubsub.aclose()


# ==========================
# Order service
# ==========================
@pytest_asyncio.fixture
async def order_db(tmp_path) -> AsyncGenerator[OrderDatabase, None]:
    db = OrderDatabase(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await db.create_schema()
    try:
        yield db
    finally:
        await db.dispose()


@pytest.fixture
def order_app(order_db, redis):
    app = create_order_app(OrderSettings(DATABASE_URL=order_db.url))
    app.state.db = order_db
    app.state.redis = redis
    return app


@pytest_asyncio.fixture
async def order_client(order_app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=order_app)
    async with httpx.AsyncClient(transport=transport, base_url=ORDER_SERVICE_URL) as client:
        yield client


# ==========================
# Catalog service
# ==========================
@pytest_asyncio.fixture
async def catalog_db(tmp_path) -> AsyncGenerator[CatalogDatabase, None]:
    db = CatalogDatabase(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await db.create_schema()
    try:
        yield db
    finally:
        await db.dispose()


@pytest.fixture
def products(catalog_db) -> ProductStore:
    return ProductStore(catalog_db)


@pytest_asyncio.fixture
async def p1(products):
    """The P1 product: 5 in stock at 10.00."""
    return await products.add_product(
        id="P1",
        name="Widget",
        description="A widget",
        price=10.0,
        category="Other",
        stock=5,
        image_url="https://img.example/widget.png",
        merchant_id="m-1",
        merchant_name="Acme",
    )


@pytest_asyncio.fixture
async def p2(products):
    return await products.add_product(
        id="P2",
        name="Gadget",
        price=2.5,
        category="Electronics",
        stock=3,
        merchant_id="m-2",
        merchant_name="Globex",
    )


@pytest.fixture
def gateway(order_client) -> OrderGateway:
    return OrderGateway(order_client, ORDER_SERVICE_URL)


@pytest.fixture
def orchestrator(products, gateway, redis) -> PurchaseOrchestrator:
    return PurchaseOrchestrator(products, gateway, redis)


@pytest.fixture
def requester() -> Requester:
    return Requester(id="user-1", email="alice@example.com")


@pytest_asyncio.fixture
async def mock_gateway():
    """Build an OrderGateway whose HTTP calls are answered by `handler`."""
    clients: list[httpx.AsyncClient] = []

    def build(handler) -> OrderGateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return OrderGateway(client, ORDER_SERVICE_URL)

    try:
        yield build
    finally:
        for client in clients:
            await client.aclose()


@pytest.fixture
def catalog_app(products, orchestrator, catalog_db):
    settings = CatalogSettings(DATABASE_URL=catalog_db.url, ORDER_SERVICE_URL=ORDER_SERVICE_URL)
    app = create_catalog_app(settings)
    app.state.products = products
    app.state.orchestrator = orchestrator
    return app


@pytest_asyncio.fixture
async def catalog_client(catalog_app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=catalog_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://catalog") as client:
        yield client


AUTH_HEADERS = {"X-User-Id": "user-1", "X-User-Email": "alice@example.com"}


@pytest.fixture
def auth_headers() -> dict:
    return dict(AUTH_HEADERS)
