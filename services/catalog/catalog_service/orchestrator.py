"""
Catalog Service — Purchase Orchestrator

Short saga over two services with no shared transaction:

  ┌──────────────────────────────────────────────────────────────┐
  │  1. For each item, in request order:                          │
  │       read product → check stock → write decremented stock    │
  │       └─ failure → put back what this call already took       │
  │  2. Ask the Order Service to create the order                 │
  │       ├─ 2xx    → done                                        │
  │       └─ other  → add every reserved quantity back            │
  │                   (compensating transaction)                  │
  └──────────────────────────────────────────────────────────────┘

Known gaps, kept on purpose:
  - The default reservation is read-check-write. Two concurrent purchases
    of the same product can both pass the check and oversell it.
    `atomic_reservation=True` switches to a conditional UPDATE instead.
  - Duplicate product ids in one request are reserved line by line, so the
    same product is decremented once per line.
  - Nothing is idempotent: the same request submitted twice creates two
    orders and takes stock twice.
  - A crash or cancellation mid-saga leaves earlier reservations in place.
"""

import logging
from datetime import datetime, timezone

import httpx
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .errors import (
    CompensationError,
    InsufficientStockError,
    OrderCreationError,
    ProductNotFoundError,
)
from .events import (
    PURCHASE_EVENTS_CHANNEL,
    PurchaseCompensated,
    PurchaseCompleted,
    PurchaseEvent,
    PurchaseFailed,
)
from .order_gateway import OrderGateway
from .products import ProductStore
from .schemas import (
    OrderConfirmation,
    PurchaseItem,
    PurchaseRequest,
    Requester,
    ReservationLine,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PurchaseOrchestrator:
    def __init__(
        self,
        products: ProductStore,
        orders: OrderGateway,
        redis: aioredis.Redis | None = None,
        atomic_reservation: bool = False,
    ) -> None:
        self.products = products
        self.orders = orders
        self.redis = redis
        self.atomic_reservation = atomic_reservation

    async def submit_purchase(
        self,
        request: PurchaseRequest | dict,
        requester: Requester,
    ) -> OrderConfirmation:
        """
        Reserve stock for every item, then create the order.

        Raises a `PurchaseError` subclass on every failure path. Stock taken
        by this call is put back before the error leaves this method;
        restores that fail are logged and published, never raised.
        """
        if not isinstance(request, PurchaseRequest):
            request = PurchaseRequest.from_payload(request)

        saga_log: list[dict] = []
        logger.info(
            "Processing purchase request for %s (%d item(s))",
            requester.id,
            len(request.items),
        )

        # ── Phase 1: reserve stock ──────────────────
        lines: list[ReservationLine] = []
        try:
            for item in request.items:
                lines.append(await self._reserve(item, saga_log))
        except Exception as exc:
            logger.warning("Purchase aborted for %s: %s", requester.id, exc)
            if lines:
                failures = await self._release(lines, saga_log)
                await self._publish_outcome(requester, saga_log, failures, error=str(exc))
            raise

        logger.info("Stock reserved for %s (%d line(s))", requester.id, len(lines))

        # ── Phase 2: create the order ───────────────
        payload = self._build_order_payload(request, requester, lines)
        entry = self._log_step(saga_log, "CreateOrder")
        try:
            response = await self.orders.create_order(payload)
            status, body = response.status, response.body
        except httpx.HTTPError as exc:
            status, body = None, {"error": str(exc) or exc.__class__.__name__}
        except Exception as exc:
            # closed client, bad ORDER_SERVICE_URL, ...: stock must still be put back
            logger.exception("Unexpected error calling the order service for %s", requester.id)
            status, body = None, {"error": str(exc) or exc.__class__.__name__}

        if status is None or not 200 <= status < 300:
            entry["status"] = "FAILED"
            entry["error"] = body
            failures = await self._compensate(lines, saga_log)
            logger.error(
                "Order creation failed for %s (status=%s), stock rolled back: %s",
                requester.id,
                status,
                body,
            )
            await self._publish_outcome(
                requester, saga_log, failures, error="Failed to create order"
            )
            raise OrderCreationError(status, body, failures)

        entry["status"] = "COMPLETED"
        order = body.get("data", body)
        order_id = order.get("id") if isinstance(order, dict) else None
        logger.info(
            "Purchase completed for %s (order=%s, total=%s)",
            requester.id,
            order_id,
            order.get("totalAmount") if isinstance(order, dict) else None,
        )
        await self._publish(
            PurchaseCompleted(
                requester_id=requester.id,
                order_id=order_id,
                saga_log=saga_log,
                timestamp=_now(),
            )
        )
        return OrderConfirmation(order=order)

    # ── Steps ───────────────────────────────────────

    async def _reserve(self, item: PurchaseItem, saga_log: list[dict]) -> ReservationLine:
        entry = self._log_step(saga_log, "ReserveStock", item.product_id)
        try:
            product = await self.products.find_by_id(item.product_id)
            if product is None:
                raise ProductNotFoundError(item.product_id)
            if product.stock < item.quantity:
                raise InsufficientStockError(
                    product.id, product.name, product.stock, item.quantity
                )

            if self.atomic_reservation:
                new_stock = await self.products.decrement_stock_if_available(
                    product.id, item.quantity
                )
                if new_stock is None:
                    current = await self.products.find_by_id(product.id)
                    if current is None:
                        raise ProductNotFoundError(product.id)
                    raise InsufficientStockError(
                        product.id, product.name, current.stock, item.quantity
                    )
                previous_stock = new_stock + item.quantity
            else:
                previous_stock = product.stock
                new_stock = previous_stock - item.quantity
                await self.products.update_stock(product.id, new_stock)
        except Exception as exc:
            entry["status"] = "FAILED"
            entry["error"] = str(exc)
            raise

        entry["status"] = "COMPLETED"
        return ReservationLine(
            product_id=product.id,
            product_name=product.name,
            quantity=item.quantity,
            unit_price=product.price,
            image_url=product.image_url,
            merchant_id=product.merchant_id,
            merchant_name=product.merchant_name,
            previous_stock=previous_stock,
            new_stock=new_stock,
        )

    async def _release(
        self, lines: list[ReservationLine], saga_log: list[dict]
    ) -> list[CompensationError]:
        """Undo a partial reservation by writing the recorded stock back, newest first."""
        failures = []
        for line in reversed(lines):
            entry = self._log_step(saga_log, "RestoreStock (COMPENSATING)", line.product_id)
            try:
                if self.atomic_reservation:
                    await self._add_back(line)
                else:
                    await self.products.update_stock(line.product_id, line.previous_stock)
            except Exception as exc:
                failures.append(self._compensation_failed(entry, line, exc))
            else:
                entry["status"] = "COMPLETED"
        return failures

    async def _compensate(
        self, lines: list[ReservationLine], saga_log: list[dict]
    ) -> list[CompensationError]:
        """Add every reserved quantity back on top of the current stock."""
        failures = []
        for line in lines:
            entry = self._log_step(saga_log, "RestoreStock (COMPENSATING)", line.product_id)
            try:
                await self._add_back(line)
            except Exception as exc:
                failures.append(self._compensation_failed(entry, line, exc))
            else:
                entry["status"] = "COMPLETED"
        return failures

    async def _add_back(self, line: ReservationLine) -> None:
        if self.atomic_reservation:
            restored = await self.products.increment_stock(line.product_id, line.quantity)
            if restored is None:
                raise ProductNotFoundError(line.product_id)
            return
        product = await self.products.find_by_id(line.product_id)
        if product is None:
            raise ProductNotFoundError(line.product_id)
        await self.products.update_stock(line.product_id, product.stock + line.quantity)

    def _compensation_failed(
        self, entry: dict, line: ReservationLine, exc: Exception
    ) -> CompensationError:
        failure = CompensationError(line.product_id, line.quantity, str(exc))
        entry["status"] = "FAILED"
        entry["error"] = failure.reason
        logger.error(
            "Stock compensation failed for product %s (quantity=%d, previous=%d, reserved_to=%d): %s",
            line.product_id,
            line.quantity,
            line.previous_stock,
            line.new_stock,
            exc,
        )
        return failure

    # ── Helpers ─────────────────────────────────────

    @staticmethod
    def _build_order_payload(
        request: PurchaseRequest,
        requester: Requester,
        lines: list[ReservationLine],
    ) -> dict:
        return {
            "customerId": requester.id,
            "customerName": requester.display_name,
            "customerEmail": requester.email,
            "items": [line.to_order_item() for line in lines],
            "shippingAddress": request.shipping_address,
            "paymentMethod": request.payment_method,
        }

    @staticmethod
    def _log_step(saga_log: list[dict], action: str, product_id: str | None = None) -> dict:
        entry = {
            "step": len(saga_log) + 1,
            "action": action,
            "status": "EXECUTING",
            "timestamp": _now().isoformat(),
        }
        if product_id is not None:
            entry["productId"] = product_id
        saga_log.append(entry)
        return entry

    async def _publish_outcome(
        self,
        requester: Requester,
        saga_log: list[dict],
        failures: list[CompensationError],
        error: str,
    ) -> None:
        event_cls = PurchaseFailed if failures else PurchaseCompensated
        await self._publish(
            event_cls(
                requester_id=requester.id,
                error=error,
                saga_log=saga_log,
                compensation_failures=[failure.as_dict() for failure in failures],
                timestamp=_now(),
            )
        )

    async def _publish(self, event: PurchaseEvent) -> None:
        """Publish the saga outcome on Redis. Losing the event never fails the purchase."""
        if self.redis is None:
            return
        try:
            await self.redis.publish(PURCHASE_EVENTS_CHANNEL, event.model_dump_json())
        except RedisError:
            logger.exception("Failed to publish %s", event.event_type)
