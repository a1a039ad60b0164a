"""
Catalog Service — purchase error taxonomy

Each error knows the HTTP status it maps to and the JSON body the client
sees. Bodies never include tracebacks.
"""


class PurchaseError(Exception):
    status_code = 500
    message = "Failed to process purchase"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_body(self) -> dict:
        return {"success": False, "error": self.message}


class PurchaseValidationError(PurchaseError):
    """Malformed purchase request. Raised before any stock is touched."""

    status_code = 400
    message = "Invalid purchase request"

    def __init__(self, message: str | None = None, required: list[str] | None = None) -> None:
        super().__init__(message)
        self.required = required or []

    def to_body(self) -> dict:
        body = super().to_body()
        if self.required:
            body["required"] = self.required
        return body


class ProductNotFoundError(PurchaseError):
    status_code = 404

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id

    def to_body(self) -> dict:
        body = super().to_body()
        body["productId"] = self.product_id
        return body


class InsufficientStockError(PurchaseError):
    status_code = 400

    def __init__(
        self, product_id: str, product_name: str, available: int, requested: int
    ) -> None:
        super().__init__(f"Insufficient stock for product: {product_name}")
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested

    def to_body(self) -> dict:
        body = super().to_body()
        body["product"] = {
            "id": self.product_id,
            "name": self.product_name,
            "available": self.available,
            "requested": self.requested,
        }
        return body


class OrderCreationError(PurchaseError):
    """The order service refused the order or could not be reached."""

    status_code = 500
    message = "Failed to create order"

    def __init__(
        self,
        gateway_status: int | None,
        gateway_body,
        compensation_failures: list["CompensationError"] | None = None,
    ) -> None:
        super().__init__()
        self.gateway_status = gateway_status
        self.gateway_body = gateway_body
        self.compensation_failures = compensation_failures or []

    def to_body(self) -> dict:
        body = super().to_body()
        body["details"] = self.gateway_body
        body["gatewayStatus"] = self.gateway_status
        if self.compensation_failures:
            body["compensationFailures"] = [
                failure.product_id for failure in self.compensation_failures
            ]
        return body


class CompensationError(Exception):
    """
    A stock restore that did not go through.

    Never raised out of the orchestrator: collected, logged and published so
    the stock can be reconciled by hand.
    """

    def __init__(self, product_id: str, quantity: int, reason: str) -> None:
        super().__init__(f"Failed to restore {quantity} unit(s) of {product_id}: {reason}")
        self.product_id = product_id
        self.quantity = quantity
        self.reason = reason

    def as_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "reason": self.reason,
        }
