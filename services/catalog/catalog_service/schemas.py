"""
Catalog Service — purchase request / response models
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import PurchaseValidationError

DEFAULT_PAYMENT_METHOD = "Credit Card"

REQUIRED_FIELDS = ["items (array)", "shippingAddress"]
REQUIRED_ITEM_FIELDS = ["productId", "quantity (must be >= 1)"]


class PurchaseItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[PurchaseItem] = Field(min_length=1)
    shipping_address: str = Field(min_length=1)
    payment_method: str = DEFAULT_PAYMENT_METHOD

    @field_validator("payment_method", mode="before")
    @classmethod
    def _default_payment_method(cls, value):
        return value or DEFAULT_PAYMENT_METHOD

    @classmethod
    def from_payload(cls, payload) -> "PurchaseRequest":
        """Validate a raw JSON body, mapping failures to the 400 error bodies."""
        if not isinstance(payload, dict):
            raise PurchaseValidationError("Missing required fields", REQUIRED_FIELDS)
        items = payload.get("items")
        if not isinstance(items, list) or not items or not payload.get("shippingAddress"):
            raise PurchaseValidationError("Missing required fields", REQUIRED_FIELDS)
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            if any(err["loc"][:1] == ("items",) for err in exc.errors()):
                raise PurchaseValidationError(
                    "Invalid item structure", REQUIRED_ITEM_FIELDS
                ) from exc
            raise PurchaseValidationError("Invalid purchase request") from exc


class Requester(BaseModel):
    """The authenticated caller, as asserted by the auth gateway."""

    id: str
    email: str
    role: str = "customer"

    @property
    def display_name(self) -> str:
        return self.email.split("@")[0]


@dataclass
class ReservationLine:
    """Snapshot of one reserved item. Lives only for the duration of a saga."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    image_url: str
    merchant_id: str | None
    merchant_name: str | None
    previous_stock: int
    new_stock: int

    def to_order_item(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": self.unit_price,
            "imageUrl": self.image_url,
            "merchantId": self.merchant_id,
            "merchantName": self.merchant_name,
        }


@dataclass
class OrderConfirmation:
    order: dict
    stock_updated: bool = True

    def to_json(self) -> dict:
        return {"order": self.order, "stockUpdated": self.stock_updated}
