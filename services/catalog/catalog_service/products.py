"""
Catalog Service — Product Store

Single-row reads and writes against the `products` table. Every call opens
its own short session; nothing here spans more than one statement, so the
purchase saga cannot rely on this module for cross-item atomicity.
"""

from datetime import datetime, timezone
from uuid import uuid4

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .db import Database, products
from .errors import ProductNotFoundError

CATEGORIES = (
    "Electronics",
    "Clothing",
    "Books",
    "Home & Kitchen",
    "Sports",
    "Toys",
    "Beauty",
    "Automotive",
    "Other",
)


class Product(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    price: float
    category: str = "Other"
    stock: int = 0
    image_url: str = ""
    brand: str | None = None
    rating: float = 0
    review_count: int = 0
    merchant_id: str | None = None
    merchant_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ProductStore:
    def __init__(self, database: Database) -> None:
        self.db = database

    async def find_by_id(self, product_id: str) -> Product | None:
        async with self.db.session() as session:
            result = await session.execute(
                sa.select(products).where(products.c.id == product_id)
            )
            row = result.mappings().first()
        return Product.model_validate(dict(row)) if row else None

    async def list_products(
        self,
        category: str | None = None,
        merchant_id: str | None = None,
    ) -> list[Product]:
        stmt = sa.select(products).order_by(products.c.name)
        if category:
            stmt = stmt.where(products.c.category == category)
        if merchant_id:
            stmt = stmt.where(products.c.merchant_id == merchant_id)
        async with self.db.session() as session:
            result = await session.execute(stmt)
            rows = result.mappings().all()
        return [Product.model_validate(dict(row)) for row in rows]

    async def update_stock(self, product_id: str, new_stock: int) -> None:
        """Overwrite the stock level. Unconditional: last writer wins."""
        async with self.db.session() as session:
            result = await session.execute(
                sa.update(products)
                .where(products.c.id == product_id)
                .values(stock=new_stock, updated_at=datetime.now(timezone.utc))
            )
            await session.commit()
        if result.rowcount == 0:
            raise ProductNotFoundError(product_id)

    async def decrement_stock_if_available(
        self, product_id: str, quantity: int
    ) -> int | None:
        """
        Take `quantity` units in a single conditional UPDATE.

        Returns the stock left afterwards, or None when the row is missing or
        holds fewer than `quantity` units (nothing is written in that case).
        """
        async with self.db.session() as session:
            result = await session.execute(
                sa.update(products)
                .where(products.c.id == product_id, products.c.stock >= quantity)
                .values(
                    stock=products.c.stock - quantity,
                    updated_at=datetime.now(timezone.utc),
                )
                .returning(products.c.stock)
            )
            new_stock = result.scalar_one_or_none()
            await session.commit()
        return new_stock

    async def increment_stock(self, product_id: str, quantity: int) -> int | None:
        """Put `quantity` units back in one UPDATE. None if the row is gone."""
        async with self.db.session() as session:
            result = await session.execute(
                sa.update(products)
                .where(products.c.id == product_id)
                .values(
                    stock=products.c.stock + quantity,
                    updated_at=datetime.now(timezone.utc),
                )
                .returning(products.c.stock)
            )
            new_stock = result.scalar_one_or_none()
            await session.commit()
        return new_stock

    async def add_product(self, **fields) -> Product:
        now = datetime.now(timezone.utc)
        values = {
            "id": fields.pop("id", None) or uuid4().hex,
            "created_at": now,
            "updated_at": now,
            **fields,
        }
        product = Product.model_validate(values)
        if product.category not in CATEGORIES:
            raise ValueError(f"{product.category} is not a valid category")
        if product.stock < 0:
            raise ValueError("Stock cannot be negative")
        async with self.db.session() as session:
            await session.execute(sa.insert(products).values(**product.model_dump()))
            await session.commit()
        return product

    async def count(self) -> int:
        async with self.db.session() as session:
            result = await session.execute(sa.select(sa.func.count()).select_from(products))
            return result.scalar_one()

    async def delete_all(self) -> None:
        async with self.db.session() as session:
            await session.execute(sa.delete(products))
            await session.commit()
