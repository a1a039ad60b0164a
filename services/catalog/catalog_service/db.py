"""
Catalog Service — database handle

The engine is owned by whoever creates the `Database` (the FastAPI lifespan,
the seed script, or a test fixture) and is handed explicitly to the stores
that need it. There is no process-wide connection object.
"""

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

metadata = sa.MetaData()

products = sa.Table(
    "products",
    metadata,
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("name", sa.String(200), nullable=False),
    sa.Column("description", sa.String(2000), nullable=False, server_default=""),
    sa.Column("price", sa.Float, nullable=False),
    sa.Column("category", sa.String(50), nullable=False, server_default="Other"),
    sa.Column("stock", sa.Integer, nullable=False, server_default="0"),
    sa.Column("image_url", sa.String(500), nullable=False, server_default=""),
    sa.Column("brand", sa.String(100)),
    sa.Column("rating", sa.Float, nullable=False, server_default="0"),
    sa.Column("review_count", sa.Integer, nullable=False, server_default="0"),
    sa.Column("merchant_id", sa.String(64), index=True),
    sa.Column("merchant_name", sa.String(200)),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.CheckConstraint("price >= 0", name="ck_products_price"),
)


class Database:
    """Async engine plus session factory for one database."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine = create_async_engine(url, echo=echo)
        self.session = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
