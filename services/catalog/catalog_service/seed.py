"""
Catalog Service — sample data

    python -m catalog_service.seed [--force]

Creates the schema and inserts the sample catalog when the products table is
empty. `--force` clears existing products first.
"""

import argparse
import asyncio
import logging

from .config import configure_logging, get_settings
from .db import Database
from .products import Product, ProductStore

logger = logging.getLogger(__name__)

SAMPLE_PRODUCTS = [
    {
        "name": 'Apple MacBook Pro 16"',
        "description": "Laptop with M3 Max chip, 32GB RAM and a Retina display.",
        "price": 2499.99,
        "category": "Electronics",
        "stock": 15,
        "image_url": "https://images.unsplash.com/photo-1517336714731-489689fd1ca8?w=800&q=80",
        "brand": "Apple",
        "rating": 4.8,
        "review_count": 342,
        "merchant_name": "Tech Store Premium",
    },
    {
        "name": "Sony WH-1000XM5 Wireless Headphones",
        "description": "Noise cancelling headphones with up to 30 hours of battery life.",
        "price": 399.99,
        "category": "Electronics",
        "stock": 45,
        "image_url": "https://images.unsplash.com/photo-1546435770-a3e426bf472b?w=800&q=80",
        "brand": "Sony",
        "rating": 4.7,
        "review_count": 1250,
        "merchant_name": "Audio Excellence",
    },
    {
        "name": "Classic Denim Jacket",
        "description": "Vintage-style denim jacket in premium cotton denim.",
        "price": 89.99,
        "category": "Clothing",
        "stock": 67,
        "image_url": "https://images.unsplash.com/photo-1576995853123-5a10305d93c0?w=800&q=80",
        "brand": "Urban Outfitters",
        "rating": 4.5,
        "review_count": 89,
        "merchant_name": "Fashion Hub",
    },
    {
        "name": "The Art of Computer Programming",
        "description": "Complete set of Donald Knuth's series.",
        "price": 249.99,
        "category": "Books",
        "stock": 23,
        "image_url": "https://images.unsplash.com/photo-1544947950-fa07a98d237f?w=800&q=80",
        "brand": "Addison-Wesley",
        "rating": 4.9,
        "review_count": 456,
        "merchant_name": "Book Haven",
    },
    {
        "name": "Yoga Mat Pro",
        "description": "Non-slip 6mm mat with carrying strap.",
        "price": 49.99,
        "category": "Sports",
        "stock": 120,
        "image_url": "https://images.unsplash.com/photo-1601925260368-ae2f83cf8b7f?w=800&q=80",
        "brand": "Manduka",
        "rating": 4.6,
        "review_count": 210,
        "merchant_name": "Active Life",
    },
]


async def seed_products(store: ProductStore, force: bool = False) -> list[Product]:
    """Insert SAMPLE_PRODUCTS. Returns the inserted products (empty if skipped)."""
    existing = await store.count()
    if existing and not force:
        logger.info("Products table already holds %d product(s), skipping seed", existing)
        return []
    if existing:
        await store.delete_all()
        logger.info("Cleared %d existing product(s)", existing)

    seeded = [await store.add_product(**fields) for fields in SAMPLE_PRODUCTS]
    for product in seeded:
        logger.info("  - %s ($%.2f) - %d in stock", product.name, product.price, product.stock)
    logger.info("Seeded %d product(s)", len(seeded))
    return seeded


async def _main(force: bool) -> None:
    settings = get_settings()
    database = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    try:
        await database.create_schema()
        await seed_products(ProductStore(database), force=force)
    finally:
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the catalog with sample products")
    parser.add_argument("--force", action="store_true", help="clear existing products first")
    args = parser.parse_args()
    configure_logging(get_settings().LOG_LEVEL)
    asyncio.run(_main(args.force))


if __name__ == "__main__":
    main()
