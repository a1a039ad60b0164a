# tests/catalog/test_seed.py
import pytest

from catalog_service.seed import SAMPLE_PRODUCTS, seed_products

pytestmark = pytest.mark.asyncio


async def test_seed_fills_empty_catalog(products):
    seeded = await seed_products(products)

    assert len(seeded) == len(SAMPLE_PRODUCTS)
    assert await products.count() == len(SAMPLE_PRODUCTS)


async def test_seed_skips_populated_catalog(products, p1):
    assert await seed_products(products) == []
    assert await products.count() == 1


async def test_forced_seed_replaces_existing_products(products, p1):
    await seed_products(products, force=True)

    assert await products.find_by_id("P1") is None
    assert await products.count() == len(SAMPLE_PRODUCTS)
