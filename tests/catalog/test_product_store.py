# tests/catalog/test_product_store.py
import pytest

from catalog_service.config import Settings
from catalog_service.errors import ProductNotFoundError

pytestmark = pytest.mark.asyncio


async def test_find_by_id_returns_none_for_unknown_product(products):
    assert await products.find_by_id("nope") is None


async def test_add_product_generates_id_and_timestamps(products):
    product = await products.add_product(name="Lamp", price=19.99, stock=2)

    stored = await products.find_by_id(product.id)
    assert stored.name == "Lamp"
    assert stored.stock == 2
    assert stored.category == "Other"
    assert stored.created_at is not None


async def test_add_product_rejects_unknown_category(products):
    with pytest.raises(ValueError):
        await products.add_product(name="Thing", price=1.0, category="Weapons")


async def test_update_stock_overwrites_value(products, p1):
    await products.update_stock("P1", 42)

    assert (await products.find_by_id("P1")).stock == 42


async def test_update_stock_on_missing_product_raises(products):
    with pytest.raises(ProductNotFoundError):
        await products.update_stock("nope", 1)


async def test_conditional_decrement(products, p1):
    assert await products.decrement_stock_if_available("P1", 4) == 1
    assert await products.decrement_stock_if_available("P1", 2) is None
    assert (await products.find_by_id("P1")).stock == 1
    assert await products.decrement_stock_if_available("nope", 1) is None


async def test_increment_stock(products, p1):
    assert await products.increment_stock("P1", 3) == 8
    assert await products.increment_stock("nope", 3) is None


async def test_list_products_filters_by_category_and_merchant(products, p1, p2):
    assert [p.id for p in await products.list_products()] == ["P2", "P1"]
    assert [p.id for p in await products.list_products(category="Other")] == ["P1"]
    assert [p.id for p in await products.list_products(merchant_id="m-2")] == ["P2"]


async def test_purchase_roles_are_parsed_from_csv():
    settings = Settings(PURCHASE_ROLES=" customer, admin ,,")

    assert settings.purchase_roles == frozenset({"customer", "admin"})
