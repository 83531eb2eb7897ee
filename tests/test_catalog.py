import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from storefront.schemas import Product
from storefront.services.catalog import (
    SAMPLE_PRODUCTS,
    SeedFileError,
    delete_product,
    list_products,
    low_stock,
    normalize_product,
    populate_sample_products,
    read_seed_file,
    save_product,
    seed_products,
)
from storefront.services.store import DocumentNotFoundError, MemoryDocumentStore


class TestNormalizeProduct:
    def test_coerces_numbers_and_drops_id(self):
        body = normalize_product({"id": "x", "name": "Tea", "price": "4.5", "stock": "12"})

        assert "id" not in body
        assert body["price"] == 4.5
        assert body["stock"] == 12

    def test_unparseable_numbers_become_zero(self):
        body = normalize_product({"name": "Tea", "price": "cheap", "stock": None})
        assert body["price"] == 0.0
        assert body["stock"] == 0

    def test_placeholder_image_is_blanked(self):
        body = normalize_product({"name": "Tea", "image": "data:image/png;base64,..."})
        assert body["image"] == ""

        body = normalize_product({"name": "Tea", "image": "https://cdn.example.com/tea.png"})
        assert body["image"] == "https://cdn.example.com/tea.png"

    def test_requires_name(self):
        with pytest.raises(ValidationError):
            normalize_product({"price": 3})


async def test_save_and_update_product(store):
    product_id = await save_product(store, {"name": "Tea", "price": "3", "stock": 8})

    doc = await store.get("products", product_id)
    assert doc.data["price"] == 3.0
    assert isinstance(doc.data["createdAt"], datetime)

    await save_product(store, {"id": product_id, "name": "Green Tea", "price": 4, "stock": 2}, product_id)
    doc = await store.get("products", product_id)
    assert doc.data["name"] == "Green Tea"
    assert "id" not in doc.data

    products = await list_products(store)
    assert [p.name for p in products] == ["Green Tea"]

    await delete_product(store, product_id)
    assert await list_products(store) == []


async def test_update_missing_product(store):
    with pytest.raises(DocumentNotFoundError):
        await save_product(store, {"name": "Tea"}, product_id="missing")


def test_low_stock(burger, juice):
    assert low_stock([burger, juice]) == [juice]
    assert low_stock([burger, juice], threshold=100) == [burger, juice]


def test_low_stock_threshold_from_settings(monkeypatch, burger, juice):
    from storefront.core.config import get_settings

    monkeypatch.setenv("LOW_STOCK_THRESHOLD", "60")
    get_settings.cache_clear()

    assert low_stock([burger, juice]) == [burger, juice]


class TestSeeding:
    async def test_seed_counts_failures_and_continues(self, store):
        report = await seed_products(
            store,
            [
                {"name": "Tea", "price": 3},
                {"price": 5},
                "not a product",
                {"name": "Coffee", "price": -1},
                {"name": "Juice", "price": "7", "stock": "10"},
            ],
        )

        assert report.total == 5
        assert report.succeeded == 2
        assert report.failed == 3
        assert len(report.errors) == 3
        assert sorted(p.name for p in await list_products(store)) == ["Juice", "Tea"]

    async def test_non_string_image_fails_only_that_product(self, store):
        report = await seed_products(store, [{"name": "A", "image": 5}, {"name": "B"}])

        assert report.failed == 1
        assert report.succeeded == 1
        assert report.errors[0].startswith("A:")
        assert [p.name for p in await list_products(store)] == ["B"]

    async def test_store_errors_are_reported(self):
        store = MemoryDocumentStore(denied_collections={"products"})

        report = await seed_products(store, [{"name": "Tea"}])

        assert report.failed == 1
        assert report.errors[0].startswith("Tea:")

    async def test_progress_is_logged(self, store, caplog):
        caplog.set_level("INFO", logger="storefront.services.catalog")

        await seed_products(store, [{"name": f"Item {n}", "price": n} for n in range(12)])

        assert "Progress: 10/12 items added" in caplog.text
        assert "Bulk upload complete: 12 added, 0 failed" in caplog.text

    async def test_populate_sample_products(self, store):
        report = await populate_sample_products(store)

        assert report.succeeded == len(SAMPLE_PRODUCTS)
        products = [Product.from_document(d) for d in await store.query("products")]
        burger = next(p for p in products if p.name == "Classic Burger")
        assert burger.options[0].required


class TestSeedFile:
    def test_reads_array(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"name": "Tea"}]), encoding="utf-8")

        assert read_seed_file(path) == [{"name": "Tea"}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SeedFileError, match="not found"):
            read_seed_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(SeedFileError, match="not valid JSON"):
            read_seed_file(path)

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps({"name": "Tea"}), encoding="utf-8")

        with pytest.raises(SeedFileError, match="array"):
            read_seed_file(path)
