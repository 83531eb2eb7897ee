"""
Catalog and Stock Management

Admin-side product writes, the low-stock rule, and bulk product seeding
from a JSON file.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from storefront.core.config import get_settings
from storefront.models import Collection
from storefront.schemas import Product
from storefront.services.store import SERVER_TIMESTAMP, BaseDocumentStore, StoreError

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10

SAMPLE_PRODUCTS = [
    {
        "name": "Classic Burger",
        "category": "Burgers",
        "price": 18,
        "stock": 50,
        "description": "Beef patty, cheddar, lettuce and house sauce.",
        "ingredients": "Beef, cheddar, lettuce, tomato, bun",
        "allergies": "Gluten, dairy",
        "options": [
            {
                "name": "Size",
                "type": "single",
                "required": True,
                "choices": [{"label": "Regular", "price": 0}, {"label": "Double", "price": 6}],
            },
        ],
    },
    {
        "name": "Margherita Pizza",
        "category": "Pizza",
        "price": 25,
        "stock": 20,
        "description": "Tomato, mozzarella and basil.",
        "ingredients": "Dough, tomato, mozzarella, basil",
        "allergies": "Gluten, dairy",
        "options": [
            {
                "name": "Extras",
                "type": "multiple",
                "required": False,
                "choices": [{"label": "Olives", "price": 2}, {"label": "Mushrooms", "price": 3}],
            },
        ],
    },
    {"name": "Fresh Orange Juice", "category": "Drinks", "price": 7, "stock": 100},
    {"name": "Mineral Water", "category": "Drinks", "price": 1.5, "stock": 200},
    {"name": "Caesar Salad", "category": "Salads", "price": 15, "stock": 45},
    {"name": "Chocolate Cake", "category": "Desserts", "price": 12, "stock": 30},
]


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def normalize_product(data: dict) -> dict:
    """
    Clean a product form before writing it.

    Drops ``id``, coerces price/stock (unparseable values become 0) and
    blanks placeholder images such as ``"data:image/png;base64,..."``.
    """
    body = {k: v for k, v in data.items() if k != "id"}
    body["price"] = _to_float(body.get("price"))
    body["stock"] = _to_int(body.get("stock"))

    image = body.get("image") or ""
    if isinstance(image, str) and "..." in image:
        image = ""
    body["image"] = image

    # Validates names/options without rewriting the caller's field set
    Product.model_validate(body)
    return body


async def save_product(
    store: BaseDocumentStore,
    data: dict,
    product_id: Optional[str] = None,
) -> str:
    """Create or update a product; returns its id."""
    body = normalize_product(data)

    if product_id:
        await store.update(Collection.PRODUCTS.value, product_id, body)
        logger.info(f"Product {product_id} updated")
        return product_id

    body.setdefault("createdAt", SERVER_TIMESTAMP)
    new_id = await store.add(Collection.PRODUCTS.value, body)
    logger.info(f"Product '{body['name']}' created ({new_id})")
    return new_id


async def delete_product(store: BaseDocumentStore, product_id: str) -> None:
    await store.delete(Collection.PRODUCTS.value, product_id)
    logger.info(f"Product {product_id} deleted")


async def list_products(store: BaseDocumentStore) -> list[Product]:
    return [Product.from_document(d) for d in await store.query(Collection.PRODUCTS.value)]


def low_stock(products: Iterable[Product], threshold: Optional[int] = None) -> list[Product]:
    """Products whose stock is below the threshold (default from settings)."""
    if threshold is None:
        threshold = get_settings().low_stock_threshold
    return [p for p in products if p.stock < threshold]


# =============================================================================
# BULK SEEDING
# =============================================================================

@dataclass
class SeedReport:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class SeedFileError(Exception):
    """The seed file is missing or is not a JSON array."""


def read_seed_file(path: Union[str, Path]) -> list[dict]:
    path = Path(path)
    if not path.exists():
        raise SeedFileError(f"{path} not found")

    try:
        products = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SeedFileError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(products, list):
        raise SeedFileError(f"{path} must contain an array of products")
    return products


async def seed_products(store: BaseDocumentStore, products: list[dict]) -> SeedReport:
    """
    Upload products one by one. A bad product is counted and logged;
    the rest still go in.
    """
    report = SeedReport(total=len(products))
    logger.info(f"Found {report.total} products to upload")

    for product in products:
        if not isinstance(product, dict):
            report.failed += 1
            report.errors.append(f"<invalid>: expected an object, got {type(product).__name__}")
            logger.error(f"Skipping non-object entry: {product!r}")
            continue

        name = product.get("name", "<unnamed>")
        try:
            body = normalize_product(product)
            body["createdAt"] = SERVER_TIMESTAMP
            await store.add(Collection.PRODUCTS.value, body)
        except (ValidationError, StoreError, TypeError, ValueError) as e:
            report.failed += 1
            report.errors.append(f"{name}: {e}")
            logger.error(f"Error adding {name}: {e}")
            continue

        report.succeeded += 1
        if report.succeeded % PROGRESS_EVERY == 0:
            logger.info(f"Progress: {report.succeeded}/{report.total} items added")

    logger.info(f"Bulk upload complete: {report.succeeded} added, {report.failed} failed")
    return report


async def populate_sample_products(store: BaseDocumentStore) -> SeedReport:
    """Add the built-in sample menu (dashboard 'populate stock' action)."""
    return await seed_products(store, SAMPLE_PRODUCTS)
