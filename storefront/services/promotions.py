"""
Promotion Bundles

A promotion links several products at a bundle price. Before the bundle
can go into the cart, every required option of every linked product must
have a selection. The bundle then enters the cart as a single line whose
options are flattened to ``"<Product> - <Option>": "<choice>, <choice>"``.

Also holds the admin-side promotion writes and the "newest unseen
promotion" popup rule.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from storefront.models import Collection, OptionType
from storefront.schemas import CartLine, Product, Promotion, SelectionValue
from storefront.services.store import SERVER_TIMESTAMP, BaseDocumentStore

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class MissingOptionError(Exception):
    """A required option of a bundled product has no selection."""

    def __init__(self, product_name: str, option_name: str):
        self.product_name = product_name
        self.option_name = option_name
        super().__init__(f"Please select {option_name} for {product_name}")


class PromotionSelector:
    """
    Collects option selections for the products of one promotion.

    Attributes:
        promotion: The promotion being configured
        products: Linked products that could be loaded, keyed by id
        selections: ``{product_id: {option_name: label | [labels]}}``
    """

    def __init__(self, promotion: Promotion, products: dict[str, Product]):
        self.promotion = promotion
        self.products = products
        self.selections: dict[str, dict[str, SelectionValue]] = {}

    def select(self, product_id: str, option_name: str, label: str) -> None:
        """
        Pick a choice. Single groups replace the previous choice,
        multiple groups toggle the label in or out.
        """
        product = self.products.get(product_id)
        if product is None:
            raise KeyError(f"Product {product_id} is not part of '{self.promotion.title}'")

        group = next((g for g in product.options if g.name == option_name), None)
        if group is None:
            raise KeyError(f"{product.name} has no option '{option_name}'")

        product_selections = self.selections.setdefault(product_id, {})
        if group.type == OptionType.MULTIPLE:
            current = product_selections.get(option_name)
            labels = list(current) if isinstance(current, list) else []
            if label in labels:
                labels.remove(label)
            else:
                labels.append(label)
            product_selections[option_name] = labels
        else:
            product_selections[option_name] = label

    def validate(self) -> None:
        """
        Raises:
            MissingOptionError: For the first required option left empty
        """
        for product_id in self.promotion.linked_product_ids:
            product = self.products.get(product_id)
            if product is None:
                continue
            for group in product.options:
                if not group.required:
                    continue
                chosen = self.selections.get(product_id, {}).get(group.name)
                if not chosen:
                    raise MissingOptionError(product.name, group.name)

    def flattened_options(self) -> dict[str, str]:
        flattened = {}
        for product_id, product_selections in self.selections.items():
            product = self.products.get(product_id)
            if product is None:
                continue
            for option_name, value in product_selections.items():
                display = ", ".join(value) if isinstance(value, list) else value
                flattened[f"{product.name} - {option_name}"] = display
        return flattened

    def to_cart_line(self) -> CartLine:
        """Validate, then build the bundle's cart line (quantity 1)."""
        self.validate()
        if not self.promotion.id:
            raise ValueError(f"Promotion '{self.promotion.title}' has no id")

        return CartLine(
            id=self.promotion.id,
            name=self.promotion.title,
            price=self.promotion.price,
            image=self.promotion.image,
            selected_options=self.flattened_options(),
            quantity=1,
            is_promotion=True,
        )


async def load_linked_products(
    store: BaseDocumentStore,
    promotion: Promotion,
) -> dict[str, Product]:
    """Fetch the promotion's linked products; ids that no longer exist are skipped."""
    documents = await asyncio.gather(
        *(store.get(Collection.PRODUCTS.value, pid) for pid in promotion.linked_product_ids)
    )
    products = {
        doc.id: Product.from_document(doc) for doc in documents if doc is not None
    }
    missing = len(promotion.linked_product_ids) - len(products)
    if missing:
        logger.warning(f"Promotion '{promotion.title}': {missing} linked product(s) not found")
    return products


def latest_unseen_promotion(
    promotions: Iterable[Promotion],
    seen_ids: Iterable[str],
) -> Optional[Promotion]:
    """
    The popup promotion: the newest one, unless the customer already saw
    it or it was switched off. Promotions without a timestamp count as oldest.
    """
    ordered = sorted(
        promotions,
        key=lambda p: p.created_at or _EPOCH,
        reverse=True,
    )
    if not ordered:
        return None

    latest = ordered[0]
    if latest.id in set(seen_ids) or not latest.active:
        return None
    return latest


async def active_promotions(store: BaseDocumentStore) -> list[Promotion]:
    documents = await store.query(Collection.PROMOTIONS.value)
    promotions = [Promotion.from_document(doc) for doc in documents]
    return [p for p in promotions if p.active]


async def save_promotion(
    store: BaseDocumentStore,
    data: dict,
    promotion_id: Optional[str] = None,
) -> str:
    """Create (active, timestamped) or update a promotion; returns its id."""
    if promotion_id:
        fields = {k: v for k, v in data.items() if k != "id"}
        await store.update(Collection.PROMOTIONS.value, promotion_id, fields)
        logger.info(f"Promotion {promotion_id} updated")
        return promotion_id

    body = Promotion.model_validate(data).to_data()
    body["createdAt"] = SERVER_TIMESTAMP
    body["active"] = True
    new_id = await store.add(Collection.PROMOTIONS.value, body)
    logger.info(f"Promotion '{body['title']}' created ({new_id})")
    return new_id


async def delete_promotion(store: BaseDocumentStore, promotion_id: str) -> None:
    await store.delete(Collection.PROMOTIONS.value, promotion_id)
    logger.info(f"Promotion {promotion_id} deleted")
