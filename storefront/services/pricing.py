"""
Option Pricing

Resolves option selections against a product's option groups and builds
the priced cart line the customer adds from the product detail screen.
"""

import logging
from typing import Optional

from storefront.schemas import CartLine, Product, SelectionValue

logger = logging.getLogger(__name__)


def _as_labels(value: Optional[SelectionValue]) -> list[str]:
    if not value:
        return []
    if isinstance(value, list):
        return value
    return [value]


def option_surcharge(product: Product, selections: dict[str, SelectionValue]) -> float:
    """
    Sum the extra prices of the selected choices.

    Single groups take one label, multiple groups a list of labels.
    Labels that match no choice add nothing.
    """
    surcharge = 0.0
    for group in product.options:
        for label in _as_labels(selections.get(group.name)):
            choice = group.find_choice(label)
            if choice is None:
                logger.debug(f"Unknown choice '{label}' for {product.name}/{group.name}")
                continue
            surcharge += choice.price
    return round(surcharge, 2)


def build_line(
    product: Product,
    selections: Optional[dict[str, SelectionValue]] = None,
    quantity: int = 1,
) -> CartLine:
    """Snapshot a product into a cart line with its resolved unit price."""
    if not product.id:
        raise ValueError(f"Product '{product.name}' has no id")

    selections = dict(selections or {})
    unit_price = round(product.price + option_surcharge(product, selections), 2)

    return CartLine(
        id=product.id,
        name=product.name,
        price=unit_price,
        quantity=quantity,
        image=product.image,
        selected_options=selections,
        category=product.category,
    )
