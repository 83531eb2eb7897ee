"""
Shopping Cart

In-memory cart held for the lifetime of a customer session. Lines merge
by identity (product id plus selected options): adding the same thing
again increments the quantity instead of adding a second line.
"""

import logging
from typing import Any, Optional

from storefront.schemas import CartLine, SelectionValue

logger = logging.getLogger(__name__)


class Cart:
    """
    Ordered list of cart lines.

    Example:
        >>> cart = Cart()
        >>> cart.add(build_line(product, {"Size": "Large"}, quantity=2))
        >>> cart.total()
        31.0
    """

    def __init__(self):
        self._lines: list[CartLine] = []

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def add(self, line: CartLine) -> CartLine:
        """Add a line, merging into an existing line with the same identity."""
        for existing in self._lines:
            if existing.identity() == line.identity():
                existing.quantity += line.quantity
                logger.debug(f"Cart: {line.name} quantity -> {existing.quantity}")
                return existing

        added = line.model_copy(deep=True)
        self._lines.append(added)
        logger.debug(f"Cart: added {line.name} x{line.quantity}")
        return added

    def _matching(
        self,
        product_id: str,
        selected_options: Optional[dict[str, SelectionValue]],
    ) -> list[CartLine]:
        lines = [line for line in self._lines if line.id == product_id]
        if selected_options is None:
            return lines
        probe = CartLine(id=product_id, name="", price=0, selected_options=selected_options)
        return [line for line in lines if line.identity() == probe.identity()]

    def remove(
        self,
        product_id: str,
        selected_options: Optional[dict[str, SelectionValue]] = None,
    ) -> None:
        """Remove the product's lines (or only the one with these options)."""
        doomed = {line.identity() for line in self._matching(product_id, selected_options)}
        self._lines = [line for line in self._lines if line.identity() not in doomed]

    def update_quantity(
        self,
        product_id: str,
        quantity: int,
        selected_options: Optional[dict[str, SelectionValue]] = None,
    ) -> None:
        """Set the quantity; anything below 1 removes the line."""
        if quantity < 1:
            self.remove(product_id, selected_options)
            return
        for line in self._matching(product_id, selected_options):
            line.quantity = quantity

    def clear(self) -> None:
        self._lines = []

    def count(self) -> int:
        """Number of units across all lines."""
        return sum(line.quantity for line in self._lines)

    def total(self) -> float:
        return round(sum(line.price * line.quantity for line in self._lines), 2)

    def snapshot(self) -> list[dict[str, Any]]:
        """Lines as stored on an order document."""
        return [line.model_dump(by_alias=True) for line in self._lines]
