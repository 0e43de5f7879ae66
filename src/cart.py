# src/cart.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple
import logging

from errors import InvalidCartAdditionError
from products import Product, ShippableUnit

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    """A line in the shopping cart.  The product belongs to the catalog."""
    product: Product
    quantity: int

    @property
    def total(self) -> Decimal:
        return self.product.price * self.quantity


class Cart:
    """Ordered collection of cart lines for a single checkout attempt."""

    def __init__(self) -> None:
        self._lines: List[CartLine] = []

    def __len__(self) -> int:
        return len(self._lines)

    def add(self, product: Product, quantity: int) -> CartLine:
        """Append a line for ``quantity`` units of ``product``.

        Stock is checked against the product as it stands now.  Checkout
        checks it again, so this only rejects requests that could never
        succeed.

        Raises:
            InvalidCartAdditionError: If ``quantity`` is not positive or
                exceeds the product's available quantity.
        """
        if quantity <= 0:
            raise InvalidCartAdditionError(product, quantity, "quantity must be positive")
        if quantity > product.quantity:
            raise InvalidCartAdditionError(
                product, quantity, f"only {product.quantity} in stock"
            )
        line = CartLine(product=product, quantity=quantity)
        self._lines.append(line)
        logger.debug(
            "Added to cart",
            extra={"extra": {"product": product.name, "quantity": quantity}},
        )
        return line

    def is_empty(self) -> bool:
        return not self._lines

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    def subtotal(self) -> Decimal:
        return sum((line.total for line in self._lines), Decimal("0"))

    def shippable_units(self) -> List[ShippableUnit]:
        """Expand shipped lines into one unit per requested item, in line order."""
        units: List[ShippableUnit] = []
        for line in self._lines:
            if line.product.requires_shipping:
                units.extend([line.product.shippable_unit()] * line.quantity)
        return units
