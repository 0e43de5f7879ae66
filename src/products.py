"""Product catalog model.

A product is one dataclass whose behaviour follows from two optional
fields: ``expiry_date`` makes it perishable and ``weight`` (in grams)
makes it shippable.  :class:`ProductKind` names the three combinations
the store sells, so callers can branch on the variant without type
checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class ProductKind(Enum):
    PERISHABLE_SHIPPABLE = "perishable_shippable"
    DURABLE_SHIPPABLE = "durable_shippable"
    NON_SHIPPABLE = "non_shippable"


@dataclass(frozen=True)
class ShippableUnit:
    """One physical item headed for the shipping notice."""
    name: str
    weight: float  # grams


def to_decimal(value) -> Decimal:
    """Convert an int, str, float or Decimal amount to ``Decimal``."""
    if isinstance(value, Decimal):
        return value
    # str() first so 0.1 becomes Decimal("0.1") rather than its binary expansion
    return Decimal(str(value))


@dataclass(eq=False)
class Product:
    """In-memory representation of a catalog product.

    Products are shared by reference between the catalog and any cart
    lines, so equality is identity.
    """
    name: str
    price: Decimal
    quantity: int
    expiry_date: Optional[date] = None
    weight: Optional[float] = None

    def __post_init__(self) -> None:
        self.price = to_decimal(self.price)
        if self.price < 0:
            raise ValueError(f"Price of {self.name} must not be negative")
        if self.quantity < 0:
            raise ValueError(f"Quantity of {self.name} must not be negative")
        if self.weight is not None and self.weight <= 0:
            raise ValueError(f"Weight of {self.name} must be positive")

    @property
    def kind(self) -> ProductKind:
        if self.weight is None:
            return ProductKind.NON_SHIPPABLE
        if self.expiry_date is None:
            return ProductKind.DURABLE_SHIPPABLE
        return ProductKind.PERISHABLE_SHIPPABLE

    @property
    def requires_shipping(self) -> bool:
        return self.weight is not None

    def is_expired(self, today: Optional[date] = None) -> bool:
        """Return True if the expiry date has passed.

        A product is still sellable on its expiry date itself; only days
        strictly after it count as expired.
        """
        if self.expiry_date is None:
            return False
        today = today or date.today()
        return today > self.expiry_date

    def reduce_quantity(self, amount: int) -> None:
        """Take ``amount`` units out of stock.

        Asking for more than is available leaves the stock untouched and
        reports nothing to the caller; checkout validates stock before it
        gets here.
        """
        if amount > self.quantity:
            logger.warning(
                "Ignored stock reduction larger than available quantity",
                extra={"extra": {"product": self.name, "requested": amount, "available": self.quantity}},
            )
            return
        self.quantity -= amount

    def shippable_unit(self) -> ShippableUnit:
        if self.weight is None:
            raise ValueError(f"{self.name} does not require shipping")
        return ShippableUnit(name=self.name, weight=self.weight)


def perishable(name: str, price, quantity: int, weight: float, expiry_date: date) -> Product:
    """Build a product that expires and must be shipped (cheese, biscuits)."""
    return Product(name, price, quantity, expiry_date=expiry_date, weight=weight)


def durable(name: str, price, quantity: int, weight: float) -> Product:
    """Build a shipped product that never expires (TVs)."""
    return Product(name, price, quantity, weight=weight)


def non_shippable(name: str, price, quantity: int) -> Product:
    """Build a product that is neither shipped nor perishable (scratch cards)."""
    return Product(name, price, quantity)
