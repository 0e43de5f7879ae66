"""Exceptions raised by the checkout flow.

Every error carries an ``error_type`` label.  The checkout service uses
it to tag the ``checkout_error_total`` metric, in the same way the
retail app tagged failures as ``empty_cart`` or ``stock_insufficient``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from customer import Customer
    from products import Product


class CheckoutError(Exception):
    """Base class for all checkout failures."""

    error_type = "checkout_error"


class EmptyCartError(CheckoutError):
    error_type = "empty_cart"

    def __init__(self) -> None:
        super().__init__("Cart is empty.")


class ExpiredProductError(CheckoutError):
    error_type = "product_expired"

    def __init__(self, product: "Product") -> None:
        self.product = product
        super().__init__(f"{product.name} is expired.")


class InsufficientStockError(CheckoutError):
    error_type = "stock_insufficient"

    def __init__(self, product: "Product", requested: int) -> None:
        self.product = product
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product.name}; "
            f"requested {requested}, only {product.quantity} available"
        )


class InsufficientBalanceError(CheckoutError):
    error_type = "balance_insufficient"

    def __init__(self, customer: "Customer", amount: Decimal) -> None:
        self.customer = customer
        self.amount = amount
        super().__init__(
            f"Insufficient balance: {customer.name} has {customer.balance:.2f}, "
            f"needs {amount:.2f}"
        )


class InvalidCartAdditionError(CheckoutError, ValueError):
    """Raised by :meth:`cart.Cart.add` for a quantity the cart cannot accept."""

    error_type = "invalid_cart_addition"

    def __init__(self, product: "Product", requested: int, reason: str) -> None:
        self.product = product
        self.requested = requested
        super().__init__(f"Cannot add {requested} x {product.name}: {reason}")
