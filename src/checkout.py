# src/checkout.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, TextIO
import logging
import sys
import time

from cart import Cart
from customer import Customer
from errors import (
    CheckoutError,
    EmptyCartError,
    ExpiredProductError,
    InsufficientBalanceError,
    InsufficientStockError,
)
from metrics import (
    CHECKOUT_DURATION_SECONDS,
    CHECKOUT_ERROR_TOTAL,
    CHECKOUTS_COMPLETED_TOTAL,
    PRODUCT_STOCK,
)
from products import to_decimal
from settings import DEFAULT_SHIPPING_FEE
from shipping_service import ShipmentNotice, ShippingService

logger = logging.getLogger(__name__)

RECEIPT_HEADER = "** Checkout receipt **"
RECEIPT_SEPARATOR = "-----------------------"


class CheckoutStage(Enum):
    """Stages of a checkout, in the only order they can occur."""
    START = "start"
    STOCK_VALIDATED = "stock_validated"
    TOTALS_COMPUTED = "totals_computed"
    SHIPPING_DISPATCHED = "shipping_dispatched"
    INVENTORY_REDUCED = "inventory_reduced"
    PAID = "paid"
    RECEIPT_EMITTED = "receipt_emitted"


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    quantity: int
    total: Decimal


@dataclass(frozen=True)
class Receipt:
    """Outcome of a settled checkout."""
    customer_name: str
    lines: List[ReceiptLine]
    subtotal: Decimal
    shipping_fee: Decimal
    total: Decimal
    balance: Decimal
    shipment: Optional[ShipmentNotice] = None

    def render(self) -> str:
        out = [RECEIPT_HEADER]
        for line in self.lines:
            out.append(f"{line.quantity}x {line.name}    {line.total:.2f}")
        out.append(RECEIPT_SEPARATOR)
        out.append(f"Subtotal        {self.subtotal:.2f}")
        out.append(f"Shipping        {self.shipping_fee:.2f}")
        out.append(f"Amount Paid     {self.total:.2f}")
        out.append(f"Balance Left    {self.balance:.2f}")
        return "\n".join(out)


class CheckoutService:
    """Validate a cart against current stock and settle it against a customer.

    All validation happens before the first side effect: a checkout
    either runs to the receipt or raises a :class:`errors.CheckoutError`
    with products and customer untouched.

    Args:
        shipping_service: Issues the shipment notice when anything ships.
        shipping_fee: Flat fee added when at least one item ships.
        stream: Where the receipt is written.  Defaults to ``sys.stdout``
            at the time of each checkout.
    """

    def __init__(
        self,
        shipping_service: Optional[ShippingService] = None,
        shipping_fee: Decimal = DEFAULT_SHIPPING_FEE,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.shipping_service = shipping_service or ShippingService(stream)
        self.shipping_fee = to_decimal(shipping_fee)
        if not self.shipping_fee.is_finite() or self.shipping_fee < 0:
            raise ValueError(f"Shipping fee must be a non-negative amount, got {shipping_fee!r}")
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def _advance(self, stage: CheckoutStage, customer: Customer) -> CheckoutStage:
        logger.debug(
            "Checkout stage reached",
            extra={"extra": {"stage": stage.value, "customer": customer.name}},
        )
        return stage

    def _validate(self, cart: Cart, today: date) -> None:
        if cart.is_empty():
            raise EmptyCartError()
        for line in cart.lines:
            if line.product.is_expired(today):
                raise ExpiredProductError(line.product)
            if line.quantity > line.product.quantity:
                raise InsufficientStockError(line.product, line.quantity)
        # several lines may share one product; their sum must fit its stock
        requested: Dict[int, int] = {}
        for line in cart.lines:
            key = id(line.product)
            requested[key] = requested.get(key, 0) + line.quantity
            if requested[key] > line.product.quantity:
                raise InsufficientStockError(line.product, requested[key])

    def process(self, customer: Customer, cart: Cart, today: Optional[date] = None) -> Receipt:
        """Check out ``cart`` for ``customer`` and print the receipt.

        Steps:
        1. Reject an empty cart, expired products and lines (or several
           lines for one product) asking for more units than are in stock.
        2. Compute subtotal, shipping fee and total.
        3. Reject the checkout if the customer cannot afford the total.
        4. Issue the shipment notice when anything ships.
        5. Reduce stock, debit the customer, then print the receipt.

        Raises:
            CheckoutError: One of its subclasses, before anything has
                been mutated.  Errors are not retried.
        """
        today = today or date.today()
        start_time = time.perf_counter()
        stage = CheckoutStage.START
        try:
            self._validate(cart, today)
            stage = self._advance(CheckoutStage.STOCK_VALIDATED, customer)

            subtotal = cart.subtotal()
            units = cart.shippable_units()
            shipping_fee = self.shipping_fee if units else Decimal("0")
            total = subtotal + shipping_fee
            stage = self._advance(CheckoutStage.TOTALS_COMPUTED, customer)

            if not customer.can_afford(total):
                raise InsufficientBalanceError(customer, total)

            # --- Settlement: no validation past this point ---
            shipment = None
            if shipping_fee > 0:
                shipment = self.shipping_service.ship(units)
                stage = self._advance(CheckoutStage.SHIPPING_DISPATCHED, customer)

            for line in cart.lines:
                line.product.reduce_quantity(line.quantity)
                PRODUCT_STOCK.set(line.product.quantity, product=line.product.name)
            stage = self._advance(CheckoutStage.INVENTORY_REDUCED, customer)

            customer.pay(total)
            stage = self._advance(CheckoutStage.PAID, customer)

            receipt = Receipt(
                customer_name=customer.name,
                lines=[ReceiptLine(ln.product.name, ln.quantity, ln.total) for ln in cart.lines],
                subtotal=subtotal,
                shipping_fee=shipping_fee,
                total=total,
                balance=customer.balance,
                shipment=shipment,
            )
            print(receipt.render(), file=self.stream)
            stage = self._advance(CheckoutStage.RECEIPT_EMITTED, customer)
            CHECKOUTS_COMPLETED_TOTAL.inc()
            logger.info(
                "Checkout completed",
                extra={
                    "extra": {
                        "customer": customer.name,
                        "subtotal": subtotal,
                        "shipping_fee": shipping_fee,
                        "total": total,
                        "balance": customer.balance,
                    }
                },
            )
            return receipt
        except CheckoutError as exc:
            CHECKOUT_ERROR_TOTAL.inc(type=exc.error_type)
            logger.warning(
                "Checkout rejected",
                extra={
                    "extra": {
                        "customer": customer.name,
                        "error_type": exc.error_type,
                        "stage": stage.value,
                        "reason": str(exc),
                    }
                },
            )
            raise
        finally:
            CHECKOUT_DURATION_SECONDS.observe(time.perf_counter() - start_time)
