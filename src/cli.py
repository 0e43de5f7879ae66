"""
Command-line entry point for the checkout demo.

Runs one fixed scenario: a customer with a balance of 600 buys cheese,
a TV, a scratch card and biscuits.  The shipment notice and receipt go
to stdout; a rejected checkout is reported on stderr with exit status 1.
Business logic lives in :mod:`checkout` so it stays testable without
any I/O.
"""

import logging
import sys
from datetime import date, timedelta
from typing import Dict, Optional

from cart import Cart
from checkout import CheckoutService
from customer import Customer
from errors import CheckoutError
from logging_config import configure_logging
from metrics import generate_metrics_text
from products import Product, durable, non_shippable, perishable
from settings import Settings

logger = logging.getLogger(__name__)


def build_catalog(today: date) -> Dict[str, Product]:
    """Return the demo catalog.  Perishables expire a month after ``today``."""
    best_before = today + timedelta(days=30)
    return {
        "cheese": perishable("Cheese", 100, 5, weight=200, expiry_date=best_before),
        "tv": durable("TV", 150, 3, weight=5000),
        "scratch_card": non_shippable("ScratchCard", 50, 10),
        "biscuits": perishable("Biscuits", 150, 2, weight=700, expiry_date=best_before),
    }


def build_cart(catalog: Dict[str, Product]) -> Cart:
    cart = Cart()
    cart.add(catalog["cheese"], 2)
    cart.add(catalog["tv"], 1)
    cart.add(catalog["scratch_card"], 1)
    cart.add(catalog["biscuits"], 1)
    return cart


def run_demo(settings: Settings, today: Optional[date] = None) -> int:
    """Run the fixed checkout scenario and return a process exit status."""
    today = today or date.today()
    customer = Customer("Hakim", 600)
    catalog = build_catalog(today)
    service = CheckoutService(shipping_fee=settings.shipping_fee)
    try:
        cart = build_cart(catalog)
        service.process(customer, cart, today=today)
    except CheckoutError as exc:
        print(f"Checkout failed: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    settings = Settings.from_env()
    configure_logging(settings.log_dir, settings.log_level)
    logger.debug("Starting checkout demo", extra={"extra": {"shipping_fee": settings.shipping_fee}})
    try:
        status = run_demo(settings)
    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting.")
        return 0
    logger.debug(
        "Checkout metrics",
        extra={"extra": {"metrics": generate_metrics_text().decode("utf-8")}},
    )
    return status


if __name__ == "__main__":
    sys.exit(main())
