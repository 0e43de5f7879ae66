# --- path bootstrap (keep this at the very top) ---
from pathlib import Path
import sys

SRC = Path(__file__).resolve().parents[1] / "src"
if SRC.is_dir() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
# --- end path bootstrap ---

import io
import unittest
from datetime import date, timedelta
from decimal import Decimal

from cart import Cart
from checkout import CheckoutService, CheckoutStage
from customer import Customer
from errors import (
    CheckoutError,
    EmptyCartError,
    ExpiredProductError,
    InsufficientBalanceError,
    InsufficientStockError,
    InvalidCartAdditionError,
)
from metrics import (
    CHECKOUT_DURATION_SECONDS,
    CHECKOUT_ERROR_TOTAL,
    CHECKOUTS_COMPLETED_TOTAL,
    PRODUCT_STOCK,
    SHIPMENTS_TOTAL,
    reset_metrics,
)
from products import Product, ProductKind, ShippableUnit, durable, non_shippable, perishable
from shipping_service import ShippingService

TODAY = date(2026, 1, 15)


def demo_catalog(expiry: date = TODAY + timedelta(days=10)):
    """Cheese, TV, ScratchCard and Biscuits as sold in the demo."""
    return (
        perishable("Cheese", 100, 5, weight=200, expiry_date=expiry),
        durable("TV", 150, 3, weight=5000),
        non_shippable("ScratchCard", 50, 10),
        perishable("Biscuits", 150, 2, weight=700, expiry_date=expiry),
    )


def demo_cart(cheese, tv, scratch, biscuits) -> Cart:
    cart = Cart()
    cart.add(cheese, 2)
    cart.add(tv, 1)
    cart.add(scratch, 1)
    cart.add(biscuits, 1)
    return cart


class TestProducts(unittest.TestCase):
    """Variant classification, expiry boundary and stock reduction."""

    def test_kinds_follow_fields(self):
        cheese, tv, scratch, _ = demo_catalog()
        self.assertEqual(cheese.kind, ProductKind.PERISHABLE_SHIPPABLE)
        self.assertEqual(tv.kind, ProductKind.DURABLE_SHIPPABLE)
        self.assertEqual(scratch.kind, ProductKind.NON_SHIPPABLE)
        self.assertTrue(cheese.requires_shipping)
        self.assertTrue(tv.requires_shipping)
        self.assertFalse(scratch.requires_shipping)

    def test_price_is_decimal(self):
        p = Product("Gum", "0.10", 3)
        self.assertEqual(p.price, Decimal("0.10"))
        self.assertEqual(Product("Gum", 0.1, 3).price, Decimal("0.1"))

    def test_expiry_is_strictly_after(self):
        cheese = perishable("Cheese", 100, 5, weight=200, expiry_date=TODAY)
        self.assertFalse(cheese.is_expired(TODAY))
        self.assertTrue(cheese.is_expired(TODAY + timedelta(days=1)))
        self.assertFalse(cheese.is_expired(TODAY - timedelta(days=1)))

    def test_non_perishables_never_expire(self):
        _, tv, scratch, _ = demo_catalog()
        far_future = date(2999, 1, 1)
        self.assertFalse(tv.is_expired(far_future))
        self.assertFalse(scratch.is_expired(far_future))

    def test_reduce_quantity(self):
        tv = durable("TV", 150, 3, weight=5000)
        tv.reduce_quantity(2)
        self.assertEqual(tv.quantity, 1)

    def test_reduce_quantity_over_stock_is_ignored(self):
        tv = durable("TV", 150, 3, weight=5000)
        with self.assertLogs("products", level="WARNING"):
            tv.reduce_quantity(4)
        self.assertEqual(tv.quantity, 3)

    def test_invalid_construction(self):
        with self.assertRaises(ValueError):
            Product("Bad", -1, 1)
        with self.assertRaises(ValueError):
            Product("Bad", 1, -1)
        with self.assertRaises(ValueError):
            durable("Bad", 1, 1, weight=0)

    def test_shippable_unit(self):
        cheese, _, scratch, _ = demo_catalog()
        self.assertEqual(cheese.shippable_unit(), ShippableUnit("Cheese", 200))
        with self.assertRaises(ValueError):
            scratch.shippable_unit()


class TestCart(unittest.TestCase):

    def setUp(self):
        self.cheese, self.tv, self.scratch, self.biscuits = demo_catalog()

    def test_add_over_stock_rejected(self):
        cart = Cart()
        with self.assertRaises(InvalidCartAdditionError) as ctx:
            cart.add(self.biscuits, 3)
        self.assertIn("stock", str(ctx.exception).lower())
        self.assertIsInstance(ctx.exception, ValueError)
        self.assertTrue(cart.is_empty())

    def test_add_non_positive_rejected(self):
        cart = Cart()
        for qty in (0, -1):
            with self.assertRaises(InvalidCartAdditionError):
                cart.add(self.tv, qty)
        self.assertEqual(len(cart), 0)

    def test_add_up_to_stock_allowed(self):
        cart = Cart()
        cart.add(self.biscuits, 2)
        self.assertEqual(len(cart), 1)
        self.assertEqual(cart.lines[0].total, Decimal("300"))

    def test_subtotal(self):
        cart = demo_cart(self.cheese, self.tv, self.scratch, self.biscuits)
        self.assertEqual(cart.subtotal(), Decimal("600"))
        self.assertEqual(Cart().subtotal(), Decimal("0"))

    def test_shippable_units_expand_per_unit_in_line_order(self):
        cart = demo_cart(self.cheese, self.tv, self.scratch, self.biscuits)
        units = cart.shippable_units()
        self.assertEqual(
            [u.name for u in units], ["Cheese", "Cheese", "TV", "Biscuits"]
        )
        self.assertEqual(sum(u.weight for u in units), 6100)

    def test_read_only_queries_are_repeatable(self):
        cart = demo_cart(self.cheese, self.tv, self.scratch, self.biscuits)
        self.assertEqual(cart.subtotal(), cart.subtotal())
        first = cart.shippable_units()
        first.clear()
        self.assertEqual(len(cart.shippable_units()), 4)


class TestShippingService(unittest.TestCase):

    def setUp(self):
        reset_metrics()
        self.out = io.StringIO()
        self.service = ShippingService(stream=self.out)

    def test_notice_counts_in_first_seen_order(self):
        units = [
            ShippableUnit("TV", 5000),
            ShippableUnit("Cheese", 200),
            ShippableUnit("TV", 5000),
        ]
        notice = self.service.build_notice(units)
        self.assertEqual(list(notice.counts.items()), [("TV", 2), ("Cheese", 1)])
        self.assertEqual(notice.total_weight, 10200)

    def test_ship_prints_notice(self):
        units = [ShippableUnit("Cheese", 200)] * 2 + [
            ShippableUnit("TV", 5000),
            ShippableUnit("Biscuits", 700),
        ]
        self.service.ship(units)
        self.assertEqual(
            self.out.getvalue(),
            "** Shipment notice **\n"
            "2x Cheese\n"
            "1x TV\n"
            "1x Biscuits\n"
            "Total package weight 6.1kg\n",
        )
        self.assertEqual(SHIPMENTS_TOTAL.value(), 1)

    def test_weight_has_one_decimal(self):
        notice = self.service.build_notice([ShippableUnit("Feather", 40)])
        self.assertTrue(notice.render().endswith("Total package weight 0.0kg"))
        notice = self.service.build_notice([ShippableUnit("Brick", 2000)])
        self.assertTrue(notice.render().endswith("Total package weight 2.0kg"))


class TestCheckout(unittest.TestCase):
    """Validation order, zero side effects on failure, and settlement."""

    def setUp(self):
        reset_metrics()
        self.out = io.StringIO()
        self.service = CheckoutService(stream=self.out)
        self.cheese, self.tv, self.scratch, self.biscuits = demo_catalog()
        self.products = (self.cheese, self.tv, self.scratch, self.biscuits)

    def stock(self):
        return [p.quantity for p in self.products]

    def assert_untouched(self, customer, balance, stock):
        self.assertEqual(customer.balance, balance)
        self.assertEqual(self.stock(), stock)
        self.assertEqual(self.out.getvalue(), "")

    def test_demo_scenario_fails_on_balance(self):
        customer = Customer("Hakim", 600)
        cart = demo_cart(*self.products)
        before = self.stock()
        with self.assertRaises(InsufficientBalanceError) as ctx:
            self.service.process(customer, cart, today=TODAY)
        self.assertEqual(ctx.exception.amount, Decimal("630"))
        self.assert_untouched(customer, Decimal("600"), before)
        self.assertEqual(CHECKOUT_ERROR_TOTAL.value(type="balance_insufficient"), 1)

    def test_successful_checkout_settles_and_prints(self):
        customer = Customer("Hakim", 1000)
        cart = demo_cart(*self.products)
        receipt = self.service.process(customer, cart, today=TODAY)

        self.assertEqual(self.stock(), [3, 2, 9, 1])
        self.assertEqual(customer.balance, Decimal("370"))
        self.assertEqual(receipt.subtotal, Decimal("600"))
        self.assertEqual(receipt.shipping_fee, Decimal("30"))
        self.assertEqual(receipt.total, Decimal("630"))
        self.assertEqual(receipt.balance, Decimal("370"))
        self.assertEqual(receipt.shipment.total_weight, 6100)

        output = self.out.getvalue()
        self.assertEqual(
            output,
            "** Shipment notice **\n"
            "2x Cheese\n"
            "1x TV\n"
            "1x Biscuits\n"
            "Total package weight 6.1kg\n"
            "** Checkout receipt **\n"
            "2x Cheese    200.00\n"
            "1x TV    150.00\n"
            "1x ScratchCard    50.00\n"
            "1x Biscuits    150.00\n"
            "-----------------------\n"
            "Subtotal        600.00\n"
            "Shipping        30.00\n"
            "Amount Paid     630.00\n"
            "Balance Left    370.00\n",
        )
        self.assertEqual(CHECKOUTS_COMPLETED_TOTAL.value(), 1)
        self.assertEqual(PRODUCT_STOCK.value(product="TV"), 2.0)
        self.assertEqual(CHECKOUT_DURATION_SECONDS.count(), 1)

    def test_exact_balance_is_affordable(self):
        customer = Customer("Hakim", 630)
        self.service.process(customer, demo_cart(*self.products), today=TODAY)
        self.assertEqual(customer.balance, Decimal("0"))

    def test_no_shipping_fee_without_shippables(self):
        customer = Customer("Hakim", 500)
        cart = Cart()
        cart.add(self.scratch, 10)
        receipt = self.service.process(customer, cart, today=TODAY)
        self.assertEqual(receipt.shipping_fee, Decimal("0"))
        self.assertIsNone(receipt.shipment)
        self.assertEqual(customer.balance, Decimal("0"))
        self.assertNotIn("Shipment notice", self.out.getvalue())
        self.assertEqual(self.scratch.quantity, 0)

    def test_shipping_fee_is_flat(self):
        customer = Customer("Hakim", 10_000)
        cart = Cart()
        cart.add(self.tv, 3)
        receipt = self.service.process(customer, cart, today=TODAY)
        self.assertEqual(receipt.shipping_fee, Decimal("30"))
        self.assertEqual(receipt.total, Decimal("480"))

    def test_configured_shipping_fee(self):
        service = CheckoutService(shipping_fee="12.5", stream=self.out)
        customer = Customer("Hakim", 200)
        cart = Cart()
        cart.add(self.tv, 1)
        receipt = service.process(customer, cart, today=TODAY)
        self.assertEqual(receipt.total, Decimal("162.5"))

    def test_empty_cart(self):
        customer = Customer("Hakim", 600)
        before = self.stock()
        with self.assertRaises(EmptyCartError):
            self.service.process(customer, Cart(), today=TODAY)
        self.assert_untouched(customer, Decimal("600"), before)
        self.assertEqual(CHECKOUT_ERROR_TOTAL.value(type="empty_cart"), 1)

    def test_expired_product_aborts_whole_checkout(self):
        cheese, tv, scratch, biscuits = demo_catalog(expiry=TODAY - timedelta(days=1))
        self.products = (cheese, tv, scratch, biscuits)
        customer = Customer("Hakim", 10_000)
        cart = Cart()
        cart.add(tv, 1)
        cart.add(cheese, 1)
        before = self.stock()
        with self.assertRaises(ExpiredProductError) as ctx:
            self.service.process(customer, cart, today=TODAY)
        self.assertIs(ctx.exception.product, cheese)
        self.assert_untouched(customer, Decimal("10000"), before)

    def test_stock_drop_after_adding_is_caught(self):
        customer = Customer("Hakim", 10_000)
        cart = Cart()
        cart.add(self.scratch, 1)
        cart.add(self.biscuits, 2)
        self.biscuits.reduce_quantity(1)
        before = self.stock()
        with self.assertRaises(InsufficientStockError) as ctx:
            self.service.process(customer, cart, today=TODAY)
        self.assertEqual(ctx.exception.requested, 2)
        self.assert_untouched(customer, Decimal("10000"), before)

    def test_repeated_product_lines_checked_against_total_stock(self):
        customer = Customer("Hakim", 10_000)
        cart = Cart()
        cart.add(self.tv, 2)
        cart.add(self.scratch, 1)
        cart.add(self.tv, 2)
        before = self.stock()
        with self.assertRaises(InsufficientStockError) as ctx:
            self.service.process(customer, cart, today=TODAY)
        self.assertIs(ctx.exception.product, self.tv)
        self.assertEqual(ctx.exception.requested, 4)
        self.assert_untouched(customer, Decimal("10000"), before)
        self.assertEqual(CHECKOUT_ERROR_TOTAL.value(type="stock_insufficient"), 1)

    def test_repeated_product_lines_within_stock_settle(self):
        customer = Customer("Hakim", 10_000)
        cart = Cart()
        cart.add(self.tv, 1)
        cart.add(self.tv, 2)
        receipt = self.service.process(customer, cart, today=TODAY)
        self.assertEqual(self.tv.quantity, 0)
        self.assertEqual(receipt.total, Decimal("480"))
        self.assertEqual(receipt.shipment.counts, {"TV": 3})

    def test_invalid_shipping_fee_rejected(self):
        for fee in (-20, "-0.01", "NaN", "Infinity"):
            with self.assertRaises(ValueError):
                CheckoutService(shipping_fee=fee, stream=self.out)

    def test_errors_share_base_class(self):
        for exc_type in (
            EmptyCartError,
            ExpiredProductError,
            InsufficientStockError,
            InsufficientBalanceError,
            InvalidCartAdditionError,
        ):
            self.assertTrue(issubclass(exc_type, CheckoutError))

    def test_stage_logging(self):
        customer = Customer("Hakim", 1000)
        with self.assertLogs("checkout", level="DEBUG") as logs:
            self.service.process(customer, demo_cart(*self.products), today=TODAY)
        stages = [r.extra["stage"] for r in logs.records if r.getMessage() == "Checkout stage reached"]
        self.assertEqual(stages, [s.value for s in CheckoutStage][1:])


if __name__ == "__main__":
    unittest.main(verbosity=2)
