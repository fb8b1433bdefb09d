"""Tests for the service boundary, payment and checkout."""

import threading
import time
from decimal import Decimal

import pytest

from shopzing.errors import (
    CheckoutCancelledError,
    PaymentDeclinedError,
    PaymentTimeoutError,
    PermissionDeniedError,
    ProductNotFoundError,
    ValidationError,
)
from shopzing.payment import SimulatedPaymentGateway
from shopzing.services import CatalogService, OrderService, parse_address, parse_items


@pytest.fixture
def catalog_service(catalog):
    return CatalogService(catalog)


@pytest.fixture
def order_service(order_store):
    return OrderService(order_store, gateway=SimulatedPaymentGateway(delay=0))


@pytest.fixture
def items():
    return [
        {"productId": "1", "title": "Premium Wireless Headphones", "price": 10, "quantity": 2, "image": ""},
        {"productId": "5", "title": "Organic Coffee Beans", "price": 5, "quantity": 1},
    ]


class TestParsing:
    def test_parse_items(self, items):
        parsed = parse_items(items)
        assert parsed[0].product_id == "1"
        assert parsed[0].price == Decimal("10")
        assert parsed[1].image == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "not a list",
            [{"productId": "1", "title": "x", "price": 1}],
            [{"productId": "1", "title": "x", "price": 1, "quantity": "2"}],
            [{"productId": "1", "title": "x", "price": "abc", "quantity": 1}],
            ["not a dict"],
        ],
    )
    def test_parse_items_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_items(raw)

    def test_parse_address_requires_every_field(self, address_dict):
        assert parse_address(address_dict).zip_code == "10001"
        for key in address_dict:
            with pytest.raises(ValidationError, match=key):
                parse_address({**address_dict, key: "  "})


class TestCatalogService:
    def test_list_products_combines_search_and_filters(self, catalog_service):
        result = catalog_service.list_products(search="premium", category="Electronics", in_stock=True)
        assert [p.id for p in result] == ["1"]

    def test_empty_category_is_ignored(self, catalog_service):
        assert len(catalog_service.list_products(category="")) == 8

    def test_no_results_is_not_an_error(self, catalog_service):
        assert catalog_service.list_products(search="zzz") == []

    def test_mutations_require_admin(self, catalog_service):
        with pytest.raises(PermissionDeniedError):
            catalog_service.add_product({"title": "X", "price": 1, "category": "C"})
        with pytest.raises(PermissionDeniedError):
            catalog_service.update_product("1", {"stock": 1})
        with pytest.raises(PermissionDeniedError):
            catalog_service.delete_product("1")
        assert catalog_service.get_product("1").stock == 50

    def test_admin_mutations(self, catalog_service):
        added = catalog_service.add_product({"title": "X", "price": 1, "category": "C"}, is_admin=True)
        catalog_service.update_product(added.id, {"stock": 3}, is_admin=True)
        assert catalog_service.get_product(added.id).stock == 3
        catalog_service.delete_product(added.id, is_admin=True)
        with pytest.raises(ProductNotFoundError):
            catalog_service.get_product(added.id)

    def test_non_mapping_body(self, catalog_service):
        with pytest.raises(ValidationError):
            catalog_service.add_product(["title"], is_admin=True)


class TestOrderService:
    def test_create_order(self, order_service, items, address_dict):
        order = order_service.create_order("u1", items, address_dict, "Credit Card")
        assert order.total == Decimal("36.99")
        assert order_service.user_orders("u1")[0].id == order.id

    def test_all_orders_requires_admin(self, order_service):
        with pytest.raises(PermissionDeniedError):
            order_service.all_orders()
        assert order_service.all_orders(is_admin=True) == []

    def test_update_status_requires_admin(self, order_service, items, address_dict):
        order = order_service.create_order("u1", items, address_dict, "Card")
        with pytest.raises(PermissionDeniedError):
            order_service.update_status(order.id, "processing")
        assert order_service.update_status(order.id, "processing", is_admin=True).status == "processing"

    def test_invalid_request_creates_nothing(self, order_service, address_dict):
        with pytest.raises(ValidationError):
            order_service.create_order("u1", [], address_dict, "Card")
        assert order_service.all_orders(is_admin=True) == []

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "1e27", float("inf")])
    def test_unusable_prices_are_rejected(self, order_service, address_dict, price):
        items = [{"productId": "1", "title": "Thing", "price": price, "quantity": 1}]
        with pytest.raises(ValidationError, match="price"):
            order_service.create_order("u1", items, address_dict, "Card")
        assert order_service.all_orders(is_admin=True) == []


class TestPaymentGateway:
    def test_approves_after_delay(self):
        gateway = SimulatedPaymentGateway(delay=0.05)
        started = time.monotonic()
        assert gateway.authorize(Decimal("1.00")) is True
        assert time.monotonic() - started >= 0.04

    def test_declines(self):
        assert SimulatedPaymentGateway(delay=0, approve=False).authorize(Decimal("1")) is False

    def test_timeout_is_bounded(self):
        gateway = SimulatedPaymentGateway(delay=30)
        started = time.monotonic()
        with pytest.raises(PaymentTimeoutError):
            gateway.authorize(Decimal("1"), timeout=0.05)
        assert time.monotonic() - started < 5

    def test_cancel_interrupts_wait(self):
        gateway = SimulatedPaymentGateway(delay=30)
        cancel = threading.Event()
        threading.Timer(0.05, cancel.set).start()
        started = time.monotonic()
        with pytest.raises(CheckoutCancelledError):
            gateway.authorize(Decimal("1"), cancel=cancel)
        assert time.monotonic() - started < 5


class TestCheckout:
    def test_approved_checkout_records_order(self, order_service, items, address_dict):
        order = order_service.checkout("u1", items, address_dict, "Credit Card")
        assert order.status == "pending"
        assert order_service.get_order(order.id).total == Decimal("36.99")

    def test_declined_checkout_records_nothing(self, order_store, items, address_dict):
        service = OrderService(order_store, gateway=SimulatedPaymentGateway(delay=0, approve=False))
        with pytest.raises(PaymentDeclinedError):
            service.checkout("u1", items, address_dict, "Credit Card")
        assert len(order_store) == 0

    def test_cancelled_checkout_records_nothing(self, order_store, items, address_dict):
        service = OrderService(order_store, gateway=SimulatedPaymentGateway(delay=30))
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(CheckoutCancelledError):
            service.checkout("u1", items, address_dict, "Credit Card", cancel=cancel)
        assert len(order_store) == 0

    def test_timed_out_checkout_records_nothing(self, order_store, items, address_dict):
        service = OrderService(
            order_store, gateway=SimulatedPaymentGateway(delay=30), payment_timeout=0.01
        )
        with pytest.raises(PaymentTimeoutError):
            service.checkout("u1", items, address_dict, "Credit Card")
        assert len(order_store) == 0

    def test_invalid_checkout_is_not_charged(self, order_store, address_dict):
        class RecordingGateway(SimulatedPaymentGateway):
            calls = 0

            def authorize(self, amount, cancel=None, timeout=None):
                RecordingGateway.calls += 1
                return True

        service = OrderService(order_store, gateway=RecordingGateway(delay=0))
        with pytest.raises(ValidationError):
            service.checkout("u1", [], address_dict, "Card")
        assert RecordingGateway.calls == 0
