"""Boundary layer between callers (API, CLI) and the stores."""

import logging
import threading
from typing import Any

from .catalog import CatalogStore
from .config import Settings
from .errors import PaymentDeclinedError, PermissionDeniedError, ValidationError
from .filters import ProductFilter
from .models import Order, OrderItem, Product, ShippingAddress, to_decimal
from .orders import OrderStore, compute_totals, validate_order_request
from .payment import SimulatedPaymentGateway
from .persistence import PersistenceAdapter

logger = logging.getLogger(__name__)


def _require_admin(is_admin: bool, action: str) -> None:
    if not is_admin:
        raise PermissionDeniedError(action)


def _require_mapping(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError("must be an object", name)
    return value


def parse_items(raw_items: Any) -> list[OrderItem]:
    """
    Build item snapshots from caller-supplied records.

    Each record needs ``productId``, ``title``, ``price`` and ``quantity``;
    ``image`` is optional.

    Raises:
        ValidationError: If the list or any record is malformed.
    """
    if not isinstance(raw_items, list):
        raise ValidationError("must be a list", "items")

    items = []
    for i, raw in enumerate(raw_items):
        name = f"items[{i}]"
        raw = _require_mapping(raw, name)
        missing = [k for k in ("productId", "title", "price", "quantity") if k not in raw]
        if missing:
            raise ValidationError(f"missing {', '.join(missing)}", name)
        quantity = raw["quantity"]
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise ValidationError("must be an integer", f"{name}.quantity")
        try:
            price = to_decimal(raw["price"])
        except ValidationError as e:
            raise ValidationError(str(e), f"{name}.price") from e
        items.append(
            OrderItem(
                product_id=str(raw["productId"]),
                title=str(raw["title"]),
                price=price,
                quantity=quantity,
                image=str(raw.get("image", "")),
            )
        )
    return items


def parse_address(raw: Any) -> ShippingAddress:
    """
    Raises:
        ValidationError: If any address field is missing or blank.
    """
    raw = _require_mapping(raw, "shippingAddress")
    values = {}
    for key in ("street", "city", "state", "zipCode", "country"):
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("is required", f"shippingAddress.{key}")
        values[key] = value
    return ShippingAddress.from_dict(values)


class CatalogService:
    """Catalog operations for callers. Mutations require the admin role."""

    def __init__(self, catalog: CatalogStore):
        self.catalog = catalog

    def list_products(
        self,
        search: str | None = None,
        category: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        min_rating: float | None = None,
        in_stock: bool = False,
    ) -> list[Product]:
        """Storefront listing: text search narrowed by the filter predicates."""
        product_filter = ProductFilter(
            category=category or None,
            min_price=min_price,
            max_price=max_price,
            min_rating=min_rating,
            in_stock=in_stock,
        )
        return self.catalog.query(search=search, product_filter=product_filter)

    def get_product(self, product_id: str) -> Product:
        return self.catalog.get_by_id(product_id)

    def products_by_category(self, category: str) -> list[Product]:
        return self.catalog.by_category(category)

    def featured_products(self) -> list[Product]:
        return self.catalog.featured()

    def categories(self) -> list[str]:
        return self.catalog.categories()

    def recommendations(self, product_id: str) -> list[Product]:
        return self.catalog.recommend(product_id)

    def add_product(self, fields: Any, is_admin: bool = False) -> Product:
        _require_admin(is_admin, "add products")
        return self.catalog.add(_require_mapping(fields, "product"))

    def update_product(self, product_id: str, fields: Any, is_admin: bool = False) -> Product:
        _require_admin(is_admin, "update products")
        return self.catalog.update(product_id, _require_mapping(fields, "product"))

    def delete_product(self, product_id: str, is_admin: bool = False) -> Product:
        _require_admin(is_admin, "delete products")
        return self.catalog.delete(product_id)

    def flush(self, is_admin: bool = False) -> None:
        """Retry persisting the catalog after a PersistenceError."""
        _require_admin(is_admin, "persist the catalog")
        self.catalog.flush()


class OrderService:
    """Order placement, history and fulfilment for callers."""

    def __init__(
        self,
        orders: OrderStore,
        gateway: SimulatedPaymentGateway | None = None,
        payment_timeout: float | None = None,
    ):
        self.orders = orders
        self.gateway = gateway or SimulatedPaymentGateway()
        self.payment_timeout = payment_timeout

    def _parse_request(
        self, user_id: Any, items: Any, shipping_address: Any, payment_method: Any
    ) -> tuple[str, list[OrderItem], ShippingAddress, str]:
        parsed_items = parse_items(items)
        address = parse_address(shipping_address)
        validate_order_request(user_id, parsed_items, address, payment_method)
        return user_id, parsed_items, address, payment_method

    def create_order(
        self, user_id: Any, items: Any, shipping_address: Any, payment_method: Any
    ) -> Order:
        """Record an order whose payment was handled elsewhere."""
        request = self._parse_request(user_id, items, shipping_address, payment_method)
        return self.orders.create_order(*request)

    def checkout(
        self,
        user_id: Any,
        items: Any,
        shipping_address: Any,
        payment_method: Any,
        cancel: threading.Event | None = None,
    ) -> Order:
        """
        Authorize payment, then record the order.

        Nothing is stored unless payment is approved in time and not cancelled.

        Raises:
            ValidationError: If the request is incomplete (nothing is charged).
            PaymentDeclinedError: If the gateway declines.
            PaymentTimeoutError: If authorization exceeds the payment timeout.
            CheckoutCancelledError: If ``cancel`` is set during authorization.
        """
        user_id, parsed_items, address, payment_method = self._parse_request(
            user_id, items, shipping_address, payment_method
        )
        totals = compute_totals(parsed_items)
        approved = self.gateway.authorize(totals.total, cancel=cancel, timeout=self.payment_timeout)
        if not approved:
            logger.info("Checkout for user %s declined, no order recorded", user_id)
            raise PaymentDeclinedError(totals.total)
        return self.orders.create_order(user_id, parsed_items, address, payment_method)

    def get_order(self, order_id: str) -> Order:
        return self.orders.get_by_id(order_id)

    def user_orders(self, user_id: str) -> list[Order]:
        return self.orders.get_user_orders(user_id)

    def all_orders(self, is_admin: bool = False) -> list[Order]:
        _require_admin(is_admin, "view all orders")
        return self.orders.get_all_orders()

    def update_status(self, order_id: str, status: Any, is_admin: bool = False) -> Order:
        _require_admin(is_admin, "change order status")
        if not isinstance(status, str):
            raise ValidationError("must be a string", "status")
        return self.orders.update_status(order_id, status)

    def flush(self, is_admin: bool = False) -> None:
        """Retry persisting the ledger after a PersistenceError."""
        _require_admin(is_admin, "persist the order ledger")
        self.orders.flush()


def build_services(settings: Settings) -> tuple[CatalogService, OrderService]:
    """Construct the stores once and wire them into the service layer."""
    logger.info("Using data directory %s", settings.data_dir)
    adapter = PersistenceAdapter(settings.data_dir)
    catalog = CatalogStore(adapter)
    orders = OrderStore(adapter)
    gateway = SimulatedPaymentGateway(delay=settings.payment_delay)
    return (
        CatalogService(catalog),
        OrderService(orders, gateway=gateway, payment_timeout=settings.payment_timeout),
    )
