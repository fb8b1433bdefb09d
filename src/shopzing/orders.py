"""Append-mostly order ledger with write-through persistence."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, NamedTuple, Sequence

from .errors import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    PersistenceError,
    ShopzingError,
    ValidationError,
)
from .models import (
    ALLOWED_TRANSITIONS,
    ORDER_STATUSES,
    Order,
    OrderItem,
    ShippingAddress,
    _utc_now,
)
from .persistence import ORDERS_KEY, PersistenceAdapter
from .rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

SHIPPING_FEE = Decimal("9.99")
TAX_RATE = Decimal("0.08")
CENTS = Decimal("0.01")


class OrderTotals(NamedTuple):
    """Money breakdown fixed at order creation."""

    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, halves away from zero."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_totals(items: Sequence[OrderItem]) -> OrderTotals:
    subtotal = round_money(sum((item.line_total for item in items), Decimal("0.00")))
    tax = round_money(subtotal * TAX_RATE)
    total = round_money(subtotal + SHIPPING_FEE + tax)
    return OrderTotals(subtotal=subtotal, shipping=SHIPPING_FEE, tax=tax, total=total)


def validate_order_request(
    user_id: str,
    items: Sequence[OrderItem],
    shipping_address: ShippingAddress,
    payment_method: str,
) -> None:
    """
    Check everything an order needs before anything is charged or stored.

    Raises:
        ValidationError: On a blank user or payment method, an empty or
            invalid item list, or a blank address field.
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("is required", "userId")
    if not items:
        raise ValidationError("order must contain at least one item", "items")
    for i, item in enumerate(items):
        if not isinstance(item.quantity, int) or isinstance(item.quantity, bool) or item.quantity < 1:
            raise ValidationError("must be at least 1", f"items[{i}].quantity")
        if not item.price.is_finite():
            raise ValidationError("must be a finite number", f"items[{i}].price")
        if item.price < 0:
            raise ValidationError("must not be negative", f"items[{i}].price")
        try:
            in_cents = item.price.quantize(CENTS)
        except InvalidOperation:
            raise ValidationError("is too large", f"items[{i}].price")
        if item.price != in_cents:
            raise ValidationError("must have at most two decimal places", f"items[{i}].price")
        if not item.product_id:
            raise ValidationError("is required", f"items[{i}].productId")
    shipping_address.validate()
    if not isinstance(payment_method, str) or not payment_method.strip():
        raise ValidationError("is required", "paymentMethod")


def _newest_first(order: Order) -> tuple[datetime, int, str]:
    # Numeric ids without leading zeros order correctly by (length, text).
    return (order.created_at, len(order.id), order.id)


def _numeric_id(order_id: str) -> int:
    return int(order_id) if order_id.isdigit() else 0


class OrderStore:
    """
    Owns the order ledger.

    Orders are appended at checkout and afterwards only change status;
    they are never removed.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize OrderStore and load the stored ledger.

        Args:
            adapter: Durable storage for the ledger.
            clock: Source of aware UTC timestamps (overridable for testing).
        """
        self._adapter = adapter
        self._clock = clock
        self._lock = ReadWriteLock()
        self._orders: list[Order] = self._load()
        self._last_id = max((_numeric_id(o.id) for o in self._orders), default=0)

    def _load(self) -> list[Order]:
        records = self._adapter.load(ORDERS_KEY)
        if records is None:
            return []
        try:
            orders = [Order.from_dict(r) for r in records]
        except (KeyError, TypeError, ValueError, ShopzingError) as e:
            logger.warning("Stored order ledger is corrupt (%s); starting empty", e)
            return []
        logger.info("Loaded %d orders", len(orders))
        return orders

    def _persist(self, result: Any = None) -> None:
        """Save the full ledger. Must be called with the write lock held."""
        try:
            self._adapter.save(ORDERS_KEY, [o.to_dict() for o in self._orders])
        except PersistenceError as e:
            logger.warning("Ledger change kept in memory but not persisted: %s", e)
            e.result = result
            raise

    def _next_id(self, now: datetime) -> str:
        candidate = int(now.timestamp() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    def _find(self, order_id: str) -> Order:
        for order in self._orders:
            if order.id == order_id:
                return order
        raise OrderNotFoundError(order_id)

    def create_order(
        self,
        user_id: str,
        items: Sequence[OrderItem],
        shipping_address: ShippingAddress,
        payment_method: str,
    ) -> Order:
        """
        Append a new pending order.

        Returns:
            The stored order; its ``id`` identifies it from now on.

        Raises:
            ValidationError: If the request is incomplete (nothing is stored).
            PersistenceError: If the save failed (the order is still recorded).
        """
        validate_order_request(user_id, items, shipping_address, payment_method)
        totals = compute_totals(items)

        with self._lock.write():
            now = self._clock()
            order = Order(
                id=self._next_id(now),
                user_id=user_id,
                items=list(items),
                subtotal=totals.subtotal,
                shipping=totals.shipping,
                tax=totals.tax,
                total=totals.total,
                status="pending",
                shipping_address=shipping_address,
                payment_method=payment_method,
                created_at=now,
                updated_at=now,
            )
            self._orders.append(order)
            logger.info(
                "Created order %s for user %s: %d item(s), total %s",
                order.id, user_id, len(order.items), order.total,
            )
            self._persist(order.copy())
            return order.copy()

    def get_by_id(self, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        with self._lock.read():
            return self._find(order_id).copy()

    def get_user_orders(self, user_id: str) -> list[Order]:
        """A user's orders, newest first."""
        with self._lock.read():
            mine = [o.copy() for o in self._orders if o.user_id == user_id]
        mine.sort(key=_newest_first, reverse=True)
        return mine

    def get_all_orders(self) -> list[Order]:
        """Every order, newest first."""
        with self._lock.read():
            everything = [o.copy() for o in self._orders]
        everything.sort(key=_newest_first, reverse=True)
        return everything

    def update_status(self, order_id: str, status: str) -> Order:
        """
        Move an order along its lifecycle.

        Allowed: pending -> processing|cancelled, processing -> shipped|cancelled,
        shipped -> delivered. Delivered and cancelled orders are final.

        Raises:
            ValidationError: If ``status`` is not a known status.
            OrderNotFoundError: If the order doesn't exist.
            InvalidStatusTransitionError: If the move is not allowed.
            PersistenceError: If the save failed (the change is still applied).
        """
        if status not in ORDER_STATUSES:
            raise ValidationError(
                f"must be one of {', '.join(ORDER_STATUSES)}", "status"
            )

        with self._lock.write():
            order = self._find(order_id)
            if status not in ALLOWED_TRANSITIONS[order.status]:
                raise InvalidStatusTransitionError(order_id, order.status, status)
            previous = order.status
            order.status = status
            order.updated_at = self._clock()
            logger.info("Order %s: %s -> %s", order_id, previous, status)
            self._persist(order.copy())
            return order.copy()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._orders)

    def flush(self) -> None:
        """Persist the current ledger again, e.g. after a PersistenceError."""
        with self._lock.write():
            self._persist()
