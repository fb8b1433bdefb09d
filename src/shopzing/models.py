"""Data models for shopzing."""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
import uuid

from .errors import ValidationError


def _utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _generate_id() -> str:
    """Generate a new product ID."""
    return str(uuid.uuid4())


def format_timestamp(value: datetime) -> str:
    """Serialize a UTC datetime as ISO 8601 with microseconds and a trailing Z."""
    return value.isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number or decimal string to Decimal without float noise."""
    if isinstance(value, bool):
        raise ValidationError(f"expected a number, got {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"expected a number, got {value!r}")
    if not result.is_finite():
        raise ValidationError(f"expected a finite number, got {value!r}")
    return result


# Order lifecycle

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "cancelled"}),
    "processing": frozenset({"shipped", "cancelled"}),
    "shipped": frozenset({"delivered"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}


# Catalog


PRODUCT_FIELDS = (
    "title",
    "description",
    "price",
    "image",
    "category",
    "rating",
    "stock",
    "brand",
    "tags",
    "featured",
)

REQUIRED_PRODUCT_FIELDS = ("title", "price", "category")

_PRODUCT_DEFAULTS: dict[str, Any] = {
    "description": "",
    "image": "",
    "rating": 0.0,
    "stock": 0,
    "brand": "",
    "featured": False,
}


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _dedupe(tags: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def validate_product_fields(fields: dict[str, Any], partial: bool = False) -> dict[str, Any]:
    """
    Validate and normalize product fields.

    Args:
        fields: Field values keyed by Product attribute name (no ``id``).
        partial: If True, only the provided fields are checked (update);
            otherwise required fields must be present and defaults are filled.

    Returns:
        A new dict with normalized values.

    Raises:
        ValidationError: On unknown fields or values that break product invariants.
    """
    if "id" in fields:
        raise ValidationError("product id is assigned by the catalog and cannot be set", "id")

    unknown = sorted(set(fields) - set(PRODUCT_FIELDS))
    if unknown:
        raise ValidationError(f"unknown field(s): {', '.join(unknown)}")

    if not partial:
        missing = [name for name in REQUIRED_PRODUCT_FIELDS if name not in fields]
        if missing:
            raise ValidationError(f"missing required field(s): {', '.join(missing)}")

    clean: dict[str, Any] = {}
    for name, value in fields.items():
        if name == "price":
            if not _is_number(value):
                raise ValidationError("must be a number", name)
            if value < 0:
                raise ValidationError("must not be negative", name)
            clean[name] = float(value)
        elif name == "rating":
            if not _is_number(value):
                raise ValidationError("must be a number", name)
            if not 0 <= value <= 5:
                raise ValidationError("must be between 0 and 5", name)
            clean[name] = float(value)
        elif name == "stock":
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValidationError("must be an integer", name)
            if value < 0:
                raise ValidationError("must not be negative", name)
            clean[name] = value
        elif name == "tags":
            if not isinstance(value, (list, tuple, set, frozenset)) or not all(
                isinstance(t, str) for t in value
            ):
                raise ValidationError("must be a list of strings", name)
            clean[name] = _dedupe(sorted(value) if isinstance(value, (set, frozenset)) else list(value))
        elif name == "featured":
            if not isinstance(value, bool):
                raise ValidationError("must be a boolean", name)
            clean[name] = value
        else:
            if not isinstance(value, str):
                raise ValidationError("must be a string", name)
            clean[name] = value

    if "title" in clean and not clean["title"].strip():
        raise ValidationError("must not be empty", "title")

    if not partial:
        for name, default in _PRODUCT_DEFAULTS.items():
            clean.setdefault(name, default)
        clean.setdefault("tags", [])

    return clean


@dataclass
class Product:
    """A catalog product."""

    id: str
    title: str
    description: str
    price: float
    image: str
    category: str
    rating: float
    stock: int
    brand: str
    tags: list[str] = field(default_factory=list)
    featured: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "image": self.image,
            "category": self.category,
            "rating": self.rating,
            "stock": self.stock,
            "brand": self.brand,
            "tags": list(self.tags),
            "featured": self.featured,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            price=float(data["price"]),
            image=data.get("image", ""),
            category=data["category"],
            rating=float(data.get("rating", 0.0)),
            stock=int(data.get("stock", 0)),
            brand=data.get("brand", ""),
            tags=list(data.get("tags", [])),
            featured=bool(data.get("featured", False)),
        )

    @classmethod
    def create(cls, fields: dict[str, Any]) -> "Product":
        """Create a new product with a generated ID from validated fields."""
        clean = validate_product_fields(fields)
        return cls(id=_generate_id(), **clean)

    def copy(self) -> "Product":
        """Return a detached copy safe to hand to callers."""
        return replace(self, tags=list(self.tags))


# Orders


@dataclass(frozen=True)
class OrderItem:
    """Snapshot of a product line at purchase time."""

    product_id: str
    title: str
    price: Decimal
    quantity: int
    image: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "title": self.title,
            "price": str(self.price),
            "quantity": self.quantity,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=str(data["productId"]),
            title=data["title"],
            price=to_decimal(data["price"]),
            quantity=int(data["quantity"]),
            image=data.get("image", ""),
        )

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "OrderItem":
        """Snapshot the purchasable fields of a product."""
        return cls(
            product_id=product.id,
            title=product.title,
            price=to_decimal(product.price),
            quantity=quantity,
            image=product.image,
        )


ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


@dataclass(frozen=True)
class ShippingAddress:
    street: str
    city: str
    state: str
    zip_code: str
    country: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingAddress":
        return cls(
            street=data["street"],
            city=data["city"],
            state=data["state"],
            zip_code=data["zipCode"],
            country=data["country"],
        )

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If any address field is blank.
        """
        for name in ADDRESS_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("is required", f"shippingAddress.{name}")


@dataclass
class Order:
    """A placed order. Totals are fixed at creation."""

    id: str
    user_id: str
    items: list[OrderItem]
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    status: str
    shipping_address: ShippingAddress
    payment_method: str
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": str(self.subtotal),
            "shipping": str(self.shipping),
            "tax": str(self.tax),
            "total": str(self.total),
            "status": self.status,
            "shippingAddress": self.shipping_address.to_dict(),
            "paymentMethod": self.payment_method,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        status = data["status"]
        if status not in ORDER_STATUSES:
            raise ValueError(f"unknown order status: {status}")
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            items=[OrderItem.from_dict(item) for item in data["items"]],
            subtotal=to_decimal(data["subtotal"]),
            shipping=to_decimal(data["shipping"]),
            tax=to_decimal(data["tax"]),
            total=to_decimal(data["total"]),
            status=status,
            shipping_address=ShippingAddress.from_dict(data["shippingAddress"]),
            payment_method=data["paymentMethod"],
            created_at=parse_timestamp(data["createdAt"]),
            updated_at=parse_timestamp(data["updatedAt"]),
        )

    def copy(self) -> "Order":
        # Items and address are frozen, only the list needs detaching.
        return replace(self, items=list(self.items))
