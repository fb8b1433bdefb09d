"""Pytest fixtures for shopzing tests."""

import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from shopzing.catalog import CatalogStore
from shopzing.errors import PersistenceError
from shopzing.models import OrderItem, Product, ShippingAddress
from shopzing.orders import OrderStore
from shopzing.persistence import PersistenceAdapter


class StepClock:
    """Deterministic clock: each call returns a time one second later."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


class FailingAdapter(PersistenceAdapter):
    """Adapter whose saves fail once ``fail`` is switched on."""

    def __init__(self, data_dir: Path):
        super().__init__(data_dir)
        self.fail = False

    def save(self, key, records):
        if self.fail:
            raise PersistenceError(key, "disk full")
        super().save(key, records)


def make_product(id: str = "p1", **overrides) -> Product:
    fields = {
        "title": f"Product {id}",
        "description": "",
        "price": 10.0,
        "image": "",
        "category": "Misc",
        "rating": 3.0,
        "stock": 1,
        "brand": "Acme",
        "tags": [],
        "featured": False,
    }
    fields.update(overrides)
    return Product(id=id, **fields)


def make_item(product_id: str = "1", price: str = "10.00", quantity: int = 1, title: str = "Thing") -> OrderItem:
    return OrderItem(product_id=product_id, title=title, price=Decimal(price), quantity=quantity, image="")


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def adapter(temp_dir):
    return PersistenceAdapter(temp_dir / "data")


@pytest.fixture
def failing_adapter(temp_dir):
    return FailingAdapter(temp_dir / "data")


@pytest.fixture
def catalog(adapter):
    """Catalog seeded with the default products."""
    return CatalogStore(adapter)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def order_store(adapter, clock):
    return OrderStore(adapter, clock=clock)


@pytest.fixture
def address():
    return ShippingAddress(
        street="123 Main Street",
        city="New York",
        state="NY",
        zip_code="10001",
        country="United States",
    )


@pytest.fixture
def address_dict():
    return {
        "street": "123 Main Street",
        "city": "New York",
        "state": "NY",
        "zipCode": "10001",
        "country": "United States",
    }
