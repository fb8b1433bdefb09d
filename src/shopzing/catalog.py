"""In-memory product catalog with write-through persistence."""

from __future__ import annotations

import logging
from typing import Any

from . import recommendations
from .errors import PersistenceError, ProductNotFoundError, ShopzingError
from .filters import ProductFilter, search_products
from .models import Product, validate_product_fields
from .persistence import CATALOG_KEY, PersistenceAdapter
from .rwlock import ReadWriteLock
from .seed import DEFAULT_PRODUCTS

logger = logging.getLogger(__name__)


class CatalogStore:
    """
    Owns the mutable set of products.

    Reads run concurrently under a shared lock; mutations hold the
    exclusive lock through the in-memory change and the full-collection
    save. Every product handed out is a copy.
    """

    def __init__(self, adapter: PersistenceAdapter):
        """
        Initialize CatalogStore and load the stored catalog.

        Falls back to the default products when nothing usable is stored.
        """
        self._adapter = adapter
        self._lock = ReadWriteLock()
        self._products: list[Product] = self._load()

    def _load(self) -> list[Product]:
        records = self._adapter.load(CATALOG_KEY)
        if records is not None:
            try:
                for record in records:
                    validate_product_fields({k: v for k, v in record.items() if k != "id"})
                products = [Product.from_dict(r) for r in records]
                ids = [p.id for p in products]
                if len(ids) != len(set(ids)):
                    raise ValueError("duplicate product ids")
                logger.info("Loaded %d products", len(products))
                return products
            except (KeyError, TypeError, ValueError, ShopzingError) as e:
                logger.warning("Stored catalog is corrupt (%s); reseeding with defaults", e)

        products = [Product.from_dict(r) for r in DEFAULT_PRODUCTS]
        try:
            self._adapter.save(CATALOG_KEY, [p.to_dict() for p in products])
        except PersistenceError as e:
            logger.warning("Could not persist seed catalog: %s", e)
        logger.info("Seeded catalog with %d default products", len(products))
        return products

    def _persist(self, result: Any = None) -> None:
        """Save the full catalog. Must be called with the write lock held."""
        try:
            self._adapter.save(CATALOG_KEY, [p.to_dict() for p in self._products])
        except PersistenceError as e:
            logger.warning("Catalog change kept in memory but not persisted: %s", e)
            e.result = result
            raise

    def _index_of(self, product_id: str) -> int:
        for i, product in enumerate(self._products):
            if product.id == product_id:
                return i
        raise ProductNotFoundError(product_id)

    # Reads

    def list(self) -> list[Product]:
        """All products in insertion order."""
        with self._lock.read():
            return [p.copy() for p in self._products]

    def get_by_id(self, product_id: str) -> Product:
        """
        Raises:
            ProductNotFoundError: If the product doesn't exist.
        """
        with self._lock.read():
            return self._products[self._index_of(product_id)].copy()

    def by_category(self, category: str) -> list[Product]:
        with self._lock.read():
            return [p.copy() for p in self._products if p.category == category]

    def search(self, query: str | None) -> list[Product]:
        """Case-insensitive text search; a blank query returns the whole catalog."""
        with self._lock.read():
            return [p.copy() for p in search_products(self._products, query)]

    def filter(self, product_filter: ProductFilter) -> list[Product]:
        with self._lock.read():
            return [p.copy() for p in product_filter.apply(self._products)]

    def query(self, search: str | None = None, product_filter: ProductFilter | None = None) -> list[Product]:
        """Search, then narrow with the filter, in one consistent read."""
        with self._lock.read():
            found = search_products(self._products, search)
            if product_filter is not None:
                found = product_filter.apply(found)
            return [p.copy() for p in found]

    def featured(self) -> list[Product]:
        with self._lock.read():
            return [p.copy() for p in self._products if p.featured]

    def categories(self) -> list[str]:
        """Distinct categories in first-seen order."""
        with self._lock.read():
            return list(dict.fromkeys(p.category for p in self._products))

    def recommend(self, product_id: str, limit: int = recommendations.DEFAULT_LIMIT) -> list[Product]:
        """Products most similar to ``product_id``, best first. Empty for an unknown id."""
        with self._lock.read():
            source = next((p for p in self._products if p.id == product_id), None)
            if source is None:
                return []
            ranked = recommendations.rank(source, self._products, limit=limit)
            return [p.copy() for p in ranked]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._products)

    # Mutations

    def add(self, fields: dict[str, Any]) -> Product:
        """
        Add a product; the catalog assigns its ID.

        Returns:
            The stored product.

        Raises:
            ValidationError: If the fields break product invariants.
            PersistenceError: If the save failed (the product is still added).
        """
        product = Product.create(fields)
        with self._lock.write():
            self._products.append(product)
            logger.info("Added product %s (%s)", product.id, product.title)
            self._persist(product.copy())
            return product.copy()

    def update(self, product_id: str, fields: dict[str, Any]) -> Product:
        """
        Merge ``fields`` into an existing product.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            ValidationError: If any field is unknown or out of range.
            PersistenceError: If the save failed (the update is still applied).
        """
        clean = validate_product_fields(fields, partial=True)
        with self._lock.write():
            product = self._products[self._index_of(product_id)]
            for name, value in clean.items():
                setattr(product, name, value)
            logger.info("Updated product %s: %s", product_id, ", ".join(sorted(clean)) or "no changes")
            self._persist(product.copy())
            return product.copy()

    def delete(self, product_id: str) -> Product:
        """
        Remove a product. Orders keep their own item snapshots.

        Returns:
            The removed product.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            PersistenceError: If the save failed (the product is still removed).
        """
        with self._lock.write():
            removed = self._products.pop(self._index_of(product_id))
            logger.info("Deleted product %s (%s)", removed.id, removed.title)
            self._persist(removed.copy())
            return removed

    def flush(self) -> None:
        """Persist the current catalog again, e.g. after a PersistenceError."""
        with self._lock.write():
            self._persist()
