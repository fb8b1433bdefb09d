"""Product search and filter predicates."""

from dataclasses import dataclass
from typing import Callable, Iterable

from .errors import ValidationError
from .models import Product

Predicate = Callable[[Product], bool]


def matches_query(product: Product, query: str) -> bool:
    """Case-insensitive substring match on title, description, category, brand or any tag."""
    needle = query.lower()
    fields = (product.title, product.description, product.category, product.brand)
    return any(needle in value.lower() for value in fields) or any(
        needle in tag.lower() for tag in product.tags
    )


def search_products(products: Iterable[Product], query: str | None) -> list[Product]:
    """Filter by search text. A blank query matches everything."""
    if query is None or not query.strip():
        return list(products)
    return [p for p in products if matches_query(p, query)]


def category_is(category: str) -> Predicate:
    return lambda p: p.category == category


def price_between(min_price: float | None, max_price: float | None) -> Predicate:
    def predicate(p: Product) -> bool:
        if min_price is not None and p.price < min_price:
            return False
        if max_price is not None and p.price > max_price:
            return False
        return True

    return predicate


def rating_at_least(threshold: float) -> Predicate:
    return lambda p: p.rating >= threshold


def in_stock(p: Product) -> bool:
    return p.stock > 0


@dataclass(frozen=True)
class ProductFilter:
    """
    Independent catalog predicates combined with AND.

    Unset fields contribute no predicate, so ``ProductFilter()`` matches
    every product. Price bounds are inclusive.
    """

    category: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_rating: float | None = None
    in_stock: bool = False

    def __post_init__(self) -> None:
        if self.min_price is not None and not self.min_price >= 0:
            raise ValidationError("must not be negative", "minPrice")
        if self.max_price is not None and not self.max_price >= 0:
            raise ValidationError("must not be negative", "maxPrice")
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValidationError("must not exceed maxPrice", "minPrice")
        if self.min_rating is not None and not 0 <= self.min_rating <= 5:
            raise ValidationError("must be between 0 and 5", "minRating")

    def predicates(self) -> list[Predicate]:
        """The active predicates, in no meaningful order."""
        result: list[Predicate] = []
        if self.category:
            result.append(category_is(self.category))
        if self.min_price is not None or self.max_price is not None:
            result.append(price_between(self.min_price, self.max_price))
        if self.min_rating is not None:
            result.append(rating_at_least(self.min_rating))
        if self.in_stock:
            result.append(in_stock)
        return result

    def matches(self, product: Product) -> bool:
        return all(predicate(product) for predicate in self.predicates())

    def apply(self, products: Iterable[Product]) -> list[Product]:
        predicates = self.predicates()
        return [p for p in products if all(pred(p) for pred in predicates)]
