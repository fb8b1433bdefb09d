"""Content-based product similarity."""

from typing import Iterable

from .models import Product

DEFAULT_LIMIT = 4

CATEGORY_WEIGHT = 3
BRAND_WEIGHT = 2
PRICE_WEIGHT = 1
RATING_WEIGHT = 1

# Relative price gap and absolute rating gap still counted as "similar".
PRICE_TOLERANCE = 0.5
RATING_TOLERANCE = 0.5


def _similar_price(a: float, b: float) -> bool:
    high = max(a, b)
    if high == 0:
        return True
    return abs(a - b) / high <= PRICE_TOLERANCE


def score(a: Product, b: Product) -> int:
    """
    Similarity between two products.

    +3 same category, +2 same brand, +1 prices within 50% of the larger,
    +1 ratings within half a star, +1 per shared tag. Symmetric in a and b.
    """
    total = 0
    if a.category == b.category:
        total += CATEGORY_WEIGHT
    if a.brand == b.brand:
        total += BRAND_WEIGHT
    if _similar_price(a.price, b.price):
        total += PRICE_WEIGHT
    if abs(a.rating - b.rating) <= RATING_TOLERANCE:
        total += RATING_WEIGHT
    total += len(set(a.tags) & set(b.tags))
    return total


def rank(source: Product, candidates: Iterable[Product], limit: int = DEFAULT_LIMIT) -> list[Product]:
    """
    Most similar candidates to ``source``, best first.

    The source itself is skipped. Equal scores keep candidate order
    (``sorted`` is stable, including with ``reverse=True``).
    """
    peers = [p for p in candidates if p.id != source.id]
    ordered = sorted(peers, key=lambda p: score(source, p), reverse=True)
    return ordered[:limit]
