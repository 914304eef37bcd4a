"""Query engine over the cached product snapshot.

Search, filter, sort and id lookup run in memory on the product list of the
current snapshot. Operators always build new lists; the snapshot itself is
shared and never reordered or mutated.
"""

import logging
import math
import re
from typing import Any

from errors import InvalidQueryError, NotFoundError
from services.cache import SnapshotCache

logger = logging.getLogger(__name__)

Product = dict[str, Any]

SORT_FIELDS = {"price", "title"}
SORT_ORDERS = {"asc", "desc"}
PRODUCT_ID_RE = re.compile(r"-?[0-9]+")


def _require_term(term: str | None) -> None:
    if not term:
        raise InvalidQueryError("Title query parameter is required")


def _validate_sort(field: str | None, order: str | None) -> None:
    if field not in SORT_FIELDS or order not in SORT_ORDERS:
        raise InvalidQueryError("Invalid sort field or order")


def search_products(products: list[Product], term: str | None) -> list[Product]:
    """Case-insensitive substring match of ``term`` against each title."""
    _require_term(term)
    needle = term.lower()
    return [p for p in products if needle in str(p.get("title") or "").lower()]


def parse_price_bound(raw: str | None, name: str) -> float | None:
    """Parse an optional price bound. Blank means "not supplied"."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        raise InvalidQueryError(f"{name} must be a number") from None
    if not math.isfinite(value):
        raise InvalidQueryError(f"{name} must be a number")
    return value


def _price(product: Product) -> float | None:
    price = product.get("price")
    if isinstance(price, (int, float)) and not isinstance(price, bool):
        return price
    return None


def filter_products(
    products: list[Product],
    category: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
) -> list[Product]:
    """AND of whichever predicates are supplied; none supplied returns everything."""
    result = []
    for product in products:
        if category and product.get("category") != category:
            continue
        if min_price is not None or max_price is not None:
            price = _price(product)
            if price is None:
                continue
            if min_price is not None and price < min_price:
                continue
            if max_price is not None and price > max_price:
                continue
        result.append(product)
    return result


def sort_products(products: list[Product], field: str | None, order: str | None) -> list[Product]:
    """Stable sort by price (numeric) or title (lexicographic)."""
    _validate_sort(field, order)

    if field == "price":
        key = lambda p: _price(p) or 0
    else:
        key = lambda p: str(p.get("title") or "")
    # sorted() stays stable with reverse=True, so ties keep snapshot order
    return sorted(products, key=key, reverse=(order == "desc"))


def find_product(products: list[Product], raw_id: str | int) -> Product:
    """Exact id match. Only an ASCII decimal integer can match; anything else is NotFound."""
    if isinstance(raw_id, int):
        product_id = raw_id
    elif isinstance(raw_id, str) and PRODUCT_ID_RE.fullmatch(raw_id):
        product_id = int(raw_id)
    else:
        raise NotFoundError()
    for product in products:
        if product.get("id") == product_id:
            return product
    raise NotFoundError()


class ProductCatalog:
    """Operators bound to a snapshot cache."""

    def __init__(self, cache: SnapshotCache):
        self.cache = cache

    async def list_products(self) -> dict[str, Any]:
        snapshot = await self.cache.get_snapshot()
        return snapshot.payload

    async def search(self, title: str | None) -> list[Product]:
        _require_term(title)
        snapshot = await self.cache.get_snapshot()
        matches = search_products(snapshot.products, title)
        logger.debug("Search %r matched %d products", title, len(matches))
        return matches

    async def filter(
        self,
        category: str | None = None,
        min_price: str | None = None,
        max_price: str | None = None,
    ) -> list[Product]:
        low = parse_price_bound(min_price, "minPrice")
        high = parse_price_bound(max_price, "maxPrice")
        snapshot = await self.cache.get_snapshot()
        return filter_products(snapshot.products, category, low, high)

    async def sort(self, field: str | None, order: str | None) -> list[Product]:
        _validate_sort(field, order)
        snapshot = await self.cache.get_snapshot()
        return sort_products(snapshot.products, field, order)

    async def get_by_id(self, raw_id: str | int) -> Product:
        snapshot = await self.cache.get_snapshot()
        return find_product(snapshot.products, raw_id)
