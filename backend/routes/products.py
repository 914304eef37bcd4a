"""Product catalog routes: read-only views over the cached snapshot."""

import logging

from fastapi import APIRouter, Query, Request

from services.catalog import ProductCatalog

logger = logging.getLogger(__name__)

router = APIRouter()


def _catalog(request: Request) -> ProductCatalog:
    return request.app.state.catalog


@router.get("/products")
async def list_products(request: Request) -> dict:
    """Full upstream snapshot, served from cache when fresh."""
    return await _catalog(request).list_products()


@router.get("/products/search")
async def search_products(request: Request, title: str | None = Query(None)) -> list[dict]:
    """Case-insensitive substring search on product titles."""
    return await _catalog(request).search(title)


@router.get("/products/filter")
async def filter_products(
    request: Request,
    category: str | None = Query(None),
    min_price: str | None = Query(None, alias="minPrice"),
    max_price: str | None = Query(None, alias="maxPrice"),
) -> list[dict]:
    """Filter by exact category and inclusive price bounds. All optional."""
    return await _catalog(request).filter(category, min_price, max_price)


@router.get("/products/sort")
async def sort_products(
    request: Request,
    field: str | None = Query(None),
    order: str | None = Query(None),
) -> list[dict]:
    """Sort by price or title, ascending or descending."""
    return await _catalog(request).sort(field, order)


# Declared last so /products/search etc. are not captured as ids
@router.get("/products/{product_id}")
async def get_product(request: Request, product_id: str) -> dict:
    return await _catalog(request).get_by_id(product_id)
