"""Shared pytest fixtures: sample catalog, counting fetcher, test app."""

import copy

import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import Settings
from errors import FetchFailedError
from services.cache import SnapshotCache
from services.catalog import ProductCatalog

SAMPLE_PAYLOAD = {
    "products": [
        {"id": 1, "title": "Kiwi", "category": "groceries", "price": 2.5, "stock": 40},
        {"id": 2, "title": "Apple", "category": "groceries", "price": 1.2, "stock": 90},
        {"id": 5, "title": "Red Lipstick", "category": "beauty", "price": 12.99, "brand": "Glamour"},
        {"id": 7, "title": "Eyeshadow Palette", "category": "beauty", "price": 19.99},
        {"id": 9, "title": "Powder Canister", "category": "beauty", "price": 14.99},
        {"id": 12, "title": "Perfume Oil", "category": "fragrances", "price": 13.0},
        {"id": 15, "title": "Luxury Serum", "category": "beauty", "price": 89.0},
    ],
    "total": 7,
    "skip": 0,
    "limit": 30,
}


class FakeFetcher:
    """Stands in for the upstream call; counts invocations."""

    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload if payload is not None else SAMPLE_PAYLOAD
        self.error = error
        self.calls = 0

    async def __call__(self) -> dict:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.payload)


@pytest.fixture
def sample_payload() -> dict:
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def products(sample_payload) -> list[dict]:
    return sample_payload["products"]


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def failing_fetcher() -> FakeFetcher:
    return FakeFetcher(error=FetchFailedError("upstream down"))


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache.json"


@pytest.fixture
def cache(cache_path, fetcher) -> SnapshotCache:
    return SnapshotCache(cache_path, fetcher, ttl_seconds=600)


@pytest.fixture
def test_settings(cache_path) -> Settings:
    config = Settings()
    config.cache_file = cache_path
    config.rate_limit_requests = 50
    config.rate_limit_window_seconds = 3600
    config.environment = "test"
    config.cors_origins = ["*"]
    return config


@pytest.fixture
def make_client(test_settings, cache_path):
    """Build a TestClient whose catalog uses the given fetcher."""

    def _make(fetcher: FakeFetcher, **overrides) -> TestClient:
        for key, value in overrides.items():
            setattr(test_settings, key, value)
        app = create_app(test_settings)
        app.state.catalog = ProductCatalog(SnapshotCache(cache_path, fetcher, ttl_seconds=600))
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client, fetcher) -> TestClient:
    return make_client(fetcher)
