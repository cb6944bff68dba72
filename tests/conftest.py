"""Pytest configuration and shared fixtures."""

import httpx
import pytest
from fastapi.testclient import TestClient

from market_proxy.main import create_app
from market_proxy.repositories.price_cache import PriceCacheRepository
from market_proxy.repositories.ttl_cache import TTLCache
from market_proxy.services.coingecko_service import CoinGeckoService
from market_proxy.services.rate_limiter import SlidingWindowRateLimiter


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCoinGecko:
    """Routes CoinGecko paths to canned (status, payload) answers and records calls"""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def reply(self, path: str, payload, status_code: int = 200):
        self.routes[path] = (status_code, payload)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.replace("/api/v3", "", 1)
        if path not in self.routes:
            return httpx.Response(404, json={"error": "coin not found"})
        status_code, payload = self.routes[path]
        if isinstance(payload, (dict, list)):
            return httpx.Response(status_code, json=payload)
        return httpx.Response(status_code, text=payload)

    def calls(self, path: str) -> int:
        return sum(
            1 for r in self.requests
            if r.url.path.replace("/api/v3", "", 1) == path
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return FakeCoinGecko()


@pytest.fixture
def coingecko(upstream):
    return CoinGeckoService(
        base_url="https://api.coingecko.com/api/v3",
        transport=httpx.MockTransport(upstream.handler)
    )


@pytest.fixture
def cache(clock):
    return PriceCacheRepository(TTLCache(300, clock=clock))


@pytest.fixture
def rate_limiter(clock):
    return SlidingWindowRateLimiter(30, 60, clock=clock)


@pytest.fixture
def client(cache, rate_limiter, coingecko):
    app = create_app(cache=cache, rate_limiter=rate_limiter, coingecko=coingecko)
    return TestClient(app)


@pytest.fixture
def market_chart():
    """Three daily points: 2024-01-01, 2024-01-02, 2024-01-03 (UTC)"""
    return {
        "prices": [
            [1704067200000, 10.0],
            [1704153600000, 12.0],
            [1704240000000, 9.0],
        ],
        "market_caps": [
            [1704067200000, 1.0e9],
            [1704153600000, 1.2e9],
            [1704240000000, 0.9e9],
        ],
        "total_volumes": [
            [1704067200000, 100.0],
            [1704153600000, 150.0],
            [1704240000000, 80.0],
        ],
    }
