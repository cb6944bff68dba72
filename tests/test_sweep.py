import asyncio
import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from market_proxy import main
from market_proxy.main import create_app, sweep_periodically


def test_sweep_removes_expired_entries_and_idle_clients(cache, rate_limiter, coingecko, clock):
    app = create_app(cache=cache, rate_limiter=rate_limiter, coingecko=coingecko)
    cache.store.set("cryptocurrencies", [])
    rate_limiter.admit("10.0.0.1")
    clock.advance(301)

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(asyncio.wait_for(sweep_periodically(app, 0.01), timeout=0.1))

    assert len(cache.store._entries) == 0
    assert rate_limiter.tracked_clients() == 0


def test_sweep_keeps_running_after_errors(rate_limiter, coingecko):
    failing_cache = MagicMock()
    failing_cache.purge_expired.side_effect = [RuntimeError("redis down"), 0, 0, 0, 0, 0, 0, 0, 0, 0]
    app = create_app(cache=failing_cache, rate_limiter=rate_limiter, coingecko=coingecko)

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(asyncio.wait_for(sweep_periodically(app, 0.01), timeout=0.05))

    assert failing_cache.purge_expired.call_count >= 2


def test_lifespan_starts_sweep(cache, rate_limiter, coingecko, clock):
    app = create_app(cache=cache, rate_limiter=rate_limiter, coingecko=coingecko)
    cache.store.set("cryptocurrencies", [])
    clock.advance(301)

    with patch.object(main, "SWEEP_INTERVAL_SECONDS", 0.01):
        with TestClient(app):
            time.sleep(0.2)

    assert len(cache.store._entries) == 0


def test_lifespan_without_sweep(cache, rate_limiter, coingecko, clock):
    app = create_app(cache=cache, rate_limiter=rate_limiter, coingecko=coingecko)
    cache.store.set("cryptocurrencies", [])
    clock.advance(301)

    with patch.object(main, "SWEEP_INTERVAL_SECONDS", 0):
        with TestClient(app) as client:
            time.sleep(0.05)
            assert client.get("/health").status_code == 200

    # Expired but still stored; only a read or a sweep removes it
    assert len(cache.store._entries) == 1
