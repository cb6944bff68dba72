from fastapi import Request

from market_proxy.services.coingecko_service import CoinGeckoService
from market_proxy.services.rate_limiter import SlidingWindowRateLimiter


class RateLimitExceeded(Exception):
    def __init__(self, client_id: str, retry_after: int):
        super().__init__(f"Rate limit exceeded for {client_id}")
        self.client_id = client_id
        self.retry_after = retry_after


def client_id(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_cache(request: Request):
    return request.app.state.cache


def get_coingecko(request: Request) -> CoinGeckoService:
    return request.app.state.coingecko


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.rate_limiter


async def enforce_rate_limit(request: Request) -> None:
    limiter = get_rate_limiter(request)
    client = client_id(request)
    if not limiter.admit(client):
        raise RateLimitExceeded(client, limiter.retry_after(client))
