import logging
from typing import Any, Awaitable, Callable, List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from market_proxy.api.deps import enforce_rate_limit, get_cache, get_coingecko
from market_proxy.config import DEFAULT_HISTORY_DAYS
from market_proxy.models.candle import Candle, ErrorResponse
from market_proxy.services.candles import build_candlesticks
from market_proxy.services.coingecko_service import CoinGeckoService, UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Cryptocurrencies"],
    dependencies=[Depends(enforce_rate_limit)],
    responses={429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)


def error_response(message: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        status_code = exc.status_code or 500
        details = exc.details
    else:
        status_code = 500
        details = str(exc)
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "details": details}
    )


async def cached_fetch(cache, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
    """
    Return the cached value for ``key`` or fetch, store and return it.

    Concurrent misses on one key each call ``fetch``; the last store wins.
    """
    cached = await cache.get(key)
    if cached is not None:
        logger.debug(f"Cache HIT for {key}")
        return cached

    logger.info(f"Cache MISS for {key}")
    value = await fetch()
    await cache.set(key, value)
    return value


@router.get("/cryptocurrencies")
async def list_cryptocurrencies(
    cache=Depends(get_cache),
    coingecko: CoinGeckoService = Depends(get_coingecko)
):
    """
    Top 100 coins by market cap, as returned by CoinGecko /coins/markets.
    """
    try:
        return await cached_fetch(cache, "cryptocurrencies", coingecko.list_markets)
    except UpstreamError as e:
        logger.error(f"Error fetching cryptocurrencies: {e}")
        return error_response("Failed to fetch cryptocurrency data", e)


@router.get("/cryptocurrency/{coin_id}")
async def get_cryptocurrency(
    coin_id: str,
    cache=Depends(get_cache),
    coingecko: CoinGeckoService = Depends(get_coingecko)
):
    """
    Full market data for one coin.
    """
    try:
        return await cached_fetch(
            cache,
            f"crypto:{coin_id}",
            lambda: coingecko.get_coin(coin_id)
        )
    except UpstreamError as e:
        logger.error(f"Error fetching cryptocurrency details for {coin_id}: {e}")
        return error_response("Failed to fetch cryptocurrency details", e)


@router.get(
    "/cryptocurrency/{coin_id}/history",
    response_model=List[Candle]
)
async def get_cryptocurrency_history(
    coin_id: str,
    days: str = Query(DEFAULT_HISTORY_DAYS, examples=["30"]),
    cache=Depends(get_cache),
    coingecko: CoinGeckoService = Depends(get_coingecko)
):
    """
    Daily candlesticks built from CoinGecko market_chart prices and volumes.
    """
    async def fetch_candles():
        chart = await coingecko.get_market_chart(coin_id, days)
        try:
            prices = chart["prices"]
            volumes = chart["total_volumes"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed market_chart payload: missing {e}") from e
        return build_candlesticks(prices, volumes)

    try:
        return await cached_fetch(cache, f"history:{coin_id}:{days}", fetch_candles)
    except (UpstreamError, ValueError) as e:
        logger.error(f"Error fetching historical data for {coin_id}: {e}")
        return error_response("Failed to fetch historical price data", e)
