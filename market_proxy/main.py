import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from market_proxy.api.crypto import router as crypto_router
from market_proxy.api.deps import RateLimitExceeded
from market_proxy.config import (
    CORS_ORIGINS,
    HOST,
    LOG_LEVEL,
    PORT,
    RATE_LIMIT_MESSAGE,
    SWEEP_INTERVAL_SECONDS,
)
from market_proxy.realtime import wrap_asgi
from market_proxy.repositories.price_cache import build_price_cache
from market_proxy.services.coingecko_service import CoinGeckoService
from market_proxy.services.rate_limiter import SlidingWindowRateLimiter

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def sweep_periodically(app: FastAPI, interval: float):
    """Drop expired cache entries and idle rate-limit windows every ``interval`` seconds"""
    while True:
        await asyncio.sleep(interval)
        try:
            purged = app.state.cache.purge_expired()
            idle = app.state.rate_limiter.sweep()
        except Exception as e:
            logger.error(f"Sweep failed: {e}", exc_info=True)
            continue
        if purged or idle:
            logger.debug(f"Sweep removed {purged} cache entries, {idle} idle clients")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting market proxy...")
    sweeper = None
    if SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(sweep_periodically(app, SWEEP_INTERVAL_SECONDS))

    yield

    logger.info("Shutting down market proxy...")
    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rejected {request.url.path} from {exc.client_id}")
    return JSONResponse(
        status_code=429,
        content={"error": RATE_LIMIT_MESSAGE},
        headers={"Retry-After": str(exc.retry_after)}
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": str(exc)}
    )


def create_app(cache=None, rate_limiter=None, coingecko=None) -> FastAPI:
    app = FastAPI(
        title="Market Proxy",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.cache = cache if cache is not None else build_price_cache()
    app.state.rate_limiter = rate_limiter if rate_limiter is not None else SlidingWindowRateLimiter()
    app.state.coingecko = coingecko if coingecko is not None else CoinGeckoService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(crypto_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
asgi_app = wrap_asgi(app)


def run():
    logger.info(f"Server running on port {PORT}")
    uvicorn.run(asgi_app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
