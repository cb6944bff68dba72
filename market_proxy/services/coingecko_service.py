import logging
from typing import Any, Dict, Optional

import httpx

from market_proxy.config import (
    COINGECKO_BASE_URL,
    MARKETS_PAGE_SIZE,
    UPSTREAM_TIMEOUT_SECONDS,
    VS_CURRENCY,
)

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """A CoinGecko call failed; carries the upstream status and payload if any"""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details if details is not None else message


class CoinGeckoService:
    """Single-attempt client for the CoinGecko v3 REST API"""

    def __init__(
        self,
        base_url: str = COINGECKO_BASE_URL,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True
            ) as client:
                response = await client.get(path, params=params)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            try:
                details = e.response.json()
            except ValueError:
                details = e.response.text
            logger.error(f"CoinGecko error {status} for {path}")
            raise UpstreamError(str(e), status_code=status, details=details) from e
        except httpx.RequestError as e:
            logger.error(f"CoinGecko request failed for {path}: {e!r}")
            raise UpstreamError(str(e) or e.__class__.__name__) from e

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"CoinGecko returned a non-JSON body for {path}")
            raise UpstreamError(f"Invalid JSON from CoinGecko: {e}", details=response.text) from e

    async def list_markets(self) -> Any:
        """Top coins by market cap, first page, no sparklines"""
        return await self._get(
            "/coins/markets",
            {
                "vs_currency": VS_CURRENCY,
                "order": "market_cap_desc",
                "per_page": MARKETS_PAGE_SIZE,
                "page": 1,
                "sparkline": "false"
            }
        )

    async def get_coin(self, coin_id: str) -> Any:
        return await self._get(
            f"/coins/{coin_id}",
            {
                "localization": "false",
                "tickers": "false",
                "market_data": "true",
                "community_data": "false",
                "developer_data": "false"
            }
        )

    async def get_market_chart(self, coin_id: str, days: str) -> Dict[str, Any]:
        return await self._get(
            f"/coins/{coin_id}/market_chart",
            {
                "vs_currency": VS_CURRENCY,
                "days": days,
                "interval": "daily"
            }
        )
