"""
Build daily candlesticks from CoinGecko market_chart series
"""
from typing import List, Sequence

from market_proxy.models.candle import Candle
from market_proxy.utils.time import ms_to_date_string


def build_candlesticks(
    prices: Sequence[Sequence[float]],
    volumes: Sequence[Sequence[float]]
) -> List[dict]:
    """
    Turn consecutive daily closes into synthetic OHLC candles.

    Each candle opens at the previous point's price and closes at its own,
    so the first point only seeds the open of the second and N points give
    N-1 candles.

    Args:
        prices: ``[timestamp_ms, price]`` pairs sorted by time ASC
        volumes: ``[timestamp_ms, volume]`` pairs aligned with ``prices``

    Returns:
        List of candle dictionaries (time, open, high, low, close, volume)
    """
    if len(volumes) < len(prices):
        raise ValueError(
            f"Volume series has {len(volumes)} points, expected {len(prices)}"
        )

    candles = []
    for i in range(1, len(prices)):
        timestamp, price = prices[i]
        prev_price = prices[i - 1][1]
        candles.append(
            Candle(
                time=ms_to_date_string(timestamp),
                open=prev_price,
                high=max(prev_price, price),
                low=min(prev_price, price),
                close=price,
                volume=volumes[i][1]
            ).model_dump()
        )
    return candles
