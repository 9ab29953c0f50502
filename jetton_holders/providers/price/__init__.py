"""Price data providers."""

from .coingecko_price import CoinGeckoPriceProvider, PricePoller, extract_usd_price

__all__ = [
    "CoinGeckoPriceProvider",
    "PricePoller",
    "extract_usd_price",
]
