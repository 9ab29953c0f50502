"""Data providers for the holder analytics tool.

This module contains providers for:
- Ledger data (TonAPI jetton metadata and holder pages)
- Price data (CoinGecko)
- Static annotations (tag labels, distribution buckets)
"""

from .base import BaseProvider, CachedProvider
from .rate_limiter import RateLimiter

__all__ = ["BaseProvider", "CachedProvider", "RateLimiter"]
