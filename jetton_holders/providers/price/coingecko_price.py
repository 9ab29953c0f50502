"""CoinGecko spot price provider.

Fetches the current USD price of the jetton from the ``/simple/price``
endpoint and keeps it fresh with a periodic poller. A missing or non-numeric
price yields an unavailable quote rather than an error, so fiat columns can
simply show the sentinel.
"""

import asyncio
import logging
import math
import time
from typing import Any

import httpx

from ...core.exceptions import DataSourceError, RateLimitError
from ...core.models import PriceQuote
from ...core.types import DataSource
from ..base import CachedProvider
from ..rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def extract_usd_price(payload: Any, coin_id: str) -> float | None:
    """``payload[coin_id]["usd"]`` when it is a finite number, else None."""
    if not isinstance(payload, dict):
        return None
    entry = payload.get(coin_id)
    if not isinstance(entry, dict):
        return None
    value = entry.get("usd")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


class CoinGeckoPriceProvider(CachedProvider):
    """Fetches spot USD prices from CoinGecko."""

    SOURCE = DataSource.COINGECKO
    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        api_key: str | None = None,
        min_gap: float = 2.0,
        cache_ttl_seconds: float | None = 30,
        timeout: float | None = 30.0,
        limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize CoinGecko price provider.

        Args:
            api_key: Optional CoinGecko Pro API key
            min_gap: Minimum seconds between requests
            cache_ttl_seconds: Cache TTL for quotes
            timeout: httpx timeout in seconds
            limiter: Throttle state; a fresh one is created if omitted
            transport: Custom httpx transport (used by tests)
        """
        super().__init__(
            cache_ttl_seconds=cache_ttl_seconds,
            min_gap=min_gap,
            limiter=limiter,
        )
        self.api_key = api_key
        if api_key:
            self.base_url = "https://pro-api.coingecko.com/api/v3"
        else:
            self.base_url = self.BASE_URL
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def _make_request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a rate-limited request to CoinGecko."""
        await self.limiter.wait()
        start_time = time.time()

        headers = {}
        if self.api_key:
            headers["x-cg-pro-api-key"] = self.api_key

        url = f"{self.base_url}{endpoint}"

        try:
            async with self._client() as client:
                response = await client.get(url, params=params, headers=headers)

            duration_ms = int((time.time() - start_time) * 1000)

            if response.status_code == 429:
                self._record_audit(
                    action="fetch",
                    endpoint=endpoint,
                    success=False,
                    status_code=429,
                    error_message="Rate limit exceeded",
                    duration_ms=duration_ms,
                )
                raise RateLimitError(
                    source="coingecko",
                    retry_after_seconds=60,
                    endpoint=endpoint,
                )

            response.raise_for_status()

            self._record_audit(
                action="fetch",
                endpoint=endpoint,
                success=True,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            return response.json()

        except httpx.HTTPStatusError as e:
            raise DataSourceError(
                source="coingecko",
                message=f"HTTP {e.response.status_code}",
                endpoint=endpoint,
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise DataSourceError(
                source="coingecko",
                message=str(e),
                endpoint=endpoint,
            )
        except ValueError as e:
            raise DataSourceError(
                source="coingecko",
                message=f"Invalid JSON response: {e}",
                endpoint=endpoint,
            )

    async def get_usd_price(self, coin_id: str) -> PriceQuote:
        """
        Get the current USD price of a coin.

        Args:
            coin_id: CoinGecko coin id

        Returns:
            PriceQuote whose ``usd`` is None when CoinGecko has no number
        """
        cache_key = f"simple_price:{coin_id}"
        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        data = await self._make_request(
            "/simple/price",
            params={"ids": coin_id, "vs_currencies": "usd"},
        )

        usd = extract_usd_price(data, coin_id)
        if usd is None:
            logger.warning(f"No USD price for {coin_id}")

        quote = PriceQuote(coin_id=coin_id, usd=usd)
        self._set_cache(cache_key, quote)
        return quote


class PricePoller:
    """Refreshes a price quote on a fixed interval in a background task."""

    def __init__(
        self,
        provider: CoinGeckoPriceProvider,
        coin_id: str,
        interval_seconds: float = 60.0,
    ):
        """
        Initialize the poller.

        Args:
            provider: Price provider to query
            coin_id: CoinGecko coin id
            interval_seconds: Seconds between two polls
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.provider = provider
        self.coin_id = coin_id
        self.interval_seconds = interval_seconds
        self.latest: PriceQuote | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> PriceQuote | None:
        """Fetch one quote; on failure keep the previous one."""
        try:
            self.latest = await self.provider.get_usd_price(self.coin_id)
        except DataSourceError as e:
            logger.warning(f"Price poll failed, keeping previous quote: {e}")
        return self.latest

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start polling in the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
