"""TonAPI client for jetton metadata and holder pages.

Every outbound call goes through one state machine:

1. throttle  - wait for the next slot of the per-client :class:`RateLimiter`
2. send      - GET, with ``Authorization: Bearer`` while a credential is held
3. 429       - retry once after ``Retry-After`` (or the default), queued behind
               slots other callers already hold; a second 429 raises
               :class:`RateLimitError`
4. 401/403   - drop the credential, fall back to the slower anonymous gap,
               retry once without it
5. terminal  - any other non-2xx raises :class:`DataSourceError`

An expired token therefore costs one extra request instead of breaking the
page load, and the request budget holds across retries because every attempt
moves the throttle timestamp.
"""

import logging
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from ...core.exceptions import AuthorizationError, DataSourceError, RateLimitError
from ...core.models import HolderRecord, HoldersPage, TokenMeta
from ...core.types import DataSource
from ...storage.credential_store import CREDENTIAL_KEY, KeyValueStore, MemoryStore
from ..base import BaseProvider
from ..rate_limiter import RateLimiter
from .decoding import decode_holders_page, decode_token_meta

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000


class AttemptOutcome(str, Enum):
    """How a single HTTP attempt ended."""

    OK = "ok"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


def classify_status(status_code: int) -> AttemptOutcome:
    """Map an HTTP status to the retry state machine's outcome."""
    if 200 <= status_code < 300:
        return AttemptOutcome.OK
    if status_code == 429:
        return AttemptOutcome.RATE_LIMITED
    if status_code in (401, 403):
        return AttemptOutcome.UNAUTHORIZED
    return AttemptOutcome.FAILED


@dataclass
class RetryBudget:
    """One retry per recoverable outcome, per logical request."""

    rate_limit_retry_used: bool = False
    auth_retry_used: bool = False


class TonApiClient(BaseProvider):
    """Rate-limited reader for one jetton master on TonAPI v2."""

    SOURCE = DataSource.TONAPI
    BASE_URL = "https://tonapi.io/v2"

    def __init__(
        self,
        master: str,
        base_url: str | None = None,
        credential: str | None = None,
        credential_store: KeyValueStore | None = None,
        anonymous_min_gap: float = 4.0,
        authenticated_min_gap: float = 1.0,
        retry_after_default: float = 4.0,
        timeout: float | None = None,
        limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the TonAPI client.

        Args:
            master: Jetton master address (raw or friendly)
            base_url: API root, defaults to https://tonapi.io/v2
            credential: Seed bearer token, used when the store holds none
            credential_store: Preference store holding the bearer token
            anonymous_min_gap: Seconds between requests without a token
            authenticated_min_gap: Seconds between requests with a token
            retry_after_default: Back-off when a 429 has no Retry-After header
            timeout: httpx timeout in seconds (None waits indefinitely)
            limiter: Throttle state; a fresh one is created if omitted
            transport: Custom httpx transport (used by tests)
        """
        super().__init__(min_gap=anonymous_min_gap, limiter=limiter)
        self.master = master
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.credential_store = credential_store or MemoryStore()
        self.anonymous_min_gap = anonymous_min_gap
        self.authenticated_min_gap = authenticated_min_gap
        self.retry_after_default = retry_after_default
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        self._credential = self.credential_store.get(CREDENTIAL_KEY) or credential or None

    # -- credential handling -------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self._credential is not None

    @property
    def min_gap(self) -> float:
        """Current throttle floor; depends only on whether a token is held."""
        if self.is_authenticated:
            return self.authenticated_min_gap
        return self.anonymous_min_gap

    def set_credential(self, token: str | None) -> None:
        """Hold (and persist) a bearer token; None or blank clears it."""
        token = token.strip() if token else None
        self._credential = token or None
        self.credential_store.set(CREDENTIAL_KEY, self._credential)
        logger.info(f"TonAPI token {'set' if self._credential else 'cleared'}")

    def clear_credential(self) -> None:
        """Forget the bearer token, here and in the store."""
        self.set_credential(None)

    def _demote(self, status_code: int, endpoint: str) -> None:
        logger.warning(
            f"TonAPI refused the token (HTTP {status_code}); "
            f"continuing anonymously at {self.anonymous_min_gap:g}s per request"
        )
        self._credential = None
        self.credential_store.set(CREDENTIAL_KEY, None)
        self._record_audit(
            action="demote",
            endpoint=endpoint,
            success=False,
            status_code=status_code,
            notes="credential discarded",
        )

    # -- transport -----------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {"base_url": self.base_url, "timeout": self.timeout}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "TonApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _retry_after(self, response: httpx.Response) -> float:
        header = response.headers.get("retry-after")
        if header:
            try:
                value = float(header)
                if value > 0:
                    return value
            except ValueError:
                logger.debug(f"Ignoring non-numeric Retry-After {header!r}")
        return self.retry_after_default

    async def _send(self, endpoint: str, params: dict[str, Any] | None) -> httpx.Response:
        """One HTTP attempt, audited; transport faults become DataSourceError."""
        headers = {"Accept": "application/json"}
        if self._credential:
            headers["Authorization"] = f"Bearer {self._credential}"

        start_time = time.time()
        try:
            response = await self._get_client().get(endpoint, params=params, headers=headers)
        except httpx.RequestError as e:
            self._record_audit(
                action="fetch",
                endpoint=endpoint,
                success=False,
                error_message=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise DataSourceError(source=self.SOURCE.value, message=str(e), endpoint=endpoint)

        self._record_audit(
            action="fetch",
            endpoint=endpoint,
            success=response.is_success,
            status_code=response.status_code,
            duration_ms=int((time.time() - start_time) * 1000),
            notes="authenticated" if "Authorization" in headers else "anonymous",
        )
        return response

    async def request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """
        Perform one logical GET and return the decoded JSON body.

        Raises:
            RateLimitError: Second consecutive 429
            AuthorizationError: 401/403 without a credential to drop
            DataSourceError: Any other failure
        """
        budget = RetryBudget()
        slot = await self.limiter.acquire(self.min_gap)

        while True:
            response = await self._send(endpoint, params)
            outcome = classify_status(response.status_code)

            if outcome is AttemptOutcome.OK:
                try:
                    return response.json()
                except ValueError as e:
                    raise DataSourceError(
                        source=self.SOURCE.value,
                        message=f"Invalid JSON response: {e}",
                        endpoint=endpoint,
                        status_code=response.status_code,
                    )

            if outcome is AttemptOutcome.RATE_LIMITED:
                retry_after = self._retry_after(response)
                if budget.rate_limit_retry_used:
                    raise RateLimitError(
                        source=self.SOURCE.value,
                        retry_after_seconds=retry_after,
                        endpoint=endpoint,
                    )
                budget.rate_limit_retry_used = True
                logger.warning(f"TonAPI 429 on {endpoint}; retrying once in {retry_after:g}s")
                self._record_audit(
                    action="retry",
                    endpoint=endpoint,
                    success=False,
                    status_code=response.status_code,
                    notes=f"retry after {retry_after:g}s",
                )
                slot = await self.limiter.acquire_retry(retry_after, after=slot, gap=self.min_gap)
                continue

            if outcome is AttemptOutcome.UNAUTHORIZED:
                if not self.is_authenticated or budget.auth_retry_used:
                    raise AuthorizationError(
                        source=self.SOURCE.value,
                        status_code=response.status_code,
                        endpoint=endpoint,
                    )
                budget.auth_retry_used = True
                self._demote(response.status_code, endpoint)
                slot = await self.limiter.acquire(self.min_gap)
                continue

            raise DataSourceError(
                source=self.SOURCE.value,
                message=f"TonAPI error {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code,
            )

    # -- endpoints -----------------------------------------------------------

    async def get_jetton_meta(self) -> TokenMeta:
        """Fetch and decode the jetton master metadata."""
        payload = await self.request(f"/jettons/{self.master}")
        return decode_token_meta(payload, master=self.master)

    async def get_holders_page(self, limit: int = 100, offset: int = 0) -> HoldersPage:
        """
        Fetch one page of holders, in API order.

        Args:
            limit: Page size, 1..1000
            offset: Number of holders to skip
        """
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be within 1..{MAX_PAGE_SIZE}, got {limit}")
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")

        payload = await self.request(
            f"/jettons/{self.master}/holders",
            params={"limit": limit, "offset": offset},
        )
        return decode_holders_page(payload, offset=offset, limit=limit)

    async def iter_holder_pages(
        self,
        page_size: int = MAX_PAGE_SIZE,
        max_holders: int | None = None,
    ) -> AsyncIterator[HoldersPage]:
        """
        Walk the holders endpoint page by page.

        Stops at a short page, at the reported total, or once ``max_holders``
        records have been yielded.
        """
        offset = 0
        while True:
            limit = page_size
            if max_holders is not None:
                limit = min(limit, max_holders - offset)
                if limit <= 0:
                    return

            page = await self.get_holders_page(limit=limit, offset=offset)
            yield page

            offset += len(page.records)
            if len(page.records) < limit:
                return
            if page.total is not None and offset >= page.total:
                return

    async def get_all_holders(
        self,
        page_size: int = MAX_PAGE_SIZE,
        max_holders: int | None = None,
    ) -> tuple[list[HolderRecord], bool]:
        """
        Fetch the holder set.

        Returns:
            Tuple of (records in API order, whether the set is complete)
        """
        records: list[HolderRecord] = []
        last_page: HoldersPage | None = None
        async for page in self.iter_holder_pages(page_size=page_size, max_holders=max_holders):
            records.extend(page.records)
            last_page = page

        complete = True
        if max_holders is not None and len(records) >= max_holders:
            if last_page is None or last_page.total is None or last_page.total > len(records):
                complete = False

        logger.info(f"Fetched {len(records)} holders of {self.master} (complete={complete})")
        return records, complete
