"""Base classes for data providers.

A provider owns its throttle and an audit trail of every outbound attempt;
the orchestrator drains the trail into the result it returns.
"""

import logging
import time
from typing import Any

from ..core.models import AuditEntry
from ..core.types import DataSource
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class BaseProvider:
    """Throttle and audit trail shared by every data provider."""

    # Subclasses must define their data source
    SOURCE: DataSource = DataSource.UNKNOWN

    def __init__(self, min_gap: float = 1.0, limiter: RateLimiter | None = None):
        """
        Args:
            min_gap: Minimum seconds between requests (ignored if limiter given)
            limiter: Pre-configured limiter, e.g. one driven by a test clock
        """
        self.limiter = limiter or RateLimiter(min_gap=min_gap)
        self._audit_entries: list[AuditEntry] = []

    def _record_audit(self, action: str, **fields: Any) -> AuditEntry:
        """Append an audit entry; ``fields`` are :class:`AuditEntry` fields."""
        entry = AuditEntry(source=self.SOURCE, action=action, **fields)
        self._audit_entries.append(entry)
        return entry

    def get_audit_trail(self) -> list[AuditEntry]:
        return self._audit_entries.copy()

    def clear_audit_trail(self) -> None:
        self._audit_entries.clear()


class CachedProvider(BaseProvider):
    """Provider that remembers results per key, optionally for a limited time."""

    def __init__(self, cache_ttl_seconds: float | None = 3600, **kwargs: Any):
        super().__init__(**kwargs)
        self.cache_ttl_seconds = cache_ttl_seconds
        # key -> (value, monotonic expiry or None)
        self._cache: dict[str, tuple[Any, float | None]] = {}

    def _get_from_cache(self, key: str) -> Any | None:
        hit = self._cache.get(key)
        if hit is None:
            return None
        value, expires_at = hit
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._cache[key]
            return None
        logger.debug(f"[{self.SOURCE.value}] Cache hit: {key}")
        return value

    def _set_cache(self, key: str, value: Any) -> None:
        expires_at = None
        if self.cache_ttl_seconds is not None:
            expires_at = time.monotonic() + self.cache_ttl_seconds
        self._cache[key] = (value, expires_at)
