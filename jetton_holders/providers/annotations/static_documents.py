"""Static documents: holder tag annotations and the distribution report.

Both documents are produced out of band and fetched once per session, either
from a URL or from a local JSON/YAML file. Tag keys are normalized to the raw
address form so a tag written against a friendly address still matches the
holder list.
"""

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import yaml

from ...calculator.amounts import coerce_int
from ...core.exceptions import DataSourceError
from ...core.models import DistributionBucket, TagAnnotation
from ...core.types import DataSource
from ...resolution.address_resolver import AddressResolver
from ..base import CachedProvider

logger = logging.getLogger(__name__)

TAG_LABEL_KEYS = ("label", "tag", "name")
BUCKET_LABEL_KEYS = ("label", "range", "bucket", "name")


class StaticDocumentProvider(CachedProvider):
    """Loads tag annotations and distribution buckets from URLs or files."""

    SOURCE = DataSource.TAGS

    def __init__(
        self,
        resolver: AddressResolver | None = None,
        timeout: float | None = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the provider.

        Args:
            resolver: Address resolver used to normalize tag keys
            timeout: httpx timeout for remote documents
            transport: Custom httpx transport (used by tests)
        """
        # Documents never change during a session
        super().__init__(cache_ttl_seconds=None, min_gap=0.0)
        self.resolver = resolver or AddressResolver()
        self.timeout = timeout
        self._transport = transport

    def _load_file(self, filepath: Path) -> Any:
        """Load YAML or JSON file."""
        with open(filepath, "r", encoding="utf-8") as f:
            if filepath.suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)

    async def _fetch_url(self, url: str) -> Any:
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise DataSourceError(
                source=self.SOURCE.value,
                message=f"HTTP {e.response.status_code}",
                endpoint=url,
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise DataSourceError(source=self.SOURCE.value, message=str(e), endpoint=url)
        except ValueError as e:
            raise DataSourceError(
                source=self.SOURCE.value, message=f"Invalid JSON: {e}", endpoint=url
            )

    async def load_document(self, source: str) -> Any:
        """
        Load a document once; later calls return the cached copy.

        Args:
            source: http(s) URL or local file path

        Raises:
            DataSourceError: If the document cannot be read or parsed
        """
        cached = self._get_from_cache(source)
        if cached is not None:
            return cached

        if source.startswith(("http://", "https://")):
            data = await self._fetch_url(source)
        else:
            path = Path(source).expanduser()
            try:
                data = self._load_file(path)
            except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
                raise DataSourceError(
                    source=self.SOURCE.value, message=f"Failed to load {path}: {e}", endpoint=str(path)
                )

        self._record_audit(action="load", endpoint=source, success=True)
        self._set_cache(source, data)
        return data

    def parse_tags(self, data: Any) -> list[TagAnnotation]:
        """
        Accepts ``{address: label}``, ``{"tags": [...]}`` or a list of
        ``{address, label|tag|name}`` objects.
        """
        if isinstance(data, dict) and isinstance(data.get("tags"), (list, dict)):
            data = data["tags"]

        pairs: list[tuple[Any, Any]] = []
        if isinstance(data, dict):
            pairs = list(data.items())
        elif isinstance(data, list):
            for item in data:
                if not isinstance(item, dict):
                    continue
                label = next((item[k] for k in TAG_LABEL_KEYS if item.get(k)), None)
                pairs.append((item.get("address"), label))

        annotations = []
        for address, label in pairs:
            if not isinstance(address, str) or not address.strip() or not label:
                continue
            annotations.append(
                TagAnnotation(address=self.resolver.normalize(address), label=str(label))
            )
        return annotations

    async def load_tags(self, source: str) -> dict[str, str]:
        """Tag labels keyed by canonical raw address."""
        annotations = self.parse_tags(await self.load_document(source))
        logger.info(f"Loaded {len(annotations)} tag annotations from {source}")
        return {a.address: a.label for a in annotations}

    def parse_distribution(self, data: Any) -> list[DistributionBucket]:
        """Accepts a list of bucket objects or ``{"buckets": [...]}``."""
        if isinstance(data, dict):
            data = data.get("buckets", [])
        if not isinstance(data, list):
            return []

        buckets = []
        for item in data:
            if not isinstance(item, dict):
                continue
            label = next((item[k] for k in BUCKET_LABEL_KEYS if item.get(k) is not None), None)
            if label is None:
                continue
            extras = {k: v for k, v in item.items() if k not in BUCKET_LABEL_KEYS}
            holders = coerce_int(extras.pop("holders", extras.pop("count", None)))
            share = extras.pop("share", extras.pop("percent", extras.pop("percentage", None)))
            buckets.append(
                DistributionBucket(label=str(label), holders=holders, share=share, **extras)
            )
        return buckets

    async def load_distribution(self, source: str) -> list[DistributionBucket]:
        """Precomputed distribution buckets, as shaped by the report."""
        buckets = self.parse_distribution(await self.load_document(source))
        logger.info(f"Loaded {len(buckets)} distribution buckets from {source}")
        return buckets
