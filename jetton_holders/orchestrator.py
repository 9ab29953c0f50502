"""Main orchestrator for the holder analytics pipeline.

Coordinates the TonAPI client, the aggregator and the paginator to produce
:class:`HolderPage` and :class:`HolderSnapshot` results, enriched with tags
and a fiat value when those sources are configured.
"""

import logging
import math

from .calculator.aggregator import HolderAggregator
from .calculator.amounts import ScaledAmount
from .calculator.paginator import SortPaginator
from .core.config import AppConfig, get_config
from .core.exceptions import DataSourceError
from .core.models import (
    AuditEntry,
    DataQualityFlag,
    DistributionBucket,
    HolderPage,
    HolderRecord,
    HolderRow,
    HolderSnapshot,
    PriceQuote,
    TokenMeta,
)
from .core.types import DataSource, SortDirection, SortField, UNAVAILABLE
from .providers.annotations.static_documents import StaticDocumentProvider
from .providers.ledger.tonapi_client import TonApiClient
from .providers.price.coingecko_price import CoinGeckoPriceProvider
from .resolution.address_resolver import AddressResolver
from .storage.credential_store import JSONFileStore, KeyValueStore

logger = logging.getLogger(__name__)


class HolderAnalysisOrchestrator:
    """Orchestrates metadata, holder, tag and price loading for one jetton."""

    def __init__(
        self,
        config: AppConfig | None = None,
        client: TonApiClient | None = None,
        price_provider: CoinGeckoPriceProvider | None = None,
        documents: StaticDocumentProvider | None = None,
        credential_store: KeyValueStore | None = None,
    ):
        """
        Initialize the orchestrator with all providers.

        Args:
            config: Settings (uses the global config if not provided)
            client: TonAPI client (built from config if not provided)
            price_provider: CoinGecko provider (built when a coin id is configured)
            documents: Loader for tag and distribution documents
            credential_store: Preference store for the TonAPI token
        """
        self.config = config or get_config()
        self.resolver = AddressResolver()

        if client is None:
            store = credential_store or JSONFileStore(self.config.credential_store_path)
            client = TonApiClient(
                master=self.config.require_master(),
                base_url=self.config.tonapi_base_url,
                credential=self.config.tonapi_token,
                credential_store=store,
                anonymous_min_gap=self.config.anonymous_min_gap,
                authenticated_min_gap=self.config.authenticated_min_gap,
                retry_after_default=self.config.retry_after_default,
                timeout=self.config.request_timeout,
            )
        self.client = client

        if price_provider is None and self.config.has_coingecko():
            price_provider = CoinGeckoPriceProvider(api_key=self.config.coingecko_api_key)
        self.price_provider = price_provider

        self.documents = documents or StaticDocumentProvider(resolver=self.resolver)
        self.aggregator = HolderAggregator()

        self._meta: TokenMeta | None = None
        self._tags: dict[str, str] | None = None
        self._audit_entries: list[AuditEntry] = []
        self._quality_flags: list[DataQualityFlag] = []

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "HolderAnalysisOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _add_quality_flag(
        self,
        field: str,
        issue: str,
        severity: str = "warning",
    ) -> None:
        """Add a data quality flag."""
        self._quality_flags.append(
            DataQualityFlag(field=field, issue=issue, severity=severity)
        )

    def _collect_provider_audits(self) -> None:
        """Collect audit entries from all providers."""
        providers = [self.client, self.documents]
        if self.price_provider is not None:
            providers.append(self.price_provider)

        for provider in providers:
            self._audit_entries.extend(provider.get_audit_trail())
            provider.clear_audit_trail()

    def _take_reports(self) -> tuple[list[AuditEntry], list[DataQualityFlag]]:
        self._collect_provider_audits()
        audits, flags = self._audit_entries, self._quality_flags
        self._audit_entries, self._quality_flags = [], []
        return audits, flags

    # -- loaders -------------------------------------------------------------

    async def load_meta(self, refresh: bool = False) -> TokenMeta:
        """Jetton metadata, fetched once per session unless ``refresh``."""
        if self._meta is None or refresh:
            self._meta = await self.client.get_jetton_meta()
            logger.info(
                f"{self._meta.name} ({self._meta.symbol}): decimals={self._meta.decimals}, "
                f"supply={self._meta.total_supply}"
            )
        if self._meta.total_supply == 0:
            self._add_quality_flag(
                "total_supply",
                f"Total supply unknown; shares shown as {UNAVAILABLE}",
            )
        return self._meta

    async def load_tags(self) -> dict[str, str]:
        """Tag labels keyed by canonical address; empty when not configured."""
        if self._tags is not None:
            return self._tags
        if not self.config.tags_source:
            self._tags = {}
            return self._tags

        try:
            self._tags = await self.documents.load_tags(self.config.tags_source)
        except DataSourceError as e:
            logger.warning(f"Tag annotations unavailable: {e}")
            self._add_quality_flag("tags", str(e), severity="info")
            self._tags = {}
        return self._tags

    async def load_distribution(self) -> list[DistributionBucket]:
        """Precomputed distribution buckets; empty when not configured."""
        if not self.config.distribution_source:
            return []
        try:
            return await self.documents.load_distribution(self.config.distribution_source)
        except DataSourceError as e:
            logger.warning(f"Distribution report unavailable: {e}")
            self._add_quality_flag("distribution", str(e), severity="info")
            return []

    async def refresh_price(self) -> PriceQuote | None:
        """Current USD price, or None when no source is configured or it fails."""
        if self.price_provider is None or not self.config.coingecko_id:
            return None
        try:
            quote = await self.price_provider.get_usd_price(self.config.coingecko_id)
        except DataSourceError as e:
            logger.warning(f"Price unavailable: {e}")
            self._add_quality_flag("price", str(e), severity="info")
            return None
        if not quote.is_available:
            self._add_quality_flag("price", "CoinGecko returned no USD price", severity="info")
        return quote

    # -- assembly ------------------------------------------------------------

    def build_rows(
        self,
        records: list[HolderRecord],
        meta: TokenMeta,
        tags: dict[str, str] | None = None,
        price: PriceQuote | None = None,
    ) -> list[HolderRow]:
        """Attach display strings, tags and fiat values to ranked records."""
        scale = ScaledAmount(meta.decimals, meta.total_supply)
        tags = tags or {}
        price_usd = price.usd if price else None

        rows = []
        for record in records:
            rows.append(
                HolderRow(
                    rank=record.rank or 0,
                    address=record.address,
                    friendly_address=self.resolver.friendly(record.address) or UNAVAILABLE,
                    tag=tags.get(self.resolver.normalize(record.address), ""),
                    balance=record.balance,
                    balance_change_24h=record.balance_change_24h,
                    balance_display=scale.display(record.balance),
                    change_display=scale.change(record.balance_change_24h),
                    share=self.aggregator.share_of_supply(record.balance, meta.total_supply),
                    value_usd=scale.usd(record.balance, price_usd),
                )
            )
        return rows

    async def load_page(
        self,
        page_index: int = 0,
        page_size: int = 100,
        search: str | None = None,
        sort_field: SortField = SortField.RANK,
        direction: SortDirection = SortDirection.ASC,
    ) -> HolderPage:
        """
        Fetch one API page of holders and prepare it for display.

        Ranks continue from the page offset (``offset + i + 1``). Search and
        sorting apply within the fetched page.
        """
        if page_index < 0:
            raise ValueError("page_index must be >= 0")

        meta = await self.load_meta()
        tags = await self.load_tags()
        price = await self.refresh_price()

        offset = page_index * page_size
        page = await self.client.get_holders_page(limit=page_size, offset=offset)
        ranked = self.aggregator.rank(page.records, start=offset + 1)

        paginator = SortPaginator(meta.total_supply, tags, self.resolver)
        visible = paginator.sort_by(paginator.search(ranked, search), sort_field, direction)

        total_pages = None
        if page.total is not None:
            total_pages = math.ceil(page.total / page_size)

        audits, flags = self._take_reports()
        return HolderPage(
            meta=meta,
            rows=self.build_rows(visible, meta, tags, price),
            page_index=page_index,
            page_size=page_size,
            total_pages=total_pages,
            sort_field=sort_field,
            direction=direction,
            search=search,
            price=price,
            audit_trail=audits,
            quality_flags=flags,
        )

    async def load_snapshot(self, max_holders: int | None = None) -> HolderSnapshot:
        """
        Fetch every holder, rank them and compute concentration.

        Args:
            max_holders: Stop after this many holders (marks the snapshot
                incomplete)
        """
        meta = await self.load_meta()
        records, complete = await self.client.get_all_holders(max_holders=max_holders)

        ranked, stats, shares = self.aggregator.summarize(records, meta)
        self._audit_entries.append(
            AuditEntry(
                source=DataSource.TONAPI,
                action="rank",
                notes=f"{stats.holder_count} holders ranked",
            )
        )
        if not complete:
            self._add_quality_flag(
                "holders",
                f"Holder set truncated at {len(records)}; concentration covers fetched holders only",
            )

        tags = await self.load_tags()
        distribution = await self.load_distribution()
        price = await self.refresh_price()

        audits, flags = self._take_reports()
        return HolderSnapshot(
            meta=meta,
            holders=ranked,
            concentration=stats,
            concentration_shares=shares,
            tags=tags,
            distribution=distribution,
            price=price,
            complete=complete,
            audit_trail=audits,
            quality_flags=flags,
        )

    def view_snapshot(
        self,
        snapshot: HolderSnapshot,
        page_index: int = 0,
        page_size: int = 100,
        search: str | None = None,
        sort_field: SortField = SortField.RANK,
        direction: SortDirection = SortDirection.ASC,
    ) -> HolderPage:
        """Sort, filter and page a snapshot locally, without any request."""
        paginator = SortPaginator(snapshot.meta.total_supply, snapshot.tags, self.resolver)
        ordered = paginator.sort_by(paginator.search(snapshot.holders, search), sort_field, direction)
        items, total_pages = paginator.paginate(ordered, page_index, page_size)

        return HolderPage(
            meta=snapshot.meta,
            rows=self.build_rows(items, snapshot.meta, snapshot.tags, snapshot.price),
            page_index=page_index,
            page_size=page_size,
            total_pages=total_pages,
            sort_field=sort_field,
            direction=direction,
            search=search,
            price=snapshot.price,
            quality_flags=snapshot.quality_flags,
        )
