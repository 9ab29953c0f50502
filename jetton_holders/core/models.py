"""Pydantic data models for the holder analytics tool.

All data structures are immutable (frozen) after creation. Ledger amounts are
plain Python ints in raw units; nothing in this module converts them to float.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_validator

from .types import DataSource, SortDirection, SortField, UNAVAILABLE


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenMeta(BaseModel):
    """Jetton metadata, created once per session."""

    master: str | None = None
    decimals: int = Field(default=9, ge=0)
    total_supply: int = Field(default=0, ge=0)
    name: str = "GRAM"
    symbol: str = "GRAM"

    model_config = {"frozen": True}


class HolderRecord(BaseModel):
    """One holder as decoded from a holders page.

    ``rank`` stays ``None`` until the aggregator assigns it. A ``None``
    ``balance_change_24h`` means the API reported no delta, which is distinct
    from a reported change of zero.
    """

    address: str
    balance: int = Field(default=0, ge=0)
    balance_change_24h: int | None = None
    rank: int | None = Field(default=None, ge=1)

    model_config = {"frozen": True}

    def with_rank(self, rank: int) -> "HolderRecord":
        """Return a copy carrying the given rank."""
        return self.model_copy(update={"rank": rank})


class HoldersPage(BaseModel):
    """A decoded page of the holders endpoint."""

    records: list[HolderRecord] = Field(default_factory=list)
    offset: int = 0
    limit: int = 0
    total: int | None = None  # Total holder count, when the API reports one

    model_config = {"frozen": True}


class ConcentrationStats(BaseModel):
    """Sum of balances held by the top 10 / 100 / 1000 holders."""

    top10_sum: int = 0
    top100_sum: int = 0
    top1000_sum: int = 0
    holder_count: int = 0

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_prefix_order(self) -> "ConcentrationStats":
        if not (self.top10_sum <= self.top100_sum <= self.top1000_sum):
            raise ValueError("Prefix sums must be non-decreasing")
        return self

    def as_dict(self) -> dict[str, int]:
        """Map of bucket label to summed raw balance."""
        return {
            "top10": self.top10_sum,
            "top100": self.top100_sum,
            "top1000": self.top1000_sum,
        }


class PriceQuote(BaseModel):
    """Latest USD price for the token; ``usd`` is None when unavailable."""

    coin_id: str
    usd: float | None = None
    fetched_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    @property
    def is_available(self) -> bool:
        return self.usd is not None


class TagAnnotation(BaseModel):
    """A label attached to a holder address (exchange, team wallet, ...)."""

    address: str  # Canonical raw form
    label: str

    model_config = {"frozen": True}


class DistributionBucket(BaseModel):
    """One row of the precomputed distribution report, consumed as shaped."""

    label: str
    holders: int | None = None
    share: float | str | None = None

    model_config = {"frozen": True, "extra": "allow"}


class AuditEntry(BaseModel):
    """Audit trail entry for one outbound attempt or processing step."""

    timestamp: datetime = Field(default_factory=_utcnow)
    source: DataSource
    action: str  # "fetch", "retry", "demote", "rank"
    endpoint: str | None = None
    success: bool = True
    status_code: int | None = None
    error_message: str | None = None
    duration_ms: int | None = None
    notes: str | None = None

    model_config = {"frozen": True}


class DataQualityFlag(BaseModel):
    """Flag indicating a data quality issue."""

    field: str
    issue: str
    severity: str = "warning"  # "info", "warning", "error"

    model_config = {"frozen": True}


class HolderRow(BaseModel):
    """A holder prepared for the presentation boundary."""

    rank: int
    address: str
    friendly_address: str
    tag: str = ""
    balance: int
    balance_change_24h: int | None = None
    balance_display: str = UNAVAILABLE
    change_display: str = UNAVAILABLE
    share: str = UNAVAILABLE
    value_usd: float | None = None

    model_config = {"frozen": True}


class HolderPage(BaseModel):
    """One page of holders as shown to the user."""

    meta: TokenMeta
    rows: list[HolderRow] = Field(default_factory=list)
    page_index: int = 0
    page_size: int = 0
    total_pages: int | None = None
    sort_field: SortField = SortField.RANK
    direction: SortDirection = SortDirection.ASC
    search: str | None = None
    price: PriceQuote | None = None
    audit_trail: list[AuditEntry] = Field(default_factory=list)
    quality_flags: list[DataQualityFlag] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}


class HolderSnapshot(BaseModel):
    """Full holder set with concentration statistics."""

    meta: TokenMeta
    holders: list[HolderRecord] = Field(default_factory=list)
    concentration: ConcentrationStats = Field(default_factory=ConcentrationStats)
    concentration_shares: dict[str, str] = Field(default_factory=dict)
    tags: dict[str, str] = Field(default_factory=dict)
    distribution: list[DistributionBucket] = Field(default_factory=list)
    price: PriceQuote | None = None
    complete: bool = True  # False when max_holders cut the fetch short
    audit_trail: list[AuditEntry] = Field(default_factory=list)
    quality_flags: list[DataQualityFlag] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    def add_quality_flag(
        self, field: str, issue: str, severity: str = "warning"
    ) -> "HolderSnapshot":
        """Create a new snapshot with an added quality flag (immutable pattern)."""
        new_flags = list(self.quality_flags)
        new_flags.append(DataQualityFlag(field=field, issue=issue, severity=severity))
        return self.model_copy(update={"quality_flags": new_flags})
