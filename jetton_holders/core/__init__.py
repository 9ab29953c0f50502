"""Core module - data models, types, and exceptions."""

from .models import (
    TokenMeta,
    HolderRecord,
    HoldersPage,
    ConcentrationStats,
    PriceQuote,
    TagAnnotation,
    DistributionBucket,
    AuditEntry,
    DataQualityFlag,
    HolderRow,
    HolderPage,
    HolderSnapshot,
)
from .types import (
    DataSource,
    SortField,
    SortDirection,
    UNAVAILABLE,
)
from .exceptions import (
    HolderToolError,
    DataSourceError,
    RateLimitError,
    AuthorizationError,
    ValidationError,
    ConfigurationError,
)

__all__ = [
    # Models
    "TokenMeta",
    "HolderRecord",
    "HoldersPage",
    "ConcentrationStats",
    "PriceQuote",
    "TagAnnotation",
    "DistributionBucket",
    "AuditEntry",
    "DataQualityFlag",
    "HolderRow",
    "HolderPage",
    "HolderSnapshot",
    # Types
    "DataSource",
    "SortField",
    "SortDirection",
    "UNAVAILABLE",
    # Exceptions
    "HolderToolError",
    "DataSourceError",
    "RateLimitError",
    "AuthorizationError",
    "ValidationError",
    "ConfigurationError",
]
