"""Type definitions and enums for the holder analytics tool."""

from enum import Enum
from typing import Literal


class DataSource(str, Enum):
    """Data source identifiers."""

    TONAPI = "tonapi"
    COINGECKO = "coingecko"
    TAGS = "tags"
    DISTRIBUTION = "distribution"
    MANUAL = "manual"
    UNKNOWN = "unknown"


class SortField(str, Enum):
    """Fields a holder view can be ordered by."""

    RANK = "rank"
    ADDRESS = "address"
    TAG = "tag"
    BALANCE = "balance"
    BALANCE_CHANGE_24H = "balance_change_24h"
    PERCENTAGE = "percentage"

    @property
    def display_name(self) -> str:
        """Human-readable column name."""
        names = {
            self.RANK: "#",
            self.ADDRESS: "Address",
            self.TAG: "Tag",
            self.BALANCE: "Balance",
            self.BALANCE_CHANGE_24H: "24h",
            self.PERCENTAGE: "% of supply",
        }
        return names.get(self, self.value)


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


# Sentinel shown wherever a value cannot be formatted
UNAVAILABLE = "—"

# Type aliases for common patterns
RawAmount = int      # Integer ledger units (scaled by 10**decimals)
USDAmount = float    # USD value
Seconds = float      # Durations and monotonic timestamps

OutputFormatType = Literal["json", "csv", "table"]
