"""Calculator module - exact amount arithmetic, ranking and paging."""

from .aggregator import HolderAggregator
from .amounts import ScaledAmount, percent_of, to_display, to_number
from .paginator import SortPaginator

__all__ = [
    "HolderAggregator",
    "ScaledAmount",
    "SortPaginator",
    "percent_of",
    "to_display",
    "to_number",
]
