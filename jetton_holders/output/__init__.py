"""Output formatting module."""

from .formatters import (
    OutputFormatter,
    JSONFormatter,
    CSVFormatter,
    TableFormatter,
    get_formatter,
)
from .audit_trail import AuditTrailFormatter

__all__ = [
    "OutputFormatter",
    "JSONFormatter",
    "CSVFormatter",
    "TableFormatter",
    "AuditTrailFormatter",
    "get_formatter",
]
