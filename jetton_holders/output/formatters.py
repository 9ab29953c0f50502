"""Output formatters for holder pages and snapshots.

Provides multiple output formats:
- JSON: Machine-readable, complete data (raw amounts kept as exact strings)
- CSV: Spreadsheet-compatible, one row per holder
- Table: Human-readable CLI output via rich
"""

import csv
import io
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..calculator.amounts import format_usd, to_display
from ..core.models import HolderPage, HolderSnapshot
from ..core.types import UNAVAILABLE
from ..resolution.address_resolver import normalize_address

logger = logging.getLogger(__name__)

HOLDER_COLUMNS = [
    "Rank",
    "Address",
    "Friendly Address",
    "Tag",
    "Balance",
    "Change 24h",
    "Share",
    "Value (USD)",
]

# Fields holding raw ledger amounts; JSON numbers would lose precision past 2**53
_RAW_AMOUNT_FIELDS = {
    "balance",
    "balance_change_24h",
    "total_supply",
    "top10_sum",
    "top100_sum",
    "top1000_sum",
}


class OutputFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format(self, result: HolderPage | HolderSnapshot) -> str:
        """Format the result as a string."""
        pass

    def format_to_file(self, result: HolderPage | HolderSnapshot, filepath: str) -> None:
        """Write formatted result to a file."""
        with open(filepath, "w", encoding="utf-8", newline="") as f:
            f.write(self.format(result))


class JSONFormatter(OutputFormatter):
    """Formats results as JSON."""

    def __init__(self, indent: int = 2, include_audit: bool = False):
        """
        Initialize JSON formatter.

        Args:
            indent: JSON indentation level
            include_audit: Include the per-request audit trail in output
        """
        self.indent = indent
        self.include_audit = include_audit

    def _serialize(self, obj: Any) -> Any:
        """Custom serialization for complex types."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "value"):
            # Enum
            return obj.value
        return str(obj)

    def _stringify_amounts(self, data: Any) -> Any:
        """Recursively turn raw amount ints into decimal strings."""
        if isinstance(data, dict):
            return {
                key: str(value)
                if key in _RAW_AMOUNT_FIELDS and isinstance(value, int)
                else self._stringify_amounts(value)
                for key, value in data.items()
            }
        if isinstance(data, list):
            return [self._stringify_amounts(item) for item in data]
        return data

    def format(self, result: HolderPage | HolderSnapshot) -> str:
        """Format result as JSON string."""
        data = result.model_dump()
        if not self.include_audit:
            data.pop("audit_trail", None)

        data = self._stringify_amounts(data)
        return json.dumps(data, default=self._serialize, indent=self.indent, ensure_ascii=False)


class CSVFormatter(OutputFormatter):
    """Formats holder rows as CSV."""

    def __init__(self, delimiter: str = ",", include_header: bool = True):
        """
        Initialize CSV formatter.

        Args:
            delimiter: CSV delimiter
            include_header: Write the column header row
        """
        self.delimiter = delimiter
        self.include_header = include_header

    def format(self, result: HolderPage | HolderSnapshot) -> str:
        """Format result as CSV string.

        A snapshot is written as its full ranked holder list, without the
        per-row enrichment a page carries.
        """
        output = io.StringIO()
        writer = csv.writer(output, delimiter=self.delimiter)

        if self.include_header:
            writer.writerow(HOLDER_COLUMNS)

        if isinstance(result, HolderSnapshot):
            decimals = result.meta.decimals
            for record in result.holders:
                writer.writerow([
                    record.rank,
                    record.address,
                    "",
                    result.tags.get(normalize_address(record.address), ""),
                    to_display(record.balance, decimals),
                    "" if record.balance_change_24h is None else to_display(record.balance_change_24h, decimals),
                    "",
                    "",
                ])
            return output.getvalue()

        for row in result.rows:
            writer.writerow([
                row.rank,
                row.address,
                row.friendly_address,
                row.tag,
                row.balance_display,
                "" if row.balance_change_24h is None else row.change_display,
                "" if row.share == UNAVAILABLE else row.share,
                "" if row.value_usd is None else f"{row.value_usd:.2f}",
            ])
        return output.getvalue()


class TableFormatter(OutputFormatter):
    """Formats results as human-readable tables for CLI output."""

    def __init__(self, width: int = 140, color: bool = True):
        """
        Initialize table formatter.

        Args:
            width: Maximum table width
            color: Emit ANSI styling (disabled for file output)
        """
        self.width = width
        self.color = color

    def _console(self, output: io.StringIO) -> Console:
        return Console(
            file=output,
            force_terminal=self.color,
            no_color=not self.color,
            width=self.width,
        )

    def format(self, result: HolderPage | HolderSnapshot) -> str:
        """Format result as readable tables."""
        output = io.StringIO()
        console = self._console(output)

        if isinstance(result, HolderSnapshot):
            self._print_snapshot(console, result)
        else:
            self._print_page(console, result)

        if result.quality_flags:
            console.print("\n[bold yellow]Data Quality Flags:[/]")
            for flag in result.quality_flags:
                icon = "!" if flag.severity == "warning" else "i"
                console.print(f"  \\[{icon}] {flag.field}: {flag.issue}")

        return output.getvalue()

    def _print_header(self, console: Console, result: HolderPage | HolderSnapshot) -> None:
        meta = result.meta
        supply = to_display(meta.total_supply, meta.decimals, group_thousands=True)
        price = format_usd(result.price.usd) if result.price else UNAVAILABLE
        console.print(Panel(
            f"[bold cyan]{meta.symbol}[/] - {meta.name}\n"
            f"[dim]Master: {meta.master or UNAVAILABLE}[/]\n"
            f"Total supply: {supply}    Decimals: {meta.decimals}    Price: {price}",
            title="Jetton Holders",
            expand=False,
        ))

    def _print_page(self, console: Console, page: HolderPage) -> None:
        self._print_header(console, page)

        pages = page.total_pages if page.total_pages is not None else "?"
        title = (
            f"Page {page.page_index + 1} of {pages} "
            f"(sorted by {page.sort_field.display_name}, {page.direction.value})"
        )
        if page.search:
            title += f" matching '{page.search}'"

        table = Table(title=title)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Address", style="cyan", overflow="fold")
        table.add_column("Tag", style="magenta")
        table.add_column("Balance", justify="right", style="green")
        table.add_column("24h", justify="right")
        table.add_column("Share", justify="right")
        table.add_column("Value", justify="right")

        for row in page.rows:
            change = row.change_display
            if row.balance_change_24h and row.balance_change_24h > 0:
                change = f"[green]{change}[/]"
            elif row.balance_change_24h and row.balance_change_24h < 0:
                change = f"[red]{change}[/]"

            table.add_row(
                str(row.rank),
                row.friendly_address,
                row.tag,
                row.balance_display,
                change,
                row.share,
                format_usd(row.value_usd),
            )

        if not page.rows:
            console.print(f"[dim]{title}: no holders[/]")
        else:
            console.print(table)

    def _print_snapshot(self, console: Console, snapshot: HolderSnapshot) -> None:
        self._print_header(console, snapshot)
        decimals = snapshot.meta.decimals

        conc = Table(title="Holder Concentration")
        conc.add_column("Bucket", style="cyan")
        conc.add_column("Balance", justify="right", style="green")
        conc.add_column("Share of Supply", justify="right")
        for label, value in snapshot.concentration.as_dict().items():
            conc.add_row(
                label,
                to_display(value, decimals, group_thousands=True),
                snapshot.concentration_shares.get(label, UNAVAILABLE),
            )
        status = "[green]Complete[/]" if snapshot.complete else "[yellow]Partial[/]"
        conc.add_row("", "", "", end_section=True)
        conc.add_row("[bold]Holders[/]", f"{snapshot.concentration.holder_count:,}", status)
        console.print(conc)

        if snapshot.distribution:
            dist = Table(title="Distribution")
            dist.add_column("Bucket", style="cyan")
            dist.add_column("Holders", justify="right")
            dist.add_column("Share", justify="right")
            for bucket in snapshot.distribution:
                dist.add_row(
                    bucket.label,
                    UNAVAILABLE if bucket.holders is None else f"{bucket.holders:,}",
                    UNAVAILABLE if bucket.share is None else str(bucket.share),
                )
            console.print(dist)

    def format_to_file(self, result: HolderPage | HolderSnapshot, filepath: str) -> None:
        """Write formatted output to file."""
        # For file output, drop ANSI codes
        old_color = self.color
        self.color = False
        content = self.format(result)
        self.color = old_color

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)


def get_formatter(output: str) -> OutputFormatter:
    """Formatter for an ``--output`` choice."""
    formatters = {
        "table": TableFormatter,
        "json": JSONFormatter,
        "csv": CSVFormatter,
    }
    try:
        return formatters[output]()
    except KeyError:
        raise ValueError(f"Unknown output format: {output}") from None
