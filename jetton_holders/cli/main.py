"""CLI entry point for the jetton holder analytics tool.

Usage:
    jetton-holders meta
    jetton-holders holders --page 2 --size 50 --sort balance --direction desc
    jetton-holders holders --snapshot --search EQD --output json
    jetton-holders snapshot --max-holders 5000 --save results/holders.json
    jetton-holders price --watch
    jetton-holders token set <TOKEN>
"""

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..calculator.amounts import format_usd, to_display
from ..core.config import AppConfig, get_config, reload_config
from ..core.exceptions import HolderToolError
from ..core.types import SortDirection, SortField
from ..orchestrator import HolderAnalysisOrchestrator
from ..output.audit_trail import AuditTrailFormatter
from ..output.formatters import get_formatter
from ..providers.price.coingecko_price import CoinGeckoPriceProvider, PricePoller
from ..storage.credential_store import CREDENTIAL_KEY, JSONFileStore

# Initialize app
app = typer.Typer(
    name="jetton-holders",
    help="Jetton holder analytics on TonAPI",
    add_completion=False,
)
token_app = typer.Typer(help="Manage the stored TonAPI token")
app.add_typer(token_app, name="token")

console = Console()

OUTPUT_SUFFIXES = {"json": ".json", "csv": ".csv", "table": ".txt"}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def load_settings(env_file: Optional[Path], master: Optional[str]) -> AppConfig:
    """Config from the environment, with the master overridden on the command line."""
    config = reload_config(env_file) if env_file else get_config()
    if master:
        config = dataclasses.replace(config, jetton_master=master)
    return config


def fail(error: Exception, verbose: bool) -> None:
    """Render an error and exit with status 1."""
    console.print(f"[red]Error: {escape(str(error))}[/]")
    if verbose:
        console.print_exception()
    raise typer.Exit(1)


def emit(result, output: str, save: Optional[Path], audit: bool) -> None:
    """Print a page or snapshot and optionally save it."""
    formatter = get_formatter(output)
    formatted = formatter.format(result)

    if output == "table":
        console.print(Text.from_ansi(formatted))
    else:
        print(formatted)

    audit_formatter = AuditTrailFormatter()
    if audit:
        console.print(audit_formatter.format_summary(result), markup=False, highlight=False)

    if save:
        save.parent.mkdir(parents=True, exist_ok=True)
        save_path = save.with_suffix(OUTPUT_SUFFIXES[output])
        formatter.format_to_file(result, str(save_path))
        console.print(f"[green]Saved to {save_path}[/]")

        if audit:
            audit_path = save_path.with_name(f"{save_path.stem}_audit.txt")
            audit_formatter.format_to_file(result, str(audit_path))
            console.print(f"[green]Audit trail saved to {audit_path}[/]")


MasterOption = typer.Option(
    None,
    "--master", "-m",
    help="Jetton master address (defaults to JETTON_MASTER)",
)
EnvFileOption = typer.Option(None, "--env-file", help="Path to a .env file")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")


@app.command()
def meta(
    master: Optional[str] = MasterOption,
    env_file: Optional[Path] = EnvFileOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show jetton metadata: name, symbol, decimals and total supply."""
    setup_logging(verbose)

    async def run():
        async with HolderAnalysisOrchestrator(load_settings(env_file, master)) as orchestrator:
            return await orchestrator.load_meta()

    try:
        token_meta = asyncio.run(run())
    except HolderToolError as e:
        fail(e, verbose)

    table = Table(title="Jetton Metadata", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Master", token_meta.master or "")
    table.add_row("Name", token_meta.name)
    table.add_row("Symbol", token_meta.symbol)
    table.add_row("Decimals", str(token_meta.decimals))
    table.add_row("Total supply", to_display(token_meta.total_supply, token_meta.decimals, group_thousands=True))
    table.add_row("Total supply (raw)", str(token_meta.total_supply))
    console.print(table)


@app.command()
def holders(
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number (1-based)"),
    size: int = typer.Option(100, "--size", "-n", min=1, max=1000, help="Holders per page"),
    sort: SortField = typer.Option(SortField.RANK, "--sort", help="Sort field"),
    direction: SortDirection = typer.Option(SortDirection.ASC, "--direction", "-d", help="Sort direction"),
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Address substring or full address"),
    snapshot: bool = typer.Option(
        False,
        "--snapshot",
        help="Fetch every holder first, then sort and search across the whole set",
    ),
    max_holders: Optional[int] = typer.Option(None, "--max-holders", min=1, help="Cap for --snapshot"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json, csv"),
    save: Optional[Path] = typer.Option(None, "--save", "-s", help="Save output to file"),
    audit: bool = typer.Option(False, "--audit", "-a", help="Include the request audit trail"),
    master: Optional[str] = MasterOption,
    env_file: Optional[Path] = EnvFileOption,
    verbose: bool = VerboseOption,
) -> None:
    """
    Show one page of holders.

    By default the page is fetched straight from TonAPI and sorting applies
    within it. With --snapshot the full holder set is loaded and paged locally.
    """
    setup_logging(verbose)
    output = output.lower()
    if output not in OUTPUT_SUFFIXES:
        console.print(f"[red]Invalid output format: {output}[/]")
        raise typer.Exit(1)

    async def run():
        async with HolderAnalysisOrchestrator(load_settings(env_file, master)) as orchestrator:
            if snapshot:
                full = await orchestrator.load_snapshot(max_holders=max_holders)
                view = orchestrator.view_snapshot(
                    full,
                    page_index=page - 1,
                    page_size=size,
                    search=search,
                    sort_field=sort,
                    direction=direction,
                )
                return view.model_copy(update={"audit_trail": full.audit_trail})
            return await orchestrator.load_page(
                page_index=page - 1,
                page_size=size,
                search=search,
                sort_field=sort,
                direction=direction,
            )

    try:
        result = asyncio.run(run())
    except HolderToolError as e:
        fail(e, verbose)

    emit(result, output, save, audit)


@app.command("snapshot")
def snapshot_command(
    max_holders: Optional[int] = typer.Option(None, "--max-holders", min=1, help="Stop after this many holders"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json, csv"),
    save: Optional[Path] = typer.Option(None, "--save", "-s", help="Save output to file"),
    audit: bool = typer.Option(False, "--audit", "-a", help="Include the request audit trail"),
    master: Optional[str] = MasterOption,
    env_file: Optional[Path] = EnvFileOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fetch every holder and report top-10/100/1000 concentration."""
    setup_logging(verbose)
    output = output.lower()
    if output not in OUTPUT_SUFFIXES:
        console.print(f"[red]Invalid output format: {output}[/]")
        raise typer.Exit(1)

    console.print("[bold]Fetching holders...[/]")

    async def run():
        async with HolderAnalysisOrchestrator(load_settings(env_file, master)) as orchestrator:
            return await orchestrator.load_snapshot(max_holders=max_holders)

    try:
        result = asyncio.run(run())
    except HolderToolError as e:
        fail(e, verbose)

    emit(result, output, save, audit)


@app.command()
def price(
    coin_id: Optional[str] = typer.Argument(None, help="CoinGecko coin id (defaults to COINGECKO_ID)"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Keep polling until interrupted"),
    env_file: Optional[Path] = EnvFileOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show the USD spot price from CoinGecko."""
    setup_logging(verbose)
    config = reload_config(env_file) if env_file else get_config()
    coin_id = coin_id or config.coingecko_id
    if not coin_id:
        console.print("[red]No coin id given and COINGECKO_ID is not set[/]")
        raise typer.Exit(1)

    provider = CoinGeckoPriceProvider(api_key=config.coingecko_api_key)

    if not watch:
        try:
            quote = asyncio.run(provider.get_usd_price(coin_id))
        except HolderToolError as e:
            fail(e, verbose)
        console.print(f"{coin_id}: [green]{format_usd(quote.usd)}[/]")
        return

    poller = PricePoller(provider, coin_id, interval_seconds=config.price_poll_interval)

    async def run():
        last_seen = None
        poller.start()
        try:
            while True:
                await asyncio.sleep(1)
                quote = poller.latest
                if quote is not None and quote.fetched_at != last_seen:
                    last_seen = quote.fetched_at
                    stamp = quote.fetched_at.strftime("%H:%M:%S")
                    console.print(f"[dim]{stamp}[/] {coin_id}: [green]{format_usd(quote.usd)}[/]")
        finally:
            await poller.stop()

    console.print(f"[bold]Polling every {config.price_poll_interval:g}s, Ctrl+C to stop[/]")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/]")


@token_app.command("set")
def token_set(
    token: str = typer.Argument(..., help="TonAPI bearer token"),
    env_file: Optional[Path] = EnvFileOption,
) -> None:
    """Store a TonAPI token; requests then use the faster authenticated gap."""
    config = reload_config(env_file) if env_file else get_config()
    token = token.strip()
    if not token:
        console.print("[red]Token must not be empty[/]")
        raise typer.Exit(1)
    JSONFileStore(config.credential_store_path).set(CREDENTIAL_KEY, token)
    console.print(f"[green]Token saved to {config.credential_store_path}[/]")


@token_app.command("clear")
def token_clear(env_file: Optional[Path] = EnvFileOption) -> None:
    """Forget the stored TonAPI token."""
    config = reload_config(env_file) if env_file else get_config()
    JSONFileStore(config.credential_store_path).set(CREDENTIAL_KEY, None)
    console.print("[green]Token cleared[/]")


@token_app.command("show")
def token_show(env_file: Optional[Path] = EnvFileOption) -> None:
    """Show whether a token is stored (masked)."""
    config = reload_config(env_file) if env_file else get_config()
    token = JSONFileStore(config.credential_store_path).get(CREDENTIAL_KEY)
    if token:
        masked = f"{token[:4]}...{token[-4:]}" if len(token) > 8 else "****"
        console.print(f"Stored token: {masked} (authenticated gap {config.authenticated_min_gap:g}s)")
    elif config.tonapi_token:
        console.print(f"Using TONAPI_TOKEN from the environment (authenticated gap {config.authenticated_min_gap:g}s)")
    else:
        console.print(f"No token stored; requests are anonymous ({config.anonymous_min_gap:g}s apart)")


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__
    console.print(f"Jetton Holders v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
