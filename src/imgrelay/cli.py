"""Click CLI for imgrelay: run the server and manage the caches."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from imgrelay.cache.stats import CacheStats
from imgrelay.config.hierarchy import load_settings
from imgrelay.config.schema import Settings

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int, default: str = "WARNING") -> None:
    """Configure logging based on verbosity level."""
    level = logging.getLevelName(default.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.version_option(package_name="imgrelay")
def cli() -> None:
    """imgrelay: image cache and Telegram relay service."""


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address.")
@click.option("--port", type=int, default=None, help="Bind port.")
@click.option("--store", type=click.Choice(["memory", "sqlite"]), default=None, help="Cache store.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def serve(host: str | None, port: int | None, store: str | None, verbose: int) -> None:
    """Run the HTTP API."""
    import uvicorn

    from imgrelay.api.app import create_app

    settings = _load(host=host, port=port, store=store)
    _setup_logging(verbose, settings.log_level)

    if not settings.bot_configured:
        error_console.print(
            "[yellow]Telegram bot not configured; relay cache will fall back to origin.[/yellow]"
        )

    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


@cli.group()
def cache() -> None:
    """Cache management commands."""


@cache.command("stats")
@click.option("--telegram", is_flag=True, default=False, help="Use the relay cache.")
def cache_stats(telegram: bool) -> None:
    """Show cache statistics."""
    settings = _load()
    name = "telegram_cache" if telegram else "image_cache"
    stats = _run_on_store(settings, name, "stats")

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Cache", name)
    table.add_row("Entries", str(stats.size))
    if telegram:
        table.add_row("Bot configured", "yes" if settings.bot_configured else "no")
    console.print(table)

    if stats.keys:
        keys_table = Table(title="Keys", show_header=False)
        keys_table.add_column("Key")
        for key in stats.keys:
            keys_table.add_row(key)
        console.print(keys_table)


@cache.command("clear")
@click.option("--telegram", is_flag=True, default=False, help="Use the relay cache.")
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
def cache_clear(telegram: bool) -> None:
    """Clear all cached entries."""
    settings = _load()
    name = "telegram_cache" if telegram else "image_cache"
    _run_on_store(settings, name, "clear")
    console.print(f"[green]Cache cleared ({name}).[/green]")


@cli.command("config")
def show_config() -> None:
    """Show resolved configuration (token redacted)."""
    settings = _load()

    table = Table(title="Configuration", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.redacted().items():
        table.add_row(key, "-" if value in (None, "") else str(value))
    console.print(table)


def _load(**overrides: object) -> Settings:
    try:
        return load_settings(**overrides)
    except ValueError as e:
        error_console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)


def _run_on_store(settings: Settings, name: str, action: str) -> CacheStats | None:
    """Run a stats/clear action against the configured durable store."""
    from imgrelay.api.services import build_store
    from imgrelay.errors.exceptions import ImgRelayError
    from imgrelay.types import StoreBackend

    if settings.store == StoreBackend.MEMORY:
        error_console.print("[yellow]Memory store is per-process; nothing to inspect.[/yellow]")

    async def _run() -> CacheStats | None:
        store = build_store(settings, name)
        try:
            if action == "clear":
                await store.clear()
                return None
            keys = await store.keys()
            return CacheStats(size=len(keys), keys=keys)
        finally:
            await store.close()

    try:
        return asyncio.run(_run())
    except ImgRelayError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def main() -> None:
    """Entry point for the CLI."""
    cli()
