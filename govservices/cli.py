"""Command-line entrypoints for GovServices."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Optional, Tuple

import click
from pythonjsonlogger import jsonlogger
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from govservices.config import GovServicesSettings, get_settings
from govservices.errors import GovServicesError
from govservices.indexer.models import SearchOptions, ServiceRecord
from govservices.orchestrator import BatchItem, SearchOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)
console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def setup_logging(level: str, json_lines: bool = False) -> None:
    """Set up logging with a Rich handler, or JSON lines on stderr."""
    if json_lines:
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        log_format = None
    else:
        handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True)
        log_format = "%(message)s"

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


def _settings_from(ctx: click.Context) -> GovServicesSettings:
    return ctx.obj["settings"]


def _run(coro):
    try:
        return asyncio.run(coro)
    except GovServicesError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


async def _with_orchestrator(settings: GovServicesSettings, action):
    orchestrator = build_orchestrator(settings)
    try:
        return await action(orchestrator)
    finally:
        await orchestrator.aclose()


def _print_record(record: ServiceRecord) -> None:
    console.print(f"[bold]{record.title}[/bold] ({record.id})")
    console.print(f"  Authority: {record.authority or '-'}")
    console.print(f"  Category:  {record.category}")
    console.print(f"  URL:       {record.url}")


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Set logging level (defaults to GOVSERVICES_LOG_LEVEL)",
)
@click.option(
    "--catalog",
    "catalog_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON catalog to seed instead of the bundled samples",
)
@click.pass_context
def main(ctx: click.Context, log_level: Optional[str], catalog_file: Optional[str]) -> None:
    """GovServices search and ingestion commands."""

    settings = get_settings()
    updates = {}
    if log_level:
        updates["log_level"] = log_level.upper()
    if catalog_file:
        updates["catalog_file"] = catalog_file
    if updates:
        settings = settings.model_copy(update=updates)

    setup_logging(settings.log_level, settings.log_json)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@main.command()
@click.argument("query")
@click.option("--language", type=click.Choice(["en", "ar"]), default=None)
@click.option("--category", default=None)
@click.option("--max-results", default=10, show_default=True, type=int)
@click.option(
    "--sort-by",
    type=click.Choice(["relevance", "date", "authority"]),
    default="relevance",
    show_default=True,
)
@click.option("--include-expired", is_flag=True, default=False)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    language: Optional[str],
    category: Optional[str],
    max_results: int,
    sort_by: str,
    include_expired: bool,
    as_json: bool,
) -> None:
    """Search the service catalog."""

    options = SearchOptions(
        language=language,
        category=category,
        max_results=max_results,
        include_expired=include_expired,
        sort_by=sort_by,
    )
    results = _run(
        _with_orchestrator(
            _settings_from(ctx), lambda orchestrator: orchestrator.search(query, options)
        )
    )

    if as_json:
        click.echo(json.dumps([result.to_dict() for result in results], ensure_ascii=False))
        return

    if not results:
        console.print(f"No matches for [bold]{query}[/bold]")
        return

    table = Table(title=f"Results for {query!r}")
    table.add_column("Score", justify="right")
    table.add_column("Service")
    table.add_column("Authority")
    table.add_column("Matched fields")
    for result in results:
        table.add_row(
            f"{result.relevance_score:g}",
            result.record.title,
            result.record.authority or "-",
            ", ".join(result.matched_fields),
        )
    console.print(table)


@main.command()
@click.argument("url")
@click.option("--dynamic", is_flag=True, default=False, help="Render scripts with Playwright")
@click.pass_context
def scrape(ctx: click.Context, url: str, dynamic: bool) -> None:
    """Fetch one page and index it."""

    record = _run(
        _with_orchestrator(
            _settings_from(ctx),
            lambda orchestrator: orchestrator.scrape_and_index(url, dynamic),
        )
    )
    _print_record(record)


@main.command()
@click.argument("urls", nargs=-1)
@click.option(
    "--file",
    "url_file",
    type=click.File("r"),
    default=None,
    help="File with one URL per line",
)
@click.option("--dynamic", is_flag=True, default=False)
@click.option("--concurrency", type=click.IntRange(min=1), default=None)
@click.option("--timeout", type=float, default=None, help="Per-URL timeout in seconds")
@click.pass_context
def batch(
    ctx: click.Context,
    urls: Tuple[str, ...],
    url_file,
    dynamic: bool,
    concurrency: Optional[int],
    timeout: Optional[float],
) -> None:
    """Scrape many pages; failures are logged and skipped."""

    targets = list(urls)
    if url_file is not None:
        targets.extend(line.strip() for line in url_file if line.strip())
    if not targets:
        raise click.UsageError("Provide URLs as arguments or with --file")

    items = [BatchItem(url=url, dynamic=dynamic) for url in targets]

    async def action(orchestrator: SearchOrchestrator):
        return await orchestrator.process_batch(items, concurrency=concurrency, timeout=timeout)

    records = _run(_with_orchestrator(_settings_from(ctx), action))
    console.print(f"Indexed {len(records)} of {len(items)} URLs")
    for record in records:
        _print_record(record)


@main.command()
@click.option("--host", default=None, help="Bind address (defaults to GOVSERVICES_API_HOST)")
@click.option("--port", default=None, type=int)
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP API."""

    import uvicorn

    from govservices.api.app import create_app

    settings = _settings_from(ctx)
    host = host or settings.api_host
    port = port or settings.api_port
    logger.info("Starting GovServices API on %s:%s", host, port)
    uvicorn.run(create_app(settings=settings), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
