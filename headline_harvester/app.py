"""Typer CLI entrypoint for Headline Harvester."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import click
import typer
from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, Credentials, HarvesterConfig, ScheduleConfig, ScheduleType
from .engine import DeduplicationStore, NewsRecord, SourceFetchResult
from .engine.delivery import ConsoleSink, DeliverySink, TelegramSink
from .engine.transform import OpenRouterTransform
from .exceptions import ConfigurationError, StoreError
from .infra import SQLiteManager
from .logging_conf import (
    available_source_logs,
    configure_logging,
    main_log_path,
    source_log_path,
    tail_log,
)
from .orchestrator import FetchOrchestrator, HarvestPipeline, RunSummary
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="Headline Harvester command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect log files",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: HarvesterConfig
    storage: SQLiteManager
    store: DeduplicationStore
    credentials: Credentials
    scheduler: APSchedulerAdapter


def build_state(verbose: bool) -> AppState:
    load_dotenv()
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    config = repository.load()
    storage = SQLiteManager()
    store = DeduplicationStore(storage, repository.database_path())
    return AppState(
        repository=repository,
        config=config,
        storage=storage,
        store=store,
        credentials=Credentials.from_env(),
        scheduler=APSchedulerAdapter(),
    )


def build_pipeline(state: AppState, dry_run: bool = False) -> HarvestPipeline:
    """Wire a pipeline from configuration; missing credentials raise ``ConfigurationError``."""

    config = state.config
    api_key = state.credentials.require_transform()
    sink: DeliverySink
    if dry_run or not state.credentials.telegram_configured:
        sink = ConsoleSink(console)
    else:
        sink = TelegramSink(
            state.credentials.telegram_bot_token or "",
            state.credentials.telegram_chat_id or "",
            config.delivery,
        )
    return HarvestPipeline(
        config,
        FetchOrchestrator.from_config(config),
        OpenRouterTransform(api_key, config.transform),
        sink,
        state.store,
        output_dir=state.repository.output_dir(),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _fail(message: str) -> None:
    console.print(message, style="red", markup=False)
    raise typer.Exit(code=1)


def _format_schedule(schedule: ScheduleConfig) -> str:
    if schedule.value in (None, "", {}):
        return schedule.type.value
    if schedule.type is ScheduleType.INTERVAL and isinstance(schedule.value, (int, float)):
        return f"interval ({schedule.value}s)"
    return f"{schedule.type.value} ({schedule.value})"


def _render_summary_table(summary: RunSummary) -> Table:
    table = Table(title="Run summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", justify="right")
    for key, value in summary.to_dict().items():
        if key == "transform_error":
            continue
        table.add_row(key.replace("_", " "), str(value))
    return table


def _render_fetch_table(results: dict[str, SourceFetchResult]) -> Table:
    table = Table(title=f"Fetched {len(results)} sources", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Status", style="magenta")
    table.add_column("Headlines", justify="right")
    table.add_column("Detail", overflow="fold")
    for source_id, result in results.items():
        if result.ok:
            table.add_row(source_id, "ok", str(len(result.headlines)), result.base_url)
        else:
            table.add_row(source_id, "failed", "0", result.error or "-")
    return table


def _render_records_table(title: str, records: Iterable[NewsRecord]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", overflow="fold")
    table.add_column("Source", style="magenta")
    table.add_column("Recorded", style="green", no_wrap=True)
    table.add_column("URL", overflow="fold", style="cyan")
    for index, record in enumerate(records, start=1):
        created = record.created_at.strftime("%Y-%m-%d %H:%M:%S") if record.created_at else "-"
        table.add_row(str(index), record.title, record.source or "-", created, record.url)
    return table


app.add_typer(log_app, name="log", help="Inspect log files")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True),
) -> None:
    try:
        ctx.obj = build_state(verbose)
    except ConfigurationError as exc:
        _fail(f"Configuration error: {exc}")


@app.command("run", help="Fetch, summarise, deliver and record today's headlines.")
def run_command(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print messages instead of sending; record nothing.", is_flag=True
    ),
    debug_dump: bool = typer.Option(
        False, "--debug-dump", help="Write intermediate JSON files to the output directory.", is_flag=True
    ),
) -> None:
    state = _get_state(ctx)
    try:
        pipeline = build_pipeline(state, dry_run=dry_run)
    except ConfigurationError as exc:
        _fail(f"Configuration error: {exc}")
    if not dry_run and not state.credentials.telegram_configured:
        console.print("Telegram credentials not configured; printing messages instead.", style="yellow")
    try:
        summary = pipeline.run(record=not dry_run, debug_dump=debug_dump or None)
    finally:
        pipeline.close()
    console.print(_render_summary_table(summary))
    if summary.transform_error:
        _fail(f"Transform failed: {summary.transform_error}")


@app.command("fetch", help="Fetch every source and show the extracted headlines.")
def fetch_command(
    ctx: typer.Context,
    show_headlines: bool = typer.Option(
        False, "--headlines", help="List each extracted headline.", is_flag=True
    ),
) -> None:
    state = _get_state(ctx)
    orchestrator = FetchOrchestrator.from_config(state.config)
    try:
        results = orchestrator.fetch_all()
    finally:
        orchestrator.close()
    console.print(_render_fetch_table(results))
    if show_headlines:
        for source_id, result in results.items():
            for candidate in result.headlines:
                console.print(f"[{source_id}] {candidate.title}", markup=False)
                console.print(f"    {candidate.url or '-'}", style="dim", markup=False)


@app.command("stats", help="Show database statistics.")
def stats_command(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        stats = state.store.stats()
    except StoreError as exc:
        _fail(f"Database error: {exc}")
    table = Table(title="Database statistics", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Total news entries", str(stats.total))
    table.add_row("Sources", ", ".join(stats.distinct_sources) or "-")
    table.add_row("Oldest entry", str(stats.oldest_created_at or "-"))
    table.add_row("Newest entry", str(stats.newest_created_at or "-"))
    console.print(table)


@app.command("list", help="List recently recorded news.")
def list_command(
    ctx: typer.Context,
    limit: int = typer.Argument(20, help="Number of entries to show."),
) -> None:
    state = _get_state(ctx)
    try:
        records = state.store.list_recent(limit)
    except StoreError as exc:
        _fail(f"Database error: {exc}")
    if not records:
        console.print("No news recorded yet.", style="dim")
        return
    console.print(_render_records_table(f"Recent news ({len(records)} items)", records))


@app.command("search", help="Search recorded news by keyword.")
def search_command(
    ctx: typer.Context,
    keyword: str = typer.Argument(..., help="Text to look for in titles and bodies."),
    limit: int = typer.Option(50, "--limit", help="Maximum number of matches."),
) -> None:
    state = _get_state(ctx)
    try:
        records = state.store.search(keyword, limit)
    except StoreError as exc:
        _fail(f"Database error: {exc}")
    if not records:
        console.print(f"No news matching {keyword!r}.", style="dim", markup=False)
        return
    console.print(_render_records_table(f"Matches for {keyword!r} ({len(records)})", records))


@app.command("cleanup", help="Delete news older than N days.")
def cleanup_command(
    ctx: typer.Context,
    days: Optional[int] = typer.Argument(None, help="Retention window in days."),
) -> None:
    state = _get_state(ctx)
    days = days if days is not None else state.config.retention_days
    if days < 1:
        _fail("Days must be a positive number.")
    try:
        deleted = state.store.prune_older_than(days)
    except StoreError as exc:
        _fail(f"Cleanup failed: {exc}")
    console.print(f"Deleted {deleted} news entries older than {days} days.", style="green")


@app.command("export", help="Export all news to a JSON file.")
def export_command(
    ctx: typer.Context,
    file: Optional[Path] = typer.Argument(None, help="Destination file."),
) -> None:
    state = _get_state(ctx)
    target = file or Path(f"news_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json")
    try:
        count = state.store.export_json(target)
    except (OSError, StoreError) as exc:
        _fail(f"Export failed: {exc}")
    console.print(f"Exported {count} news items to {target}", style="green")


@app.command("reset", help="Delete ALL recorded news (irreversible).")
def reset_command(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    if not yes:
        confirm = typer.confirm("Delete ALL recorded news?", default=False)
        if not confirm:
            console.print("Cancelled.", style="yellow")
            raise typer.Exit(code=0)
    try:
        deleted = state.store.reset()
    except StoreError as exc:
        _fail(f"Reset failed: {exc}")
    console.print(f"Database reset complete ({deleted} entries removed).", style="green")


@app.command("schedule", help="Run the pipeline on the configured schedule until interrupted.")
def schedule_command(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        state.credentials.require_transform()
    except ConfigurationError as exc:
        _fail(f"Configuration error: {exc}")
    logger = configure_logging().bind(component="cli")

    def job() -> None:
        pipeline = build_pipeline(state)
        try:
            summary = pipeline.run()
        finally:
            pipeline.close()
        logger.info("scheduled_run_finished", **summary.to_dict())

    state.scheduler.schedule_pipeline(job, state.config.schedule)
    state.scheduler.start()
    console.print(f"Scheduled: {_format_schedule(state.config.schedule)}. Press Ctrl+C to stop.", style="cyan")
    try:
        while state.scheduler.list_jobs():
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping scheduler.", style="yellow")
    finally:
        state.scheduler.shutdown()


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    logs = list(available_source_logs())
    if not logs:
        console.print("No source logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("tail", help="Show the last lines of a log.")
def log_tail(
    source: Optional[str] = typer.Option(None, "--source", help="Source id (global log when empty)."),
    lines: int = typer.Option(100, "--lines", help="Number of lines to show."),
) -> None:
    path = source_log_path(source) if source else main_log_path()
    content = tail_log(path, lines)
    if not content:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{source or 'harvester'} log · last {len(content)} lines", style="cyan")
    console.print("".join(content), markup=False, highlight=False)


def cli() -> None:
    """Console entry point; usage errors exit with status 1."""

    try:
        result = app(standalone_mode=False)
    except click.exceptions.Abort:
        console.print("Aborted.", style="yellow")
        sys.exit(1)
    except click.ClickException as exc:
        exc.show()
        sys.exit(1)
    sys.exit(result if isinstance(result, int) else 0)


if __name__ == "__main__":  # pragma: no cover
    cli()
