"""CLI interface for contact-centre reports."""

import sys
from collections.abc import Callable
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import get_settings
from .constants import (
    EXIT_CODE_ERROR,
    OVERALL_CHANNEL,
    CliHelp,
    LogMessage,
    QueueSelector,
)
from .errors import ReportingError
from .models import ReportResult
from .reports import ReportService
from .storage import ReportStorage
from .store.frame import PolarsRecordStore

app = typer.Typer(help=CliHelp.APP)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    calls: Path = typer.Option(None, "--calls", help=CliHelp.CALLS),
    chats: Path = typer.Option(None, "--chats", help=CliHelp.CHATS),
    requests: Path = typer.Option(None, "--requests", help=CliHelp.REQUESTS),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=CliHelp.VERBOSE),
) -> None:
    """Load the event files every report command reads."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else get_settings().log_level)
    ctx.obj = {"calls": calls, "chats": chats, "requests": requests}


def _render(result: ReportResult) -> None:
    records = result.records()
    if not records:
        console.print(f"[yellow]No {result.kind} rows[/yellow]")
        return

    table = Table(title=str(result.kind))
    for column in records[0]:
        table.add_column(str(column))
    for record in records:
        table.add_row(*["" if value is None else str(value) for value in record.values()])
    console.print(table)

    if result.summary is not None:
        for key, value in result.summary.to_dict().items():
            console.print(f"[bold]{key}[/bold]: {value}")


def _run(
    ctx: typer.Context,
    build: Callable[[ReportService], ReportResult],
    output: Path | None,
) -> None:
    """Build a report from the loaded files, print it and optionally save it."""
    try:
        store = PolarsRecordStore.from_files(**ctx.obj)
        service = ReportService(store)

        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Aggregating...", total=None)
            result = build(service)

        _render(result)
        if output is not None:
            ReportStorage().save(result=result, filepath=output)
    except ReportingError as e:
        logger.error(LogMessage.ERROR_OCCURRED.format(e))
        raise typer.Exit(code=EXIT_CODE_ERROR)
    except Exception as e:
        logger.exception(LogMessage.ERROR_OCCURRED.format(e))
        raise typer.Exit(code=EXIT_CODE_ERROR)


@app.command()
def daily(
    ctx: typer.Context,
    start: str = typer.Option(..., "--start", "-s", help=CliHelp.START),
    end: str = typer.Option(..., "--end", "-e", help=CliHelp.END),
    queue: str = typer.Option(QueueSelector.ALL.value, "--queue", "-q", help=CliHelp.QUEUE),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """KPIs per calendar date."""
    _run(ctx, lambda service: service.daily(start, end, queue, timeout=timeout), output)


@app.command()
def monthly(
    ctx: typer.Context,
    start: str = typer.Option(..., "--start", "-s", help=CliHelp.START),
    end: str = typer.Option(..., "--end", "-e", help=CliHelp.END),
    queue: str = typer.Option(QueueSelector.ALL.value, "--queue", "-q", help=CliHelp.QUEUE),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """KPIs per day of month."""
    _run(ctx, lambda service: service.monthly(start, end, queue, timeout=timeout), output)


@app.command()
def hourly(
    ctx: typer.Context,
    metric: str = typer.Option(..., "--metric", "-m", help=CliHelp.METRIC),
    start: str = typer.Option(..., "--start", "-s", help=CliHelp.START),
    end: str = typer.Option(..., "--end", "-e", help=CliHelp.END),
    queue: str = typer.Option(QueueSelector.ALL.value, "--queue", "-q", help=CliHelp.QUEUE),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """One KPI per date and hour of day."""
    _run(
        ctx,
        lambda service: service.hourly(start, end, metric, queue, timeout=timeout),
        output,
    )


@app.command()
def classifiers(
    ctx: typer.Context,
    start: str = typer.Option(..., "--start", "-s", help=CliHelp.START),
    end: str = typer.Option(..., "--end", "-e", help=CliHelp.END),
    queue: str = typer.Option(QueueSelector.ALL.value, "--queue", "-q", help=CliHelp.QUEUE),
    channel: str = typer.Option(OVERALL_CHANNEL, "--channel", "-c", help=CliHelp.CHANNEL),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """Classification counts per date, topic and subtopic."""
    _run(
        ctx,
        lambda service: service.classifiers(start, end, queue, channel, timeout=timeout),
        output,
    )


@app.command()
def topics(
    ctx: typer.Context,
    start: str = typer.Option(..., "--start", "-s", help=CliHelp.START),
    end: str = typer.Option(..., "--end", "-e", help=CliHelp.END),
    queue: str = typer.Option(QueueSelector.ALL.value, "--queue", "-q", help=CliHelp.QUEUE),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """Topic counts with each topic's share of the day."""
    _run(ctx, lambda service: service.topics(start, end, queue, timeout=timeout), output)


@app.command("available-topics")
def available_topics(
    ctx: typer.Context,
    queue: str = typer.Option(QueueSelector.ALL.value, "--queue", "-q", help=CliHelp.QUEUE),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """Every topic seen on the selected queues."""
    _run(ctx, lambda service: service.available_topics(queue, timeout=timeout), output)


@app.command()
def subtopics(
    ctx: typer.Context,
    topic: str = typer.Option(..., "--topic", "-t", help=CliHelp.TOPIC),
    start: str = typer.Option(..., "--start", "-s", help=CliHelp.START),
    end: str = typer.Option(..., "--end", "-e", help=CliHelp.END),
    queue: str = typer.Option(QueueSelector.ALL.value, "--queue", "-q", help=CliHelp.QUEUE),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """Subtopic counts per date for one topic."""
    _run(
        ctx,
        lambda service: service.subtopics(start, end, topic, queue, timeout=timeout),
        output,
    )


@app.command("queue-stats")
def queue_stats(
    ctx: typer.Context,
    start: str = typer.Option(..., "--start", "-s", help=CliHelp.START),
    end: str = typer.Option(..., "--end", "-e", help=CliHelp.END),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT),
    timeout: float = typer.Option(None, "--timeout", help=CliHelp.TIMEOUT),
) -> None:
    """Call counts per raw queue and the complaint-line daily breakdown."""
    _run(ctx, lambda service: service.queue_stats(start, end, timeout=timeout), output)
