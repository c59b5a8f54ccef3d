# -*- coding: utf-8 -*-
import asyncio
import json
import logging
import typing as t

import click
from rich.console import Console
from rich.json import JSON
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from load_monitor.aggregation import group_by_grade, overall_category, overall_percentage
from load_monitor.client import SchoolDataClient
from load_monitor.models import StatusSnapshot
from load_monitor.quota import LoadCategory
from load_monitor.refresh import Notification, RefreshOrchestrator

console = Console()

CATEGORY_STYLES = {
    LoadCategory.OVERLOADED: "bold red",
    LoadCategory.HIGH: "red",
    LoadCategory.MEDIUM: "yellow",
    LoadCategory.LOW: "blue",
    LoadCategory.MINIMAL: "green",
}

NOTIFICATION_STYLES = {"success": "green", "error": "red", "info": "cyan"}


def configure_logging(verbose: bool) -> None:
    """Send log records through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def print_notification(notification: Notification) -> None:
    """Show a refresh notification in the console."""
    style = NOTIFICATION_STYLES.get(notification.level, "white")
    text = f"[{style}]{notification.title}[/{style}]"
    if notification.description:
        text += f" [dim]{notification.description}[/dim]"
    console.print(text)


def snapshot_to_dict(snapshot: StatusSnapshot) -> dict[str, t.Any]:
    """JSON-friendly view of a snapshot, camelCase like the service."""
    return {
        "source": snapshot.source.value,
        "loadedAt": snapshot.loaded_at.isoformat(),
        "week": {"weekNumber": snapshot.week.week_number, "year": snapshot.week.year},
        "overall": {
            "percentage": round(overall_percentage(snapshot.statuses), 1),
            "category": overall_category(snapshot.statuses).value,
        },
        "statuses": [
            {
                "classId": status.class_record.id,
                "grade": status.class_record.grade,
                "name": status.class_record.name,
                "tasks": status.tasks,
                "exams": status.exams,
                "maxTasks": status.max_tasks,
                "maxExams": status.max_exams,
                "percentage": round(status.percentage, 1),
                "category": status.category.value,
            }
            for status in snapshot.statuses
        ],
    }


def create_grade_table(grade: int, statuses: list) -> Table:
    """Create the table of one grade's classes."""
    table = Table(title=f"📚 Grade {grade}", show_header=True, header_style="bold magenta")
    table.add_column("Class", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Tasks", justify="right")
    table.add_column("Exams", justify="right")
    table.add_column("Load", justify="right")
    table.add_column("Status")

    for status in statuses:
        style = CATEGORY_STYLES[status.category]
        table.add_row(
            status.class_record.id,
            status.class_record.name,
            f"{status.tasks}/{status.max_tasks}",
            f"{status.exams}/{status.max_exams}",
            f"{round(status.percentage)}%",
            f"[{style}]{status.category.value}[/{style}]",
        )
    return table


def display_snapshot(snapshot: StatusSnapshot) -> None:
    """Print header, per-grade tables and the overall load."""
    console.print(
        Panel.fit(
            f"[bold blue]📚 Task & Exam Monitoring[/bold blue]\n"
            f"Week [bold]{snapshot.week.week_number}[/bold] of {snapshot.week.year}",
            border_style="blue",
        )
    )
    if not snapshot.is_live:
        console.print("[yellow]School data service unavailable, showing offline data.[/yellow]")

    for grade, statuses in group_by_grade(snapshot.statuses).items():
        console.print(create_grade_table(grade, statuses))

    category = overall_category(snapshot.statuses)
    style = CATEGORY_STYLES[category]
    console.print(
        Panel(
            f"{round(overall_percentage(snapshot.statuses))}% of weekly slots used "
            f"([{style}]{category.value}[/{style}])",
            title="📊 Overall load",
            border_style="green",
        )
    )


async def _load_once(orchestrator: RefreshOrchestrator) -> StatusSnapshot:
    try:
        return await orchestrator.load()
    finally:
        await orchestrator.aclose()


async def _watch(orchestrator: RefreshOrchestrator, interval: float, count: int) -> None:
    try:
        display_snapshot(await orchestrator.load())
        refreshes = 0
        while count == 0 or refreshes < count:
            await asyncio.sleep(interval)
            await orchestrator.refresh()
            display_snapshot(orchestrator.snapshot)
            refreshes += 1
    finally:
        await orchestrator.aclose()


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """Weekly task and exam load per class."""
    configure_logging(verbose)


@main.command()
@click.option("--url", default=None, help="School data service URL (default: $SCHOOL_DATA_SERVICE_URL).")
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON.")
def status(url: t.Optional[str], as_json: bool) -> None:
    """Load the current week once and show every class's load."""
    orchestrator = RefreshOrchestrator(client=SchoolDataClient(base_url=url))

    with console.status("[bold green]Loading class and assignment data..."):
        snapshot = asyncio.run(_load_once(orchestrator))

    if as_json:
        console.print(JSON(json.dumps(snapshot_to_dict(snapshot), indent=2)))
    else:
        display_snapshot(snapshot)


@main.command()
@click.option("--url", default=None, help="School data service URL (default: $SCHOOL_DATA_SERVICE_URL).")
@click.option("--interval", default=60.0, show_default=True, type=float, help="Seconds between refreshes.")
@click.option("--count", default=0, type=int, help="Stop after this many refreshes (0 = run until interrupted).")
def watch(url: t.Optional[str], interval: float, count: int) -> None:
    """Load, then refresh periodically and report each refresh."""
    orchestrator = RefreshOrchestrator(
        client=SchoolDataClient(base_url=url),
        notify=print_notification,
    )
    try:
        asyncio.run(_watch(orchestrator, interval, count))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


if __name__ == "__main__":
    main()
