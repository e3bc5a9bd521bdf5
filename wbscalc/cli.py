"""WBSCalc CLI - async commands over the SQL store.

Commands:
- init: Initialize database schema
- project-create: Register a project
- version create|list|clone|delete|lock: Manage Ballpark/Estimates/Detail versions
- import: Import WBS/RAB item sheets (CSV/XLSX) into a version
- schedule: Set leaf start dates from task dependencies
- view: Show Summary, Timeline, Gantt or S-Curve of a version
- export: Write a version workbook (XLSX)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from wbscalc.config import get_config
from wbscalc.core.logging import configure_logging
from wbscalc.db.connection import close_db, get_session, init_db
from wbscalc.db.repository import SqlItemStore
from wbscalc.exceptions import WBSError
from wbscalc.ingestion.items import import_items
from wbscalc.models import Granularity, VersionMode, ViewKind
from wbscalc.reporting.excel_export import export_version_workbook
from wbscalc.versions.manager import VersionManager
from wbscalc.views.models import GanttView, SCurveView, SummaryView, TimelineView

app = typer.Typer(
    name="wbscalc",
    help="WBSCalc - WBS, budget and schedule engine for construction projects",
    no_args_is_help=True,
)
version_cli = typer.Typer(help="Manage project versions")
app.add_typer(version_cli, name="version")

console = Console()


@app.callback()
def _setup(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    configure_logging(log_level)


def _run(work: Callable[[VersionManager], Awaitable[Any]]) -> Any:
    """Run ``work`` in one session; engine errors exit with status 1."""

    async def _session():
        try:
            async with get_session() as session:
                return await work(VersionManager(SqlItemStore(session)))
        finally:
            await close_db()

    try:
        return asyncio.run(_session())
    except WBSError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        if drop:
            console.print("[yellow]Dropping existing tables...[/yellow]")
        try:
            await init_db(drop=drop)
        finally:
            await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="project-create")
def project_create(
    code: str = typer.Argument(..., help="Project code"),
    name: str = typer.Argument(..., help="Display name"),
    project_id: str | None = typer.Option(None, "--id", help="Project ID (generated if omitted)"),
):
    """Register a project."""
    project = _run(lambda manager: manager.create_project(code, name, project_id))
    console.print(f"[bold green]✓[/bold green] Project {project.code} created: {project.id}")


@version_cli.command("create")
def version_create(
    project_id: str = typer.Argument(..., help="Project ID"),
    mode: VersionMode = typer.Option(VersionMode.BALLPARK, "--mode", help="Version mode"),
    name: str | None = typer.Option(None, "--name", help="Version name"),
    start: datetime | None = typer.Option(None, "--start", formats=["%Y-%m-%d"], help="Project start"),
):
    """Create an empty version."""
    version = _run(
        lambda manager: manager.create_version(
            project_id, mode, name=name, project_start=start.date() if start else None
        )
    )
    console.print(
        f"[bold green]✓[/bold green] {version.name} (#{version.version_no}) created: {version.id}"
    )


@version_cli.command("list")
def version_list(
    project_id: str = typer.Argument(..., help="Project ID"),
):
    """List a project's versions."""
    versions = _run(lambda manager: manager.list_versions(project_id))

    table = Table(title=f"Versions of {project_id}")
    table.add_column("#", justify="right")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Mode", style="magenta")
    table.add_column("Locked")
    table.add_column("Cloned From", style="dim")
    for v in versions:
        table.add_row(
            str(v.version_no),
            str(v.id),
            v.name,
            v.mode.value,
            "yes" if v.is_locked else "",
            str(v.source_version_id or ""),
        )
    console.print(table)


@version_cli.command("clone")
def version_clone(
    version_id: UUID = typer.Argument(..., help="Source version ID"),
    mode: VersionMode = typer.Option(..., "--mode", help="Mode of the new version"),
    name: str | None = typer.Option(None, "--name", help="Name of the new version"),
):
    """Deep-copy a version (items and dependencies) into a new one."""
    version = _run(lambda manager: manager.clone_version(version_id, mode, name=name))
    console.print(f"[bold green]✓[/bold green] Cloned into {version.name}: {version.id}")


@version_cli.command("delete")
def version_delete(
    version_id: UUID = typer.Argument(..., help="Version ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a version with all of its items."""
    if not yes:
        typer.confirm(f"Delete version {version_id} and all of its items?", abort=True)
    _run(lambda manager: manager.delete_version(version_id))
    console.print(f"[bold green]✓[/bold green] Version {version_id} deleted")


@version_cli.command("lock")
def version_lock(
    version_id: UUID = typer.Argument(..., help="Version ID"),
    unlock: bool = typer.Option(False, "--unlock", help="Unlock instead"),
):
    """Lock a version against item edits (or unlock it)."""
    version = _run(lambda manager: manager.lock_version(version_id, locked=not unlock))
    state = "locked" if version.is_locked else "unlocked"
    console.print(f"[bold green]✓[/bold green] {version.name} {state}")


@app.command(name="import")
def import_cmd(
    version_id: UUID = typer.Argument(..., help="Target version ID"),
    files: list[Path] = typer.Argument(..., help="Item sheets (CSV/XLSX)"),
):
    """Import WBS/RAB items from CSV or XLSX files."""
    console.print(f"[bold]Importing items:[/bold] version={version_id}")

    total_success = 0
    total_errors: list[str] = []
    for file_path in files:
        console.print(f"  Processing: {file_path}")
        try:
            success_count, errors = _run(
                lambda manager, path=file_path: import_items(manager, version_id, path)
            )
        except (FileNotFoundError, ValueError) as e:
            console.print(f"    [red]✗[/red] Failed: {e}")
            total_errors.append(str(e))
            continue
        total_success += success_count
        total_errors.extend(errors)
        console.print(f"    [green]✓[/green] {success_count} items imported")
        if errors:
            console.print(f"    [yellow]⚠[/yellow] {len(errors)} errors")
            for err in errors[:5]:  # Show first 5 errors
                console.print(f"      {err}", style="dim")

    console.print(f"\n[bold green]✓[/bold green] Total: {total_success} items imported")
    if total_errors:
        console.print(f"[yellow]⚠[/yellow] {len(total_errors)} errors (see above)")


@app.command()
def schedule(
    version_id: UUID = typer.Argument(..., help="Version ID"),
    start: datetime | None = typer.Option(None, "--start", formats=["%Y-%m-%d"], help="Project start"),
):
    """Set leaf start dates from the version's task dependencies."""
    try:
        updated = _run(
            lambda manager: manager.schedule_from_dependencies(
                version_id, start.date() if start else None
            )
        )
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓[/bold green] {len(updated)} items rescheduled")


@app.command()
def view(
    version_id: UUID = typer.Argument(..., help="Version ID"),
    kind: ViewKind = typer.Option(ViewKind.SUMMARY, "--kind", help="View to show"),
    granularity: Granularity | None = typer.Option(None, "--granularity", help="S-curve step"),
    places: int | None = typer.Option(None, "--places", help="Decimal places"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """Show one view of a version."""
    result = _run(
        lambda manager: manager.project(version_id, kind, granularity=granularity, places=places)
    )

    if as_json:
        console.print_json(result.model_dump_json())
    elif isinstance(result, SummaryView):
        _print_summary(result)
    elif isinstance(result, SCurveView):
        _print_scurve(result)
    else:
        _print_rows(result)


@app.command()
def export(
    version_id: UUID = typer.Argument(..., help="Version ID"),
    output: Path = typer.Option(Path("wbs.xlsx"), "--output", "-o", help="Output XLSX path"),
    granularity: Granularity = typer.Option(Granularity.WEEK, "--granularity", help="S-curve step"),
):
    """Export Summary, Gantt and S-Curve sheets to Excel."""
    resolved = _run(lambda manager: manager.resolve(version_id))
    places = get_config().engine.progress_places
    buffer = export_version_workbook(resolved, granularity=granularity, places=places)
    output.write_bytes(buffer.getvalue())
    console.print(f"[bold green]✓[/bold green] Workbook written to {output}")


def _print_summary(summary: SummaryView) -> None:
    table = Table(title=f"{summary.version_name} ({summary.mode.value})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")

    table.add_row("Allocated Weight", f"{summary.total_weight}%")
    table.add_row("Overall Progress", f"{summary.overall_progress}%")
    table.add_row("Start", str(summary.start or "-"))
    table.add_row("End", str(summary.end or "-"))
    duration = str(summary.duration_days) if summary.duration_days is not None else "-"
    table.add_row("Duration (days)", duration)
    table.add_row("Items / Leaves", f"{summary.item_count} / {summary.leaf_count}")
    table.add_row("Unscheduled", str(summary.unscheduled_count))
    table.add_row("Total Cost", f"{summary.total_cost:,.2f}")
    console.print(table)

    for overflow in summary.weight_overflows:
        label = overflow.parent_code or "top level"
        console.print(f"[yellow]⚠[/yellow] Weights under {label} sum to {overflow.observed_sum}")
    for code in summary.schedule_issue_codes:
        console.print(f"[yellow]⚠[/yellow] Invalid schedule on {code} (treated as unscheduled)")


def _print_rows(result: TimelineView | GanttView) -> None:
    gantt = isinstance(result, GanttView)
    table = Table(title="Gantt" if gantt else "Timeline")
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Weight", justify="right")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Progress", justify="right", style="green")
    if gantt:
        table.add_column("Offset", justify="right")
        table.add_column("Span", justify="right")

    for row in result.rows:
        cells = [
            row.code,
            "  " * (row.depth - 1) + row.name,
            str(row.weight if row.weight is not None else "-"),
            str(row.start or "-"),
            str(row.end or "-"),
            f"{row.progress}%",
        ]
        if gantt and row.unscheduled:
            cells += ["-", "-"]
        elif gantt:
            cells += [str(row.offset_days), str(row.span_days)]
        table.add_row(*cells, style="dim" if row.unscheduled else None)
    console.print(table)


def _print_scurve(curve: SCurveView) -> None:
    table = Table(title=f"S-Curve ({curve.granularity.value})")
    table.add_column("Date")
    table.add_column("Week", justify="right")
    table.add_column("Planned", justify="right")
    table.add_column("Cumulative", justify="right", style="green")
    for point in curve.points:
        table.add_row(
            str(point.day),
            str(point.week),
            f"{point.planned_increment}%",
            f"{point.cumulative}%",
        )
    console.print(table)
    console.print(f"Actual progress: [bold]{curve.actual_progress}%[/bold]")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
