"""
CLI Main - Typer command-line interface.
========================================

Commands:
- scrape: Scrape departments, terms, courses, professors and entries
- query: Search scraped evaluation entries
- info: Show configuration and data paths
"""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from isq_explorer.shared.logging import get_logger

logger = get_logger(__name__)

app = typer.Typer(
    name="isq",
    help="""ISQ Explorer - scrape and search course evaluation (ISQ) data.

COMMANDS OVERVIEW:

  scrape   Scrape the schedule search and professor profile pages
           -w, --workers      Worker threads for the concurrent stages
           --no-persist       Keep results in memory only
           --show-errors      List every recoverable error at the end

  query    Search scraped entries by course, professor and term range

  info     Show configuration and data paths
""",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def _configure_logging() -> None:
    from isq_explorer.shared.config import get_settings
    from isq_explorer.shared.logging import setup_logging

    settings = get_settings()
    setup_logging(
        level=settings.get_effective_log_level(),
        use_rich=settings.logging.rich_console,
        log_file=settings.logging.file or None,
        log_format=settings.logging.format,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Scrape Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def scrape(
    workers: Optional[int] = typer.Option(
        None,
        "--workers", "-w",
        min=1,
        help="Worker threads for the concurrent stages. Default: from config/settings.yaml.",
    ),
    persist: bool = typer.Option(
        True,
        "--persist/--no-persist",
        help="Write the repositories to the processed data directory when done.",
    ),
    refresh_catalog: bool = typer.Option(
        False,
        "--refresh-catalog",
        help="Scrape departments and terms even if they are already stored.",
    ),
    show_errors: bool = typer.Option(
        False,
        "--show-errors",
        help="List every recoverable error after the run.",
    ),
):
    """
    Scrape ISQ data.

    Stored records are loaded first, so a re-run only adds what is new.

    Examples:
        isq scrape                 # Full scrape with configured workers
        isq scrape -w 16           # More concurrent requests
        isq scrape --no-persist    # Dry run
    """
    from isq_explorer.ingestion.client import HtmlClient
    from isq_explorer.ingestion.scraper import IsqScraper
    from isq_explorer.shared.config import get_settings
    from isq_explorer.storage.repositories import RepositorySet

    _configure_logging()
    settings = get_settings()

    repositories = RepositorySet.from_settings(settings)
    loaded = repositories.load_all()

    console.print(Panel(
        f"[bold]Scraping Configuration[/bold]\n"
        f"Schedule: {settings.scraping.dept_schedule_url}\n"
        f"Workers: {workers or settings.get_effective_max_workers()}\n"
        f"Output: {settings.resolved_paths.processed_dir}\n"
        f"Loaded: {', '.join(f'{n}={c}' for n, c in loaded.items())}\n"
        f"Persist: {'yes' if persist else 'no'}",
        title="ISQ Scrape",
    ))

    with HtmlClient(settings.scraping) as client, Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        tasks: dict[str, int] = {}

        def on_progress(stage: str, done: int, total: int) -> None:
            if stage not in tasks:
                tasks[stage] = progress.add_task(stage, total=total)
            progress.update(tasks[stage], completed=done)

        scraper = IsqScraper(
            client,
            repositories,
            settings=settings,
            max_workers=workers,
            progress_callback=on_progress,
        )
        result = scraper.run(persist=persist, refresh_catalog=refresh_catalog)
        requests_made = client.stats.total_requests
        success_rate = client.stats.success_rate

    report = scraper.report()

    table = Table(title="Scrape Summary")
    table.add_column("Records")
    table.add_column("Count", justify="right")
    for name in ("departments", "terms", "courses", "professors", "entries"):
        table.add_row(name, str(getattr(report, name)))
    table.add_row("requests", str(requests_made))
    table.add_row("request success", f"{success_rate:.0%}")
    table.add_row("errors", str(report.fatal_errors))
    table.add_row("informational", str(report.informational))
    console.print(table)

    if report.error_counts:
        console.print("\n[bold]Errors by type:[/bold]")
        for name, count in sorted(report.error_counts.items()):
            console.print(f"  • {name}: {count}")

    if show_errors:
        for error in scraper.errors.fatal():
            console.print(f"[yellow]{type(error).__name__}[/yellow]: {error}", markup=False)

    if result.is_err():
        console.print(f"[red]Scrape failed: {result.error}[/red]")
        raise typer.Exit(1)

    console.print("[bold green]✓ Scrape finished[/bold green]")


# ─────────────────────────────────────────────────────────────────────────────
# Query Command
# ─────────────────────────────────────────────────────────────────────────────


def _parse_bound(text: Optional[str]) -> "TermBound":
    from isq_explorer.shared.schemas import Season, TermBound

    if not text:
        return TermBound()
    parts = text.split()
    try:
        if len(parts) == 2:
            return TermBound(season=Season.parse(parts[0]), year=int(parts[1]))
        if len(parts) == 1 and parts[0].isdigit():
            return TermBound(year=int(parts[0]))
        if len(parts) == 1:
            return TermBound(season=Season.parse(parts[0]))
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    raise typer.BadParameter(f"'{text}' is not a term like 'Fall 2019', '2019' or 'Fall'")


@app.command()
def query(
    course: Optional[str] = typer.Option(None, "--course", "-c", help="Course code substring, e.g. 'COP 3503'."),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Course title substring."),
    professor: Optional[str] = typer.Option(None, "--professor", "-p", help="Professor name substring."),
    since: Optional[str] = typer.Option(None, "--since", help="Earliest term, e.g. 'Fall 2018'."),
    until: Optional[str] = typer.Option(None, "--until", help="Latest term, e.g. 'Spring 2020'."),
    limit: int = typer.Option(50, "--limit", "-l", min=1, help="Maximum rows to show."),
):
    """
    Search scraped evaluation entries.

    Examples:
        isq query -c "COP 3503"
        isq query -p smith --since "Fall 2018" --until 2020
    """
    from isq_explorer.shared.schemas import EntryQuery
    from isq_explorer.storage.repositories import EntryRepository, RepositorySet

    entries: EntryRepository = RepositorySet.from_settings().entries
    if entries.load() == 0:
        console.print("[yellow]No entries found. Run 'isq scrape' first.[/yellow]")
        raise typer.Exit(1)

    found = entries.query(
        EntryQuery(
            course_code=course,
            course_name=name,
            professor_name=professor,
            since=_parse_bound(since),
            until=_parse_bound(until),
        )
    )

    table = Table(title=f"{len(found)} entries")
    for column in ("Term", "CRN", "Course", "Professor", "Resp.", "Excellent", "Mean GPA"):
        table.add_column(column)
    for entry in found[:limit]:
        table.add_row(
            entry.term.name,
            str(entry.crn),
            entry.course.course_code,
            entry.professor.full_name,
            f"{entry.n_responded}/{entry.n_enrolled}",
            f"{entry.pct_5:.1f}%",
            f"{entry.mean_gpa:.2f}",
        )
    console.print(table)


# ─────────────────────────────────────────────────────────────────────────────
# Info Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def info():
    """
    Show system information and configuration.
    """
    from isq_explorer import __version__
    from isq_explorer.shared.config import get_settings

    settings = get_settings()

    console.print(Panel(
        f"[bold]ISQ Explorer[/bold]\n"
        f"Version: {__version__}\n"
        f"Config: config/settings.yaml",
        title="Info",
    ))

    console.print("\n[bold]Scraping:[/bold]")
    table = Table()
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("schedule url", settings.scraping.dept_schedule_url)
    table.add_row("profile url", settings.scraping.professor_page_url)
    table.add_row("workers", str(settings.get_effective_max_workers()))
    table.add_row("rate limit", f"{settings.scraping.rate_limit}s")
    table.add_row("timeout", f"{settings.scraping.timeout}s")
    table.add_row("retries", str(settings.scraping.max_retries))
    console.print(table)

    console.print("\n[bold]Data Paths:[/bold]")
    resolved_paths = settings.resolved_paths
    path_dict = {
        "processed_dir": resolved_paths.processed_dir,
    }
    for name, path in path_dict.items():
        exists = "✓" if path.exists() else "✗"
        console.print(f"  {name}: {path} [{exists}]", markup=False)


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def cli():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    cli()
