"""Command line interface for gitnapped."""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.markup import escape

from . import __version__
from .analyzer import Analyzer
from .config import GitnappedConfig
from .console import Console
from .constants import DEFAULT_CONFIG_FILE, DEFAULT_SORT_KEY, DISPLAY_LIMITS, PARALLEL_CONFIG, GroupingMode, SortKey
from .display import DisplayOptions, render_result
from .exceptions import AnalysisCancelledError, ConfigurationError, ValidationError
from .git_client import GitClient
from .logging_config import setup_logging
from .models import AnalysisOptions, AnalysisResult
from .serialization import result_to_json
from .window import resolve_window
from .working_time import parse_working_time

app = typer.Typer(
    help="Analyze git history across repositories and find out when you got gitnapped.",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def resolve_author(
    config_author: Optional[str],
    cli_author: Optional[str],
    all_authors: bool,
    directory_mode: bool = False,
) -> Optional[str]:
    """Pick the author filter: all-authors flag, then CLI author, then config.

    In directory mode without an explicit author every author is counted.
    """
    if directory_mode and not cli_author and not all_authors:
        logger.warning("No author provided, assuming all-authors mode")
        all_authors = True
    if all_authors:
        return None
    if cli_author:
        return cli_author
    return config_author


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gitnapped {__version__}")
        raise typer.Exit()


def _load_config(config_path: str, directory: Optional[str], client: GitClient) -> GitnappedConfig:
    if directory:
        return GitnappedConfig.for_directory(directory, client)
    return GitnappedConfig.load(config_path)


def _exit_code(result: AnalysisResult) -> int:
    if result.failures and result.analyzed_repositories == 0:
        return 1
    return 0


@app.command()
def analyze(
    config_path: str = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--config",
        "-c",
        help="Path to the YAML configuration file",
    ),
    directory: Optional[str] = typer.Option(
        None,
        "--dir",
        "-d",
        help="Analyze a single git repository instead of the configured ones",
    ),
    since: Optional[str] = typer.Option(None, "--since", "-s", help="Start date (YYYY-MM-DD)"),
    until: Optional[str] = typer.Option(None, "--until", "-u", help="End date, exclusive (YYYY-MM-DD)"),
    period: Optional[str] = typer.Option(
        None,
        "--period",
        "-p",
        help="Relative period such as 12H, 5D, 3W, 6M or 1Y",
    ),
    author: Optional[str] = typer.Option(
        None,
        "--author",
        "-a",
        help="Filter commits by author name (overrides the config file)",
    ),
    all_authors: bool = typer.Option(False, "--all-authors", help="Count commits from every author"),
    active_only: bool = typer.Option(False, "--active-only", help="Hide repositories without commits"),
    sort_by: SortKey = typer.Option(
        DEFAULT_SORT_KEY,
        "--sort-by",
        case_sensitive=False,
        help="Sort repositories by commits, files or lines",
    ),
    categories: bool = typer.Option(False, "--categories", help="Show statistics per category"),
    projects: bool = typer.Option(False, "--projects", help="Show statistics per project"),
    working_time: Optional[str] = typer.Option(
        None,
        "--working-time",
        "-w",
        help="Working hours such as 09:00-17:00 or 9AM-5PM",
    ),
    most_active_repos: Optional[int] = typer.Option(
        None,
        "--most-active-repos",
        min=0,
        help="Number of repositories to list (text output defaults to 5)",
    ),
    show_total_stats: bool = typer.Option(
        False,
        "--show-total-stats",
        help="Include total files and lines across all repositories",
    ),
    filetypes: bool = typer.Option(False, "--filetypes", help="Show file type statistics"),
    repo_details: bool = typer.Option(False, "--repo-details", help="Show per-repository details"),
    most_active_day: bool = typer.Option(False, "--most-active-day", help="Show the most active day"),
    hide_gitnapped_stats: bool = typer.Option(
        False,
        "--hide-gitnapped-stats",
        help="Hide out-of-working-hours statistics",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    workers: int = typer.Option(
        PARALLEL_CONFIG['max_workers_repositories'],
        "--workers",
        min=1,
        help="Maximum number of repositories analyzed in parallel",
    ),
    timeout: float = typer.Option(
        PARALLEL_CONFIG['repository_timeout'],
        "--timeout",
        min=1,
        help="Seconds allowed for reading one repository",
    ),
    silent: bool = typer.Option(False, "--silent", help="Suppress all text output except errors"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Analyze commit activity across the configured repositories."""
    setup_logging(debug=debug, silent=silent)
    console.set_quiet(silent)

    client = GitClient(timeout=timeout)

    try:
        config = _load_config(config_path, directory, client)
        window = resolve_window(since=since, until=until, period=period)
        hours = parse_working_time(working_time) if working_time else config.working_hours()
        if hours is None:
            hours = parse_working_time()
    except (ConfigurationError, ValidationError) as exc:
        console.print_error(str(exc))
        raise typer.Exit(code=1) from exc

    if not config.repositories:
        console.print_error(f"No repositories configured in '{config_path}'")
        raise typer.Exit(code=1)

    author_filter = resolve_author(config.author, author, all_authors, directory_mode=bool(directory))
    if not json_output:
        if author_filter:
            console.print(f"[label]Filtering commits by author:[/] [accent]{escape(author_filter)}[/]", highlight=False)
        else:
            console.print("[warning]Showing commits from all authors[/]")

    listing_cap = most_active_repos
    if listing_cap is None and not json_output:
        listing_cap = DISPLAY_LIMITS['top_repositories']

    options = AnalysisOptions(
        window=window,
        working_hours=hours,
        author=author_filter,
        sort_key=sort_by,
        grouping=GroupingMode.from_flags(categories, projects),
        active_only=active_only,
        most_active_repos=listing_cap,
        # The text report always shows the overall summary
        show_total_stats=show_total_stats or not json_output,
    )

    try:
        result = Analyzer(client, max_workers=workers).analyze(config.repositories, options)
    except AnalysisCancelledError as exc:
        console.print_error(str(exc))
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt as exc:
        console.print_error("Interrupted")
        raise typer.Exit(code=EXIT_INTERRUPTED) from exc

    if json_output:
        typer.echo(result_to_json(result))
    else:
        render_result(
            console,
            result,
            DisplayOptions(
                show_filetypes=filetypes,
                show_repo_details=repo_details,
                show_most_active_day=most_active_day,
                hide_gitnapped_stats=hide_gitnapped_stats,
                show_total_stats=show_total_stats,
            ),
        )

    code = _exit_code(result)
    if code:
        # stdout carries only the JSON document
        if not json_output:
            console.print_error("No repository could be analyzed")
        raise typer.Exit(code=code)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
