"""Rich text rendering of analysis results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from rich import box
from rich.markup import escape
from rich.table import Table

from .console import Console
from .constants import DISPLAY_LIMITS
from .models import AggregateStats, AnalysisResult, RepoStats, RepositoryFailure


@dataclass(frozen=True, slots=True)
class DisplayOptions:
    """Text-only rendering toggles."""

    show_filetypes: bool = False
    show_repo_details: bool = False
    show_most_active_day: bool = False
    hide_gitnapped_stats: bool = False
    show_total_stats: bool = False


def top_file_types(file_types: Dict[str, int], limit: int) -> List[Tuple[str, int]]:
    """Most used extensions first; equal counts are ordered by name."""
    return sorted(file_types.items(), key=lambda item: (-item[1], item[0]))[:limit]


def format_gitnapped(stats: RepoStats | AggregateStats) -> str:
    return f"{stats.gitnapped_percentage}% ({stats.gitnapped_count})"


def _print_stat(console: Console, label: str, value: object, style: str = "value") -> None:
    console.print(f"[label]{label}:[/] [{style}]{value}[/]", highlight=False)


def _print_file_types(console: Console, file_types: Dict[str, int], limit: int, indent: str = "  ") -> None:
    if not file_types:
        return
    console.print(f"{indent}[accent]File types:[/]")
    for extension, count in top_file_types(file_types, limit):
        console.print(f"{indent}  [warning]{escape(extension)}[/] - {count} files", highlight=False)


def print_header(console: Console, result: AnalysisResult) -> None:
    """Print the run summary: window, author filter and working hours."""
    console.rule("[title]gitnapped[/]", style="divider")
    author = escape(result.author) if result.author else "all authors"
    _print_stat(console, "Window", f"{result.window.since:%Y-%m-%d %H:%M} to {result.window.until:%Y-%m-%d %H:%M}")
    _print_stat(console, "Author", author)
    _print_stat(console, "Working hours", result.working_hours)
    _print_stat(console, "Repositories analyzed", result.analyzed_repositories)


def print_repository_table(
    console: Console,
    repositories: Sequence[RepoStats],
    result: AnalysisResult,
    options: DisplayOptions,
) -> None:
    """Print the sorted repository listing as a table."""
    if not repositories:
        console.print("[warning]No repositories to show.[/]")
        return

    table = Table(
        title=f"Most active repositories (sorted by {result.sort_key.value})",
        box=box.ROUNDED,
        show_header=True,
        header_style="title",
    )
    table.add_column("#", justify="right", style="muted", width=3)
    table.add_column("Repository", style="repo", no_wrap=True)
    table.add_column("Category", style="muted")
    table.add_column("Project", style="muted")
    table.add_column("Commits", justify="right", style="value")
    table.add_column("Files", justify="right", style="value")
    table.add_column("Lines", justify="right", style="value")
    if not options.hide_gitnapped_stats:
        table.add_column("Gitnapped", justify="right", style="gitnapped")

    for rank, stats in enumerate(repositories, 1):
        row = [
            str(rank),
            escape(stats.repo.label),
            escape(stats.repo.category),
            escape(stats.repo.project),
            str(stats.commit_count),
            str(stats.files_changed),
            str(stats.lines_changed),
        ]
        if not options.hide_gitnapped_stats:
            row.append(format_gitnapped(stats))
        table.add_row(*row)

    console.print(table)


def print_repository_details(console: Console, repositories: Iterable[RepoStats]) -> None:
    """Print each repository's commit history and its commits per day, newest first."""
    console.print("\n[title]Repository details:[/]")
    for stats in repositories:
        console.print(f"\n[repo]{escape(stats.repo.label)}[/] [muted]{escape(stats.repo.path)}[/]", highlight=False)
        if not stats.commits_by_day:
            console.print("  [muted]No commits in this window[/]")
            continue
        console.print("  [accent]Commit history:[/]")
        for entry in stats.history:
            console.print(
                f"  [warning]{entry.short_hash}[/] {entry.timestamp:%Y-%m-%d %H:%M} {escape(entry.subject)}",
                highlight=False,
            )
        console.print("  [accent]Commits by date:[/]")
        for day, count in sorted(stats.commits_by_day.items(), reverse=True):
            console.print(f"  {day.isoformat()} - {count} commits", highlight=False)


def print_category_summary(
    console: Console,
    result: AnalysisResult,
    options: DisplayOptions,
) -> None:
    """Print one block per category with its top repositories."""
    console.print("\n[success]Category statistics:[/]")
    listed = {stats.repo.path: stats for stats in result.per_repo}

    for name, stats in result.by_category.items():
        console.print(f"\n[warning]Category:[/] [title]{escape(name)}[/]")
        _print_stat(console, "Active repositories", stats.active_repositories)
        _print_stat(console, "Commits", stats.commit_count)
        if not options.hide_gitnapped_stats and stats.gitnapped_count > 0:
            _print_stat(console, "Gitnapped for", format_gitnapped(stats), style="gitnapped")
        _print_stat(console, "Total files", stats.files_changed)
        _print_stat(console, "Total lines of code", stats.lines_changed)

        if options.show_filetypes:
            _print_file_types(console, stats.file_types, DISPLAY_LIMITS['file_types_per_group'])

        members = [listed[path] for path in stats.repositories if path in listed]
        members.sort(key=lambda member: -member.sort_value(result.sort_key))
        members = [member for member in members if member.is_active()]
        if not members:
            continue
        console.print(f"  [accent]Top repositories[/] (sorted by {result.sort_key.value})")
        for rank, member in enumerate(members[: DISPLAY_LIMITS['top_repositories_per_category']], 1):
            console.print(
                f"   [warning]{rank}.[/] [repo]{escape(member.repo.label)}[/] - "
                f"{member.commit_count} commits, {member.files_changed} files, {member.lines_changed} lines",
                highlight=False,
            )
            if not options.hide_gitnapped_stats and member.gitnapped_count > 0:
                console.print(f"      [gitnapped]Gitnapped for {format_gitnapped(member)}[/]", highlight=False)


def print_projects_summary(
    console: Console,
    result: AnalysisResult,
    options: DisplayOptions,
) -> None:
    """Print every project with its rolled-up counters."""
    console.print("\n[success]Projects statistics:[/]")
    for rank, (name, stats) in enumerate(result.by_project.items(), 1):
        console.print(
            f"[warning]{rank}.[/] [repo]{escape(name)}[/] - {stats.commit_count} commits, "
            f"{stats.files_changed} files, {stats.lines_changed} lines "
            f"(from {len(stats.repositories)} repos)",
            highlight=False,
        )
        if not options.hide_gitnapped_stats and stats.gitnapped_count > 0:
            console.print(f"   [gitnapped]Gitnapped for {format_gitnapped(stats)}[/]", highlight=False)
        if options.show_repo_details:
            for path in stats.repositories:
                console.print(f"   [muted]-[/] {escape(path)}", highlight=False)
        if options.show_filetypes:
            _print_file_types(console, stats.file_types, DISPLAY_LIMITS['file_types_per_group'], indent="   ")


def print_total_stats(console: Console, totals: AggregateStats, options: DisplayOptions) -> None:
    """Print statistics across every analyzed repository."""
    console.print("\n[success]Stats across analyzed repositories:[/]")
    _print_stat(console, "Active repositories", totals.active_repositories)
    _print_stat(console, "Commits", totals.commit_count)
    if not options.hide_gitnapped_stats:
        _print_stat(console, "Gitnapped for", format_gitnapped(totals), style="gitnapped")
    if options.show_total_stats:
        _print_stat(console, "Total files", totals.files_changed)
        _print_stat(console, "Total lines of code", totals.lines_changed)
        _print_stat(console, "Insertions", totals.insertions)
        _print_stat(console, "Deletions", totals.deletions)
    if totals.skipped_commits:
        _print_stat(console, "Unreadable commits skipped", totals.skipped_commits, style="warning")

    if options.show_most_active_day and totals.most_active_day is not None:
        console.print(
            f"\n[accent]Most active day:[/] [title]{totals.most_active_day.isoformat()}[/] "
            f"({totals.most_active_day_count} commits)",
            highlight=False,
        )

    if options.show_filetypes and totals.file_types:
        console.print("\n[accent]File types across all repositories:[/]")
        for extension, count in top_file_types(totals.file_types, DISPLAY_LIMITS['file_types_total']):
            console.print(f"  [warning]{escape(extension)}[/] - {count} files", highlight=False)


def print_failures(console: Console, failures: Sequence[RepositoryFailure]) -> None:
    if not failures:
        return
    table = Table(title="Repositories that could not be analyzed", box=box.ROUNDED, header_style="danger")
    table.add_column("Repository", style="repo")
    table.add_column("Error", style="warning")
    table.add_column("Details", style="muted")
    for failure in failures:
        table.add_row(escape(failure.repo.path), failure.kind, escape(failure.message))
    console.print(table)


def render_result(console: Console, result: AnalysisResult, options: DisplayOptions) -> None:
    """Render a full text report for ``result``."""
    print_header(console, result)
    console.print()
    print_repository_table(console, result.per_repo, result, options)

    if options.show_repo_details:
        print_repository_details(console, result.per_repo)
    if result.by_category:
        print_category_summary(console, result, options)
    if result.by_project:
        print_projects_summary(console, result, options)
    if result.totals is not None:
        print_total_stats(console, result.totals, options)

    print_failures(console, result.failures)
