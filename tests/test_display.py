from __future__ import annotations

import io

from conftest import make_commit, utc

from gitnapped.aggregator import RepoAggregator
from gitnapped.console import Console
from gitnapped.constants import GroupingMode, SortKey
from gitnapped.display import DisplayOptions, render_result, top_file_types
from gitnapped.models import AnalysisOptions, AnalysisWindow, RepositoryFailure, RepositoryRef
from gitnapped.reducer import reduce_results
from gitnapped.working_time import parse_working_time

HOURS = parse_working_time("09:00-17:00")


def build_result(**overrides):
    api = RepositoryRef.from_path("/code/api", category="Work", project="Backend")
    blog = RepositoryRef.from_path("/code/blog", category="Personal", project="Blog")
    per_repo = [
        RepoAggregator.aggregate(
            api,
            [
                make_commit(
                    utc(2024, 1, 2, 10),
                    files=[("a.py", 1, 1), ("b.py", 2, 0)],
                    subject="Add [api] routes",
                    commit_hash="1" * 40,
                ),
                make_commit(utc(2024, 1, 2, 23), files=[("c.rs", 4, 4)], subject="Port to rust", commit_hash="2" * 40),
                make_commit(utc(2024, 1, 5, 9), files=[("d.rs", 1, 0)], subject="Late fix", commit_hash="3" * 40),
            ],
            HOURS,
        ),
        RepoAggregator.aggregate(blog, [], HOURS),
    ]
    values = dict(
        window=AnalysisWindow(since=utc(2024, 1, 1), until=utc(2024, 1, 8)),
        working_hours=HOURS,
        author="Jane Doe",
        sort_key=SortKey.COMMITS,
        grouping=GroupingMode.BOTH,
        show_total_stats=True,
    )
    values.update(overrides)
    failures = [RepositoryFailure(RepositoryRef.from_path("/code/gone"), "RepositoryUnavailable", "missing")]
    return reduce_results(per_repo, AnalysisOptions(**values), failures=failures)


def render(result, **options) -> str:
    buffer = io.StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    render_result(console, result, DisplayOptions(**options))
    return buffer.getvalue()


def test_full_report_sections():
    output = render(
        build_result(),
        show_filetypes=True,
        show_repo_details=True,
        show_most_active_day=True,
        show_total_stats=True,
    )

    assert "Working hours: 09:00-17:00" in output
    assert "Author: Jane Doe" in output
    assert "Category: Work" in output
    assert "Projects statistics" in output
    assert "Gitnapped for: 33% (1)" in output
    assert "Most active day: 2024-01-02 (2 commits)" in output
    assert "py - 2 files" in output
    assert "2024-01-02 - 2 commits" in output
    assert "Total lines of code: 13" in output
    assert "RepositoryUnavailable" in output


def test_hidden_sections():
    output = render(build_result(), hide_gitnapped_stats=True)

    assert "Gitnapped" not in output
    assert "Most active day" not in output
    assert "File types" not in output
    assert "Insertions" not in output
    assert "Deletions" not in output


def test_quiet_console_prints_nothing():
    buffer = io.StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    console.set_quiet(True)

    render_result(console, build_result(), DisplayOptions())

    assert buffer.getvalue() == ""


def test_top_file_types_orders_by_count_then_name():
    assert top_file_types({"py": 2, "md": 5, "go": 2, "rs": 1}, 3) == [("md", 5), ("go", 2), ("py", 2)]


def test_category_blocks_keep_their_line_counts_without_total_stats():
    output = render(build_result())

    work_block = output.split("Category: Work", 1)[1].split("Category: Personal", 1)[0]
    assert "Total lines of code: 13" in work_block
    totals_block = output.split("Stats across analyzed repositories", 1)[1]
    assert "Total lines of code" not in totals_block


def test_quiet_console_still_prints_errors():
    buffer = io.StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    console.set_quiet(True)

    console.print_error("broken [config]")

    assert buffer.getvalue() == "Error: broken [config]\n"


def test_repository_details_list_history_and_days_newest_first():
    output = render(build_result(), show_repo_details=True)

    details = output.split("Repository details:", 1)[1]
    assert "3333333 2024-01-05 09:00 Late fix" in details
    assert "1111111 2024-01-02 10:00 Add [api] routes" in details
    assert details.index("Late fix") < details.index("Port to rust") < details.index("Add [api] routes")
    assert details.index("2024-01-05 - 1 commits") < details.index("2024-01-02 - 2 commits")
    assert "No commits in this window" in details
