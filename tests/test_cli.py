from __future__ import annotations

import json
from textwrap import dedent
from typing import Dict, List

import pytest
from conftest import make_commit, utc
from typer.testing import CliRunner

from gitnapped import cli
from gitnapped.exceptions import RepositoryUnavailable
from gitnapped.models import CommitBatch

runner = CliRunner()

COMMITS = [
    make_commit(utc(2024, 1, 2, 10), author="Jane Doe", files=[("src/app.py", 10, 2)]),
    make_commit(utc(2024, 1, 3, 3), author="Jane Doe", files=[("src/app.py", 5, 5), ("README.md", 1, 0)]),
    make_commit(utc(2024, 1, 4, 14), author="John Roe", files=[("web.ts", 1, 1)]),
]


class DummyGitClient:
    instances: List["DummyGitClient"] = []
    failing: Dict[str, Exception] = {}

    def __init__(self, timeout: float = 0) -> None:
        self.timeout = timeout
        self.fetched: List[str] = []
        DummyGitClient.instances.append(self)

    def is_git_repository(self, path: str) -> bool:
        return not path.endswith("plain")

    def fetch_commits(self, repo, window) -> CommitBatch:
        self.fetched.append(repo.path)
        if repo.path in self.failing:
            raise self.failing[repo.path]
        if repo.path.endswith("quiet"):
            return CommitBatch()
        return CommitBatch(records=list(COMMITS))


@pytest.fixture(autouse=True)
def dummy_git(monkeypatch):
    DummyGitClient.instances = []
    DummyGitClient.failing = {}
    monkeypatch.setattr(cli, "GitClient", DummyGitClient)
    return DummyGitClient


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "gitnapped.yaml"
    path.write_text(
        dedent(
            """
            author: Jane Doe
            repos:
              Work:
                - /code/api [Work][Backend]
                - /code/quiet [Work][Frontend]
              Personal:
                - /code/dotfiles
            """
        ),
        encoding="utf-8",
    )
    return path


def run(*args: str):
    return runner.invoke(cli.app, list(args))


def json_payload(result) -> dict:
    return json.loads(result.stdout)


def test_json_output_uses_config_author(config_file):
    result = run("--config", str(config_file), "--since", "2024-01-01", "--until", "2024-01-08", "--json")

    assert result.exit_code == 0, result.output
    payload = json_payload(result)
    assert payload["author"] == "Jane Doe"
    assert payload["analyzed_repositories"] == 3
    api = next(item for item in payload["per_repo"] if item["repo"]["path"] == "/code/api")
    assert api["commit_count"] == 2
    assert api["gitnapped_count"] == 1
    assert payload["totals"] is None
    assert payload["by_category"] == {}


def test_cli_author_overrides_config_and_all_authors_overrides_both(config_file):
    by_cli = run("-c", str(config_file), "-s", "2024-01-01", "-u", "2024-01-08", "-a", "John Roe", "--json")
    everyone = run(
        "-c", str(config_file), "-s", "2024-01-01", "-u", "2024-01-08", "-a", "John Roe", "--all-authors", "--json"
    )

    assert json_payload(by_cli)["author"] == "John Roe"
    assert json_payload(by_cli)["per_repo"][0]["commit_count"] == 1
    assert json_payload(everyone)["author"] is None
    assert json_payload(everyone)["per_repo"][0]["commit_count"] == 3


def test_grouping_totals_and_listing_flags(config_file):
    result = run(
        "-c",
        str(config_file),
        "-s",
        "2024-01-01",
        "-u",
        "2024-01-08",
        "--categories",
        "--projects",
        "--show-total-stats",
        "--active-only",
        "--most-active-repos",
        "1",
        "--sort-by",
        "lines",
        "--json",
    )

    assert result.exit_code == 0, result.output
    payload = json_payload(result)
    assert len(payload["per_repo"]) == 1
    assert payload["sort_key"] == "lines"
    assert set(payload["by_category"]) == {"Work", "Personal"}
    assert set(payload["by_project"]) == {"Backend", "Frontend", "Unnamed"}
    assert payload["totals"]["commit_count"] == 4
    assert payload["totals"]["active_repositories"] == 2


def test_working_time_option_overrides_default(config_file):
    result = run(
        "-c", str(config_file), "-s", "2024-01-01", "-u", "2024-01-08", "-w", "02:00-11:00", "--json"
    )

    payload = json_payload(result)
    assert payload["working_hours"] == {"start": "02:00", "end": "11:00"}
    api = next(item for item in payload["per_repo"] if item["repo"]["path"] == "/code/api")
    assert api["gitnapped_count"] == 0


def test_workers_and_timeout_are_passed_through(config_file):
    result = run("-c", str(config_file), "--timeout", "30", "--workers", "2", "--json")

    assert result.exit_code == 0, result.output
    assert DummyGitClient.instances[0].timeout == 30


def test_text_report(config_file):
    result = run(
        "-c",
        str(config_file),
        "-s",
        "2024-01-01",
        "-u",
        "2024-01-08",
        "--categories",
        "--filetypes",
        "--most-active-day",
        "--show-total-stats",
    )

    assert result.exit_code == 0, result.output
    assert "Filtering commits by author: Jane Doe" in result.stdout
    assert "Category statistics" in result.stdout
    assert "Gitnapped for" in result.stdout
    assert "Most active day: 2024-01-02" in result.stdout
    assert "Total lines of code" in result.stdout


def test_silent_text_report_prints_nothing(config_file):
    result = run("-c", str(config_file), "-s", "2024-01-01", "-u", "2024-01-08", "--silent")

    assert result.exit_code == 0
    assert result.stdout.strip() == ""


def test_dir_mode_without_author_counts_everyone():
    result = run("--dir", "/code/solo", "-s", "2024-01-01", "-u", "2024-01-08", "--json", "--silent")

    assert result.exit_code == 0, result.output
    payload = json_payload(result)
    assert payload["author"] is None
    assert payload["per_repo"][0]["repo"]["category"] == "Uncategorized"
    assert payload["per_repo"][0]["repo"]["project"] == "Unnamed"
    assert payload["per_repo"][0]["commit_count"] == 3


def test_dir_mode_rejects_non_repository():
    result = run("--dir", "/code/plain")

    assert result.exit_code == 1
    assert "is not a Git repository" in result.stdout


def test_missing_config_file(tmp_path):
    result = run("--config", str(tmp_path / "missing.yaml"))

    assert result.exit_code == 1
    assert "not found" in result.stdout


@pytest.mark.parametrize(
    "args",
    [
        ("--period", "6X"),
        ("--since", "2024-02-01", "--until", "2024-01-01"),
        ("--working-time", "25:00-17:00"),
    ],
)
def test_invalid_input_exits_with_error(config_file, args):
    result = run("-c", str(config_file), *args)

    assert result.exit_code == 1
    assert "Error" in result.stdout


def test_partial_failure_is_reported_but_succeeds(config_file, dummy_git):
    dummy_git.failing = {"/code/dotfiles": RepositoryUnavailable("not a git repository", source="/code/dotfiles")}

    result = run("-c", str(config_file), "-s", "2024-01-01", "-u", "2024-01-08", "--json", "--silent")

    assert result.exit_code == 0
    payload = json_payload(result)
    assert payload["analyzed_repositories"] == 2
    assert payload["failures"][0]["repo"]["path"] == "/code/dotfiles"


def test_every_repository_failing_exits_with_error(tmp_path, dummy_git):
    path = tmp_path / "gitnapped.yaml"
    path.write_text("repos:\n  Work:\n    - /code/broken\n", encoding="utf-8")
    dummy_git.failing = {"/code/broken": RepositoryUnavailable("gone", source="/code/broken")}

    result = run("-c", str(path), "--json", "--silent")

    assert result.exit_code == 1
    payload = json_payload(result)
    assert payload["analyzed_repositories"] == 0
    assert payload["failures"][0]["kind"] == "RepositoryUnavailable"


def test_every_repository_failing_reports_error_in_text_mode(tmp_path, dummy_git):
    path = tmp_path / "gitnapped.yaml"
    path.write_text("repos:\n  Work:\n    - /code/broken\n", encoding="utf-8")
    dummy_git.failing = {"/code/broken": RepositoryUnavailable("gone", source="/code/broken")}

    result = run("-c", str(path), "--silent")

    assert result.exit_code == 1
    assert "No repository could be analyzed" in result.stdout


def test_config_without_repositories(tmp_path):
    path = tmp_path / "gitnapped.yaml"
    path.write_text("author: Jane Doe\n", encoding="utf-8")

    result = run("-c", str(path))

    assert result.exit_code == 1
    assert "No repositories configured" in result.stdout


def test_keyboard_interrupt_exits_130(config_file, monkeypatch):
    class InterruptingAnalyzer:
        def __init__(self, source, max_workers=None):
            pass

        def analyze(self, repositories, options):
            raise KeyboardInterrupt

    monkeypatch.setattr(cli, "Analyzer", InterruptingAnalyzer)

    result = run("-c", str(config_file), "--json")

    assert result.exit_code == 130


def test_version():
    result = run("--version")

    assert result.exit_code == 0
    assert result.stdout.startswith("gitnapped ")


def test_resolve_author_priority():
    assert cli.resolve_author("Config", None, False) == "Config"
    assert cli.resolve_author("Config", "Cli", False) == "Cli"
    assert cli.resolve_author("Config", "Cli", True) is None
    assert cli.resolve_author(None, None, False, directory_mode=True) is None
    assert cli.resolve_author(None, "Cli", False, directory_mode=True) == "Cli"
