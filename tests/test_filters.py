from __future__ import annotations

from datetime import datetime, timedelta, timezone

from conftest import make_commit, utc

from gitnapped.filters import AuthorFilter, FilterHelper
from gitnapped.models import AnalysisWindow

WINDOW = AnalysisWindow(since=utc(2024, 1, 1), until=utc(2024, 1, 8))


def test_window_is_half_open():
    assert FilterHelper.in_window(make_commit(utc(2024, 1, 1)), WINDOW)
    assert FilterHelper.in_window(make_commit(utc(2024, 1, 7, 23, 59, 59)), WINDOW)
    assert not FilterHelper.in_window(make_commit(utc(2024, 1, 8)), WINDOW)
    assert not FilterHelper.in_window(make_commit(utc(2023, 12, 31, 23, 59)), WINDOW)


def test_window_compares_instants_across_offsets():
    # 2024-01-08 01:00 at UTC+2 is still January 7th in UTC
    plus_two = timezone(timedelta(hours=2))
    assert FilterHelper.in_window(make_commit(datetime(2024, 1, 8, 1, 0, tzinfo=plus_two)), WINDOW)


def test_author_filter_is_exact_and_case_sensitive():
    jane = AuthorFilter("Jane Doe")

    assert jane.matches(make_commit(utc(2024, 1, 2), author="Jane Doe"))
    assert not jane.matches(make_commit(utc(2024, 1, 2), author="jane doe"))
    assert not jane.matches(make_commit(utc(2024, 1, 2), author="Jane Doe Jr"))


def test_all_authors_filter_matches_everyone():
    everyone = AuthorFilter()

    assert everyone.all_authors
    assert everyone.matches(make_commit(utc(2024, 1, 2), author="Somebody Else"))


def test_filter_commits_keeps_order_and_applies_both_predicates():
    commits = [
        make_commit(utc(2024, 1, 5), author="Jane Doe", commit_hash="a"),
        make_commit(utc(2024, 1, 9), author="Jane Doe", commit_hash="b"),
        make_commit(utc(2024, 1, 4), author="John Roe", commit_hash="c"),
        make_commit(utc(2024, 1, 2), author="Jane Doe", commit_hash="d"),
    ]

    kept = list(FilterHelper.filter_commits(commits, WINDOW, AuthorFilter("Jane Doe")))

    assert [commit.hash for commit in kept] == ["a", "d"]
