"""Cross-repository reduction, sorting and grouping."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, Dict, Iterable, List, Sequence, TypeVar

from .constants import SortKey
from .models import (
    AggregateStats,
    AnalysisOptions,
    AnalysisResult,
    RepoStats,
    RepositoryFailure,
)

logger = logging.getLogger(__name__)

TOTALS_NAME = "All repositories"

StatsT = TypeVar("StatsT", RepoStats, AggregateStats)


def merge_stats(name: str, members: Iterable[RepoStats]) -> AggregateStats:
    """Sum repository statistics into one aggregate.

    Day histograms are merged count by count, so the aggregate's most active
    day is recomputed from the merged histogram instead of being picked from
    a member.
    """
    aggregate = AggregateStats(name=name)
    file_types: Counter[str] = Counter()
    commits_by_day: Counter = Counter()
    events = []

    for stats in members:
        aggregate.repositories.append(stats.repo.path)
        if stats.is_active():
            aggregate.active_repositories += 1
        aggregate.commit_count += stats.commit_count
        aggregate.files_changed += stats.files_changed
        aggregate.insertions += stats.insertions
        aggregate.deletions += stats.deletions
        aggregate.skipped_commits += stats.skipped_commits
        file_types.update(stats.file_types)
        commits_by_day.update(stats.commits_by_day)
        events.extend(stats.gitnapped_events)

    events.sort(key=lambda event: event.commit.timestamp)
    aggregate.file_types = dict(file_types)
    aggregate.commits_by_day = dict(commits_by_day)
    aggregate.gitnapped_events = events
    return aggregate


def group_stats(
    per_repo: Sequence[RepoStats],
    key: Callable[[RepoStats], str],
) -> Dict[str, AggregateStats]:
    """Partition repositories by ``key`` and merge each bucket.

    Buckets keep the order in which their first repository appears.
    """
    buckets: Dict[str, List[RepoStats]] = {}
    for stats in per_repo:
        buckets.setdefault(key(stats), []).append(stats)
    return {name: merge_stats(name, members) for name, members in buckets.items()}


def sort_stats(items: Iterable[StatsT], sort_key: SortKey) -> List[StatsT]:
    """Sort descending by ``sort_key``; equal values keep their input order."""
    return sorted(items, key=lambda stats: -stats.sort_value(sort_key))


def sort_groups(groups: Dict[str, AggregateStats], sort_key: SortKey) -> Dict[str, AggregateStats]:
    return {stats.name: stats for stats in sort_stats(groups.values(), sort_key)}


def select_listing(per_repo: Sequence[RepoStats], options: AnalysisOptions) -> List[RepoStats]:
    """Build the repository listing: sort, drop inactive, then cap to top N."""
    listing = sort_stats(per_repo, options.sort_key)
    if options.active_only:
        listing = [stats for stats in listing if stats.is_active()]
    if options.most_active_repos is not None:
        listing = listing[: max(options.most_active_repos, 0)]
    return listing


def reduce_results(
    per_repo: Sequence[RepoStats],
    options: AnalysisOptions,
    failures: Sequence[RepositoryFailure] = (),
) -> AnalysisResult:
    """Merge per-repository statistics into the final result.

    Args:
        per_repo: Statistics of every successfully analyzed repository, in
            configuration order
        options: Run settings (sort key, grouping, listing filters)
        failures: Repositories that could not be analyzed

    Returns:
        The immutable analysis result. Category, project and total rollups
        always cover every analyzed repository; ``active_only`` and
        ``most_active_repos`` only shape the repository listing.
    """
    by_category: Dict[str, AggregateStats] = {}
    by_project: Dict[str, AggregateStats] = {}

    if options.grouping.includes_categories:
        by_category = sort_groups(group_stats(per_repo, lambda stats: stats.repo.category), options.sort_key)
    if options.grouping.includes_projects:
        by_project = sort_groups(group_stats(per_repo, lambda stats: stats.repo.project), options.sort_key)

    totals = merge_stats(TOTALS_NAME, per_repo) if options.show_total_stats else None
    listing = select_listing(per_repo, options)

    logger.debug(
        "Reduced %d repositories: %d listed, %d categories, %d projects, %d failures",
        len(per_repo),
        len(listing),
        len(by_category),
        len(by_project),
        len(failures),
    )

    return AnalysisResult(
        window=options.window,
        working_hours=options.working_hours,
        author=options.author,
        per_repo=tuple(listing),
        by_category=by_category,
        by_project=by_project,
        totals=totals,
        sort_key=options.sort_key,
        grouping=options.grouping,
        analyzed_repositories=len(per_repo),
        failures=tuple(failures),
    )
