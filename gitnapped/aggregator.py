"""Per-repository aggregation of filtered commits."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from .classifier import is_gitnapped
from .constants import NO_EXTENSION
from .models import CommitEntry, CommitRecord, GitnappedEvent, RepoStats, RepositoryRef, WorkingHours

logger = logging.getLogger(__name__)


class RepoAggregator:
    """Turns one repository's filtered commits into :class:`RepoStats`."""

    @staticmethod
    def aggregate(
        repo: RepositoryRef,
        commits: Iterable[CommitRecord],
        hours: WorkingHours,
        skipped_commits: int = 0,
    ) -> RepoStats:
        """Aggregate commits in a single pass.

        Args:
            repo: Repository the commits belong to
            commits: Commits that already passed the window and author filter
            hours: Working hours used to flag gitnapped commits
            skipped_commits: Malformed commits dropped by the git adapter

        Returns:
            RepoStats; a repository without commits yields zeroed counters
        """
        stats = RepoStats(repo=repo, skipped_commits=skipped_commits)
        file_types: Counter[str] = Counter()
        commits_by_day: Counter = Counter()
        events = []
        history = []

        for commit in commits:
            stats.commit_count += 1
            stats.insertions += commit.insertions
            stats.deletions += commit.deletions
            stats.files_changed += len(commit.files_changed)
            for delta in commit.files_changed:
                file_types[delta.extension or NO_EXTENSION] += 1
            commits_by_day[commit.local_date] += 1
            history.append(CommitEntry.from_commit(commit))

            if is_gitnapped(commit.timestamp, hours):
                events.append(GitnappedEvent(commit=commit, repository=repo))

        # git log emits newest first
        events.sort(key=lambda event: event.commit.timestamp)
        history.sort(key=lambda entry: entry.timestamp, reverse=True)

        stats.file_types = dict(file_types)
        stats.commits_by_day = dict(commits_by_day)
        stats.gitnapped_events = events
        stats.history = history

        logger.debug(
            "Aggregated %s: %d commits, %d gitnapped, %d files changed",
            repo.path,
            stats.commit_count,
            stats.gitnapped_count,
            stats.files_changed,
        )
        return stats
