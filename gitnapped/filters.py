"""Filtering utilities for commit records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .models import AnalysisWindow, CommitRecord


@dataclass(frozen=True, slots=True)
class AuthorFilter:
    """Author predicate: an exact name, or every author when ``name`` is None."""

    name: Optional[str] = None

    @property
    def all_authors(self) -> bool:
        return self.name is None

    def matches(self, record: CommitRecord) -> bool:
        if self.name is None:
            return True
        return record.author_name == self.name


class FilterHelper:
    """Helper class for applying window and author predicates to commits."""

    @staticmethod
    def in_window(record: CommitRecord, window: AnalysisWindow) -> bool:
        """Check if the commit timestamp lies in ``[since, until)``.

        Args:
            record: Commit to check
            window: Analysis window

        Returns:
            True if the commit lies inside the window
        """
        return window.contains(record.timestamp)

    @staticmethod
    def author_matches(record: CommitRecord, author: AuthorFilter) -> bool:
        """Check if the commit author passes the author filter.

        Args:
            record: Commit to check
            author: Author filter (case-sensitive exact name or all authors)

        Returns:
            True if the commit passes the filter
        """
        return author.matches(record)

    @staticmethod
    def matches(record: CommitRecord, window: AnalysisWindow, author: AuthorFilter) -> bool:
        return FilterHelper.in_window(record, window) and FilterHelper.author_matches(record, author)

    @staticmethod
    def filter_commits(
        records: Iterable[CommitRecord],
        window: AnalysisWindow,
        author: AuthorFilter,
    ) -> Iterator[CommitRecord]:
        """Yield the records that pass both predicates, preserving order."""
        for record in records:
            if FilterHelper.matches(record, window, author):
                yield record
