"""Domain models shared across the gitnapped toolkit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .constants import (
    MINUTES_PER_DAY,
    NO_EXTENSION,
    UNCATEGORIZED,
    UNNAMED_PROJECT,
    GroupingMode,
    SortKey,
)
from .exceptions import InvalidWindow, InvalidWorkingTime


def file_extension(path: str) -> str:
    """Return the lower-cased suffix of ``path``'s file name.

    Files without a suffix (``Makefile``, ``.gitignore``) are bucketed under
    :data:`NO_EXTENSION`.
    """
    suffix = PurePosixPath(path.replace("\\", "/")).suffix
    return suffix[1:].lower() if len(suffix) > 1 else NO_EXTENSION


def most_active_day(commits_by_day: Mapping[date, int]) -> Optional[Tuple[date, int]]:
    """Pick the day with the most commits; ties go to the earliest date."""
    if not commits_by_day:
        return None
    day, count = min(commits_by_day.items(), key=lambda item: (-item[1], item[0]))
    if count <= 0:
        return None
    return day, count


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    """A repository to analyze, with the rollup buckets it belongs to."""

    path: str
    label: str
    category: str = UNCATEGORIZED
    project: str = UNNAMED_PROJECT

    @classmethod
    def from_path(
        cls,
        path: str,
        category: Optional[str] = None,
        project: Optional[str] = None,
    ) -> "RepositoryRef":
        label = PurePosixPath(path.rstrip("/\\").replace("\\", "/")).name or path
        return cls(
            path=path,
            label=label,
            category=category or UNCATEGORIZED,
            project=project or UNNAMED_PROJECT,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "path": self.path,
            "label": self.label,
            "category": self.category,
            "project": self.project,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RepositoryRef":
        return cls(
            path=str(payload["path"]),
            label=str(payload["label"]),
            category=str(payload.get("category") or UNCATEGORIZED),
            project=str(payload.get("project") or UNNAMED_PROJECT),
        )


@dataclass(frozen=True, slots=True)
class FileDelta:
    """Line changes of a single file within one commit."""

    path: str
    extension: str
    insertions: int = 0
    deletions: int = 0

    @classmethod
    def from_path(cls, path: str, insertions: int = 0, deletions: int = 0) -> "FileDelta":
        return cls(path=path, extension=file_extension(path), insertions=insertions, deletions=deletions)

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": self.path,
            "extension": self.extension,
            "insertions": self.insertions,
            "deletions": self.deletions,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FileDelta":
        return cls(
            path=str(payload["path"]),
            extension=str(payload.get("extension") or NO_EXTENSION),
            insertions=int(payload.get("insertions", 0)),
            deletions=int(payload.get("deletions", 0)),
        )


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """A parsed commit as produced by the git adapter.

    ``timestamp`` is timezone-aware and keeps the offset recorded in the
    commit, so ``timestamp.hour`` is the author's local wall-clock hour.
    """

    hash: str
    author_name: str
    timestamp: datetime
    files_changed: Tuple[FileDelta, ...] = ()
    insertions: int = 0
    deletions: int = 0
    subject: str = ""

    @property
    def local_date(self) -> date:
        return self.timestamp.date()

    def to_dict(self) -> Dict[str, object]:
        return {
            "hash": self.hash,
            "author_name": self.author_name,
            "timestamp": self.timestamp.isoformat(),
            "files_changed": [delta.to_dict() for delta in self.files_changed],
            "insertions": self.insertions,
            "deletions": self.deletions,
            "subject": self.subject,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CommitRecord":
        return cls(
            hash=str(payload["hash"]),
            author_name=str(payload.get("author_name", "")),
            timestamp=datetime.fromisoformat(str(payload["timestamp"])),
            files_changed=tuple(FileDelta.from_dict(item) for item in payload.get("files_changed", [])),
            insertions=int(payload.get("insertions", 0)),
            deletions=int(payload.get("deletions", 0)),
            subject=str(payload.get("subject", "")),
        )


@dataclass(frozen=True, slots=True)
class CommitEntry:
    """One line of a repository's commit history."""

    hash: str
    timestamp: datetime
    subject: str = ""

    @classmethod
    def from_commit(cls, commit: CommitRecord) -> "CommitEntry":
        return cls(hash=commit.hash, timestamp=commit.timestamp, subject=commit.subject)

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    def to_dict(self) -> Dict[str, str]:
        return {"hash": self.hash, "timestamp": self.timestamp.isoformat(), "subject": self.subject}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CommitEntry":
        return cls(
            hash=str(payload["hash"]),
            timestamp=datetime.fromisoformat(str(payload["timestamp"])),
            subject=str(payload.get("subject", "")),
        )


@dataclass(slots=True)
class CommitBatch:
    """Commits read from one repository plus the count of unparseable ones."""

    records: List[CommitRecord] = field(default_factory=list)
    skipped: int = 0

    def extend(self, other: "CommitBatch") -> None:
        self.records.extend(other.records)
        self.skipped += other.skipped


@dataclass(frozen=True, slots=True)
class AnalysisWindow:
    """Half-open time interval ``[since, until)``."""

    since: datetime
    until: datetime

    def __post_init__(self) -> None:
        if self.since >= self.until:
            raise InvalidWindow(
                f"Window start {self.since.isoformat()} must be before end {self.until.isoformat()}",
                token=f"{self.since.isoformat()}..{self.until.isoformat()}",
            )

    def contains(self, timestamp: datetime) -> bool:
        return self.since <= timestamp < self.until

    def to_dict(self) -> Dict[str, str]:
        return {"since": self.since.isoformat(), "until": self.until.isoformat()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnalysisWindow":
        return cls(
            since=datetime.fromisoformat(str(payload["since"])),
            until=datetime.fromisoformat(str(payload["until"])),
        )


@dataclass(frozen=True, slots=True)
class WorkingHours:
    """Daily working window in minutes since midnight.

    When ``end_minute <= start_minute`` the window wraps past midnight
    (e.g. 22:00-06:00).
    """

    start_minute: int
    end_minute: int

    def __post_init__(self) -> None:
        for value in (self.start_minute, self.end_minute):
            if not 0 <= value < MINUTES_PER_DAY:
                raise InvalidWorkingTime(
                    f"Working time minute {value} is outside 0-{MINUTES_PER_DAY - 1}",
                    token=str(value),
                )

    @property
    def wraps(self) -> bool:
        return self.end_minute <= self.start_minute

    def __str__(self) -> str:
        return f"{_format_minute(self.start_minute)}-{_format_minute(self.end_minute)}"

    def to_dict(self) -> Dict[str, object]:
        return {"start": _format_minute(self.start_minute), "end": _format_minute(self.end_minute)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WorkingHours":
        return cls(
            start_minute=_parse_minute(str(payload["start"])),
            end_minute=_parse_minute(str(payload["end"])),
        )


def _format_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def _parse_minute(text: str) -> int:
    hours, minutes = text.split(":", 1)
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True, slots=True)
class GitnappedEvent:
    """A commit made outside working hours."""

    commit: CommitRecord
    repository: RepositoryRef

    def to_dict(self) -> Dict[str, object]:
        return {"commit": self.commit.to_dict(), "repository": self.repository.to_dict()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "GitnappedEvent":
        return cls(
            commit=CommitRecord.from_dict(payload["commit"]),
            repository=RepositoryRef.from_dict(payload["repository"]),
        )


class _StatsMixin:
    """Derived metrics shared by repository and aggregate statistics."""

    __slots__ = ()

    commit_count: int
    files_changed: int
    insertions: int
    deletions: int
    file_types: Dict[str, int]
    commits_by_day: Dict[date, int]
    gitnapped_events: List[GitnappedEvent]
    skipped_commits: int

    @property
    def lines_changed(self) -> int:
        return self.insertions + self.deletions

    @property
    def gitnapped_count(self) -> int:
        return len(self.gitnapped_events)

    @property
    def within_hours_count(self) -> int:
        return self.commit_count - self.gitnapped_count

    @property
    def gitnapped_percentage(self) -> int:
        if self.commit_count <= 0:
            return 0
        return int(self.gitnapped_count * 100 / self.commit_count)

    @property
    def most_active_day(self) -> Optional[date]:
        picked = most_active_day(self.commits_by_day)
        return picked[0] if picked else None

    @property
    def most_active_day_count(self) -> int:
        picked = most_active_day(self.commits_by_day)
        return picked[1] if picked else 0

    def is_active(self) -> bool:
        return self.commit_count > 0

    def sort_value(self, key: SortKey) -> int:
        if key is SortKey.FILES:
            return self.files_changed
        if key is SortKey.LINES:
            return self.lines_changed
        return self.commit_count

    def _counters_to_dict(self) -> Dict[str, object]:
        active_day = self.most_active_day
        return {
            "commit_count": self.commit_count,
            "files_changed": self.files_changed,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "file_types": dict(self.file_types),
            "commits_by_day": {day.isoformat(): count for day, count in sorted(self.commits_by_day.items())},
            "most_active_day": active_day.isoformat() if active_day else None,
            "gitnapped_count": self.gitnapped_count,
            "gitnapped_events": [event.to_dict() for event in self.gitnapped_events],
            "skipped_commits": self.skipped_commits,
        }


def _counters_from_dict(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "commit_count": int(payload.get("commit_count", 0)),
        "files_changed": int(payload.get("files_changed", 0)),
        "insertions": int(payload.get("insertions", 0)),
        "deletions": int(payload.get("deletions", 0)),
        "file_types": {str(key): int(value) for key, value in (payload.get("file_types") or {}).items()},
        "commits_by_day": {
            date.fromisoformat(key): int(value) for key, value in (payload.get("commits_by_day") or {}).items()
        },
        "gitnapped_events": [GitnappedEvent.from_dict(item) for item in payload.get("gitnapped_events", [])],
        "skipped_commits": int(payload.get("skipped_commits", 0)),
    }


@dataclass(slots=True)
class RepoStats(_StatsMixin):
    """Statistics of a single repository for one run.

    ``history`` lists the counted commits, newest first.
    """

    repo: RepositoryRef
    commit_count: int = 0
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    file_types: Dict[str, int] = field(default_factory=dict)
    commits_by_day: Dict[date, int] = field(default_factory=dict)
    gitnapped_events: List[GitnappedEvent] = field(default_factory=list)
    skipped_commits: int = 0
    history: List[CommitEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"repo": self.repo.to_dict()}
        payload.update(self._counters_to_dict())
        payload["history"] = [entry.to_dict() for entry in self.history]
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RepoStats":
        return cls(
            repo=RepositoryRef.from_dict(payload["repo"]),
            history=[CommitEntry.from_dict(item) for item in payload.get("history", [])],
            **_counters_from_dict(payload),
        )


@dataclass(slots=True)
class AggregateStats(_StatsMixin):
    """Statistics summed over a category, a project or every repository."""

    name: str
    repositories: List[str] = field(default_factory=list)
    active_repositories: int = 0
    commit_count: int = 0
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    file_types: Dict[str, int] = field(default_factory=dict)
    commits_by_day: Dict[date, int] = field(default_factory=dict)
    gitnapped_events: List[GitnappedEvent] = field(default_factory=list)
    skipped_commits: int = 0

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "name": self.name,
            "repositories": list(self.repositories),
            "active_repositories": self.active_repositories,
        }
        payload.update(self._counters_to_dict())
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AggregateStats":
        return cls(
            name=str(payload["name"]),
            repositories=[str(path) for path in payload.get("repositories", [])],
            active_repositories=int(payload.get("active_repositories", 0)),
            **_counters_from_dict(payload),
        )


@dataclass(frozen=True, slots=True)
class RepositoryFailure:
    """A repository that could not be analyzed."""

    repo: RepositoryRef
    kind: str
    message: str

    def to_dict(self) -> Dict[str, object]:
        return {"repo": self.repo.to_dict(), "kind": self.kind, "message": self.message}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RepositoryFailure":
        return cls(
            repo=RepositoryRef.from_dict(payload["repo"]),
            kind=str(payload.get("kind", "")),
            message=str(payload.get("message", "")),
        )


@dataclass(frozen=True, slots=True)
class AnalysisOptions:
    """Resolved, immutable settings of one run.

    ``author`` of ``None`` means commits from every author are counted.
    """

    window: AnalysisWindow
    working_hours: WorkingHours
    author: Optional[str] = None
    sort_key: SortKey = SortKey.COMMITS
    grouping: GroupingMode = GroupingMode.NONE
    active_only: bool = False
    most_active_repos: Optional[int] = None
    show_total_stats: bool = False


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Top-level result of one run, consumed by the display and JSON layers."""

    window: AnalysisWindow
    working_hours: WorkingHours
    author: Optional[str]
    per_repo: Tuple[RepoStats, ...]
    by_category: Dict[str, AggregateStats]
    by_project: Dict[str, AggregateStats]
    totals: Optional[AggregateStats]
    sort_key: SortKey
    grouping: GroupingMode
    analyzed_repositories: int = 0
    failures: Tuple[RepositoryFailure, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "window": self.window.to_dict(),
            "working_hours": self.working_hours.to_dict(),
            "author": self.author,
            "sort_key": self.sort_key.value,
            "grouping": self.grouping.value,
            "analyzed_repositories": self.analyzed_repositories,
            "per_repo": [stats.to_dict() for stats in self.per_repo],
            "by_category": {name: stats.to_dict() for name, stats in self.by_category.items()},
            "by_project": {name: stats.to_dict() for name, stats in self.by_project.items()},
            "totals": self.totals.to_dict() if self.totals is not None else None,
            "failures": [failure.to_dict() for failure in self.failures],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnalysisResult":
        totals = payload.get("totals")
        return cls(
            window=AnalysisWindow.from_dict(payload["window"]),
            working_hours=WorkingHours.from_dict(payload["working_hours"]),
            author=payload.get("author"),
            per_repo=tuple(RepoStats.from_dict(item) for item in payload.get("per_repo", [])),
            by_category={
                str(name): AggregateStats.from_dict(item)
                for name, item in (payload.get("by_category") or {}).items()
            },
            by_project={
                str(name): AggregateStats.from_dict(item)
                for name, item in (payload.get("by_project") or {}).items()
            },
            totals=AggregateStats.from_dict(totals) if totals is not None else None,
            sort_key=SortKey(payload.get("sort_key", SortKey.COMMITS.value)),
            grouping=GroupingMode(payload.get("grouping", GroupingMode.NONE.value)),
            analyzed_repositories=int(payload.get("analyzed_repositories", 0)),
            failures=tuple(RepositoryFailure.from_dict(item) for item in payload.get("failures", [])),
        )
