from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Tuple

import pytest

from gitnapped.models import CommitRecord, FileDelta, RepositoryRef


def make_commit(
    when: datetime,
    author: str = "Jane Doe",
    files: Iterable[Tuple[str, int, int]] = (("src/app.py", 3, 1),),
    commit_hash: Optional[str] = None,
    subject: str = "Update",
) -> CommitRecord:
    deltas = tuple(FileDelta.from_path(path, ins, dels) for path, ins, dels in files)
    return CommitRecord(
        hash=commit_hash or f"{when:%Y%m%d%H%M%S}{author}",
        author_name=author,
        timestamp=when,
        files_changed=deltas,
        insertions=sum(delta.insertions for delta in deltas),
        deletions=sum(delta.deletions for delta in deltas),
        subject=subject,
    )


@pytest.fixture
def commit_factory() -> Callable[..., CommitRecord]:
    return make_commit


@pytest.fixture
def repo() -> RepositoryRef:
    return RepositoryRef.from_path("/work/api", category="Work", project="Backend")


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
