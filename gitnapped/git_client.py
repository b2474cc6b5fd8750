"""Reading commit history from local git repositories."""

from __future__ import annotations

import logging
import re
import subprocess
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set

from .constants import GIT_CONFIG, PARALLEL_CONFIG
from .exceptions import CollectionTimeoutError, CommitParseError, RepositoryUnavailable
from .models import AnalysisWindow, CommitBatch, CommitRecord, FileDelta, RepositoryRef

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = GIT_CONFIG['record_separator']
FIELD_SEPARATOR = GIT_CONFIG['field_separator']
LOG_FORMAT = "%x1e%H%x1f%an%x1f%aI%x1f%s"

_BRACE_RENAME = re.compile(r"\{([^{}]*) => ([^{}]*)\}")
# " <sha> <path> (<describe>)", prefixed with "-" when not initialized
_SUBMODULE_STATUS = re.compile(r"^([ +\-U])([0-9a-f]+) (.+?)(?: \([^()]*\))?$")


def normalize_numstat_path(path: str) -> str:
    """Resolve rename notation in ``git log --numstat`` paths to the new path.

    ``src/{old => new}/file.py`` becomes ``src/new/file.py`` and
    ``old.py => new.py`` becomes ``new.py``.
    """
    path = path.strip()
    if "=>" not in path:
        return path
    if "{" in path:
        path = _BRACE_RENAME.sub(lambda match: match.group(2), path)
        return path.replace("//", "/").lstrip("/")
    return path.split("=>", 1)[1].strip()


def _parse_count(value: str, chunk_hash: str) -> int:
    # Binary files report "-" for both counters
    if value == "-":
        return 0
    try:
        return int(value)
    except ValueError as exc:
        raise CommitParseError(f"Invalid numstat counter '{value}' in commit {chunk_hash}") from exc


def parse_commit(chunk: str) -> CommitRecord:
    """Parse one ``git log`` record (header line plus numstat lines).

    Raises:
        CommitParseError: If the header or a numstat line is malformed
    """
    lines = chunk.strip("\n").split("\n")
    header = lines[0].split(FIELD_SEPARATOR, 3)
    if len(header) != 4 or not header[0].strip():
        raise CommitParseError(f"Malformed commit header: {lines[0]!r}")

    commit_hash, author_name, raw_timestamp, subject = (part.strip() for part in header)
    try:
        timestamp = datetime_from_git(raw_timestamp)
    except ValueError as exc:
        raise CommitParseError(f"Invalid timestamp '{raw_timestamp}' in commit {commit_hash}") from exc

    deltas: List[FileDelta] = []
    for line in lines[1:]:
        if not line.strip():
            continue
        parts = line.split("\t", 2)
        if len(parts) != 3:
            raise CommitParseError(f"Malformed numstat line in commit {commit_hash}: {line!r}")
        insertions = _parse_count(parts[0], commit_hash)
        deletions = _parse_count(parts[1], commit_hash)
        deltas.append(FileDelta.from_path(normalize_numstat_path(parts[2]), insertions, deletions))

    return CommitRecord(
        hash=commit_hash,
        author_name=author_name,
        timestamp=timestamp,
        files_changed=tuple(deltas),
        insertions=sum(delta.insertions for delta in deltas),
        deletions=sum(delta.deletions for delta in deltas),
        subject=subject,
    )


def datetime_from_git(value: str) -> datetime:
    """Parse git's strict ISO 8601 date, keeping the recorded offset."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without offset: {value}")
    return parsed


def parse_log(output: str, source: Optional[str] = None) -> CommitBatch:
    """Parse the full ``git log`` output into a batch of commits.

    Malformed records are skipped and counted rather than aborting the
    repository.
    """
    batch = CommitBatch()
    for chunk in output.split(RECORD_SEPARATOR):
        if not chunk.strip():
            continue
        try:
            batch.records.append(parse_commit(chunk))
        except CommitParseError as exc:
            batch.skipped += 1
            logger.warning("Skipping malformed commit in %s: %s", source or "repository", exc)
    return batch


class GitClient:
    """Runs git as a subprocess and parses its output.

    Running processes are tracked so that :meth:`cancel` can terminate
    in-flight work from another thread.
    """

    def __init__(
        self,
        timeout: float = PARALLEL_CONFIG['repository_timeout'],
        include_submodules: bool = True,
        git_binary: str = "git",
    ) -> None:
        self.timeout = timeout
        self.include_submodules = include_submodules
        self.git_binary = git_binary
        self._processes: Set[subprocess.Popen] = set()
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

    def is_git_repository(self, path: str) -> bool:
        """Check whether ``path`` is inside a git work tree."""
        if not Path(path).is_dir():
            return False
        try:
            output = self._run(
                ["rev-parse", "--is-inside-work-tree"],
                path,
                timeout=GIT_CONFIG['is_repo_timeout'],
            )
        except (RepositoryUnavailable, CollectionTimeoutError):
            return False
        return output.strip() == "true"

    def fetch_commits(self, repo: RepositoryRef, window: AnalysisWindow) -> CommitBatch:
        """Read the commits of ``repo`` (and its submodules) within ``window``.

        Raises:
            RepositoryUnavailable: If the path is missing or not a git repository
            CollectionTimeoutError: If git does not answer within the timeout
        """
        path = str(Path(repo.path).expanduser())
        if not Path(path).is_dir():
            raise RepositoryUnavailable(f"Repository path does not exist: {repo.path}", source=repo.path)

        batch = self._log(path, window)
        logger.debug("Read %d commits from %s", len(batch.records), path)

        if self.include_submodules:
            for submodule in self._submodule_paths(path):
                try:
                    sub_batch = self._log(submodule, window)
                except RepositoryUnavailable as exc:
                    logger.debug("Skipping submodule %s: %s", submodule, exc)
                    continue
                logger.debug("Added %d commits from submodule %s", len(sub_batch.records), submodule)
                batch.extend(sub_batch)

        return batch

    def cancel(self) -> None:
        """Kill every running git process and refuse to start new ones."""
        self._cancelled.set()
        with self._lock:
            processes = list(self._processes)
        for process in processes:
            if process.poll() is None:
                process.kill()

    def _log(self, path: str, window: AnalysisWindow) -> CommitBatch:
        try:
            output = self._run(
                [
                    "-c",
                    "core.quotepath=false",
                    "log",
                    f"--pretty=format:{LOG_FORMAT}",
                    "--numstat",
                ],
                path,
            )
        except RepositoryUnavailable as exc:
            # A freshly initialised repository has no HEAD yet
            if "does not have any commits" in str(exc):
                return CommitBatch()
            raise
        batch = parse_log(output, source=path)
        # git's --since/--until compare committer dates, the window applies to author dates
        batch.records = [record for record in batch.records if window.contains(record.timestamp)]
        return batch

    def _submodule_paths(self, path: str) -> List[str]:
        try:
            output = self._run(["submodule", "status"], path, timeout=GIT_CONFIG['is_repo_timeout'])
        except (RepositoryUnavailable, CollectionTimeoutError) as exc:
            logger.debug("Could not list submodules of %s: %s", path, exc)
            return []

        paths = []
        for line in output.splitlines():
            match = _SUBMODULE_STATUS.match(line)
            if not match:
                continue
            # Uninitialized submodules would resolve to the parent repository
            if match.group(1) == "-":
                continue
            paths.append(str(Path(path) / match.group(3)))
        return paths

    def _run(self, args: List[str], cwd: str, timeout: Optional[float] = None) -> str:
        if self._cancelled.is_set():
            raise RepositoryUnavailable("Analysis was cancelled", source=cwd)

        command = [self.git_binary, "-C", cwd, *args]
        timeout = self.timeout if timeout is None else timeout
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise RepositoryUnavailable(f"Failed to run git: {exc}", source=cwd) from exc

        with self._lock:
            self._processes.add(process)
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise CollectionTimeoutError(
                f"git {' '.join(args[:1])} timed out after {timeout}s in {cwd}",
                source=cwd,
            ) from exc
        finally:
            with self._lock:
                self._processes.discard(process)

        if process.returncode != 0:
            message = stderr.strip() or f"git exited with status {process.returncode}"
            raise RepositoryUnavailable(f"{cwd}: {message}", source=cwd)
        return stdout
