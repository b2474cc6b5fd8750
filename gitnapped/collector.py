"""Parallel per-repository collection with failure isolation."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

from .aggregator import RepoAggregator
from .constants import PARALLEL_CONFIG
from .exceptions import AnalysisCancelledError, CollectionError
from .filters import AuthorFilter, FilterHelper
from .models import (
    AnalysisOptions,
    AnalysisWindow,
    CommitBatch,
    RepoStats,
    RepositoryFailure,
    RepositoryRef,
)

logger = logging.getLogger(__name__)


class CommitSource(Protocol):
    """Anything able to read a repository's commits (the git adapter in production)."""

    def fetch_commits(self, repo: RepositoryRef, window: AnalysisWindow) -> CommitBatch:
        ...


@dataclass
class CollectionOutcome:
    """Per-repository results of a run, in configuration order."""

    stats: List[RepoStats] = field(default_factory=list)
    failures: List[RepositoryFailure] = field(default_factory=list)


def analyze_repository(source: CommitSource, repo: RepositoryRef, options: AnalysisOptions) -> RepoStats:
    """Fetch, filter and aggregate the commits of a single repository."""
    batch = source.fetch_commits(repo, options.window)
    commits = FilterHelper.filter_commits(batch.records, options.window, AuthorFilter(options.author))
    return RepoAggregator.aggregate(repo, commits, options.working_hours, skipped_commits=batch.skipped)


def default_worker_count(repository_count: int, cap: Optional[int] = None) -> int:
    """Pool size for I/O-bound git work; an explicit ``cap`` is not tied to the CPU count."""
    if not cap:
        cap = min(PARALLEL_CONFIG['max_workers_repositories'], os.cpu_count() or 1)
    return max(1, min(cap, repository_count))


class RepositoryCollector:
    """Runs :func:`analyze_repository` for every repository on a bounded pool.

    All results are gathered before returning, so reduction never sees a
    partial set. A failing repository becomes a :class:`RepositoryFailure`
    and does not stop the others. Setting ``cancel_event`` (or a
    ``KeyboardInterrupt``) stops the pool and discards partial work.
    """

    def __init__(
        self,
        source: CommitSource,
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        poll_interval: float = PARALLEL_CONFIG['cancel_poll_interval'],
    ) -> None:
        self.source = source
        self.max_workers = max_workers
        self.cancel_event = cancel_event or threading.Event()
        self.poll_interval = poll_interval

    def collect(self, repositories: Sequence[RepositoryRef], options: AnalysisOptions) -> CollectionOutcome:
        """Analyze every repository and wait for all of them.

        Raises:
            AnalysisCancelledError: If the run was cancelled
        """
        if not repositories:
            return CollectionOutcome()

        workers = default_worker_count(len(repositories), self.max_workers)
        logger.debug("Analyzing %d repositories with %d workers", len(repositories), workers)

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gitnapped")
        futures: Dict[Future, int] = {
            executor.submit(analyze_repository, self.source, repo, options): index
            for index, repo in enumerate(repositories)
        }
        results: Dict[int, RepoStats] = {}
        failures: Dict[int, RepositoryFailure] = {}

        try:
            pending = set(futures)
            while pending:
                if self.cancel_event.is_set():
                    raise AnalysisCancelledError("Analysis cancelled before all repositories finished")
                done, pending = wait(pending, timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                for future in done:
                    index = futures[future]
                    repo = repositories[index]
                    try:
                        results[index] = future.result()
                    except CollectionError as exc:
                        logger.warning("Skipping %s: %s", repo.path, exc)
                        failures[index] = RepositoryFailure(repo=repo, kind=type(exc).__name__, message=str(exc))
                    except Exception as exc:
                        logger.error("Analysis of %s failed: %s", repo.path, exc)
                        failures[index] = RepositoryFailure(repo=repo, kind=type(exc).__name__, message=str(exc))
        except (AnalysisCancelledError, KeyboardInterrupt):
            self._abort(executor)
            raise

        executor.shutdown(wait=True)
        return CollectionOutcome(
            stats=[results[index] for index in sorted(results)],
            failures=[failures[index] for index in sorted(failures)],
        )

    def _abort(self, executor: ThreadPoolExecutor) -> None:
        logger.debug("Cancelling in-flight repository analysis")
        self.cancel_event.set()
        cancel = getattr(self.source, "cancel", None)
        if callable(cancel):
            cancel()
        executor.shutdown(wait=False, cancel_futures=True)
