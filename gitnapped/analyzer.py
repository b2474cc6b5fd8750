"""Engine facade tying collection and reduction together."""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from .collector import CommitSource, RepositoryCollector
from .models import AnalysisOptions, AnalysisResult, RepositoryRef
from .reducer import reduce_results

logger = logging.getLogger(__name__)


class Analyzer:
    """Analyze a set of repositories into one :class:`AnalysisResult`.

    The source is any :class:`~gitnapped.collector.CommitSource`; production
    code passes a :class:`~gitnapped.git_client.GitClient`.
    """

    def __init__(self, source: CommitSource, max_workers: Optional[int] = None) -> None:
        self.source = source
        self.max_workers = max_workers

    def analyze(
        self,
        repositories: Sequence[RepositoryRef],
        options: AnalysisOptions,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """Collect every repository, then reduce.

        Args:
            repositories: Repositories in configuration order
            options: Resolved run settings
            cancel_event: Set from another thread to abort the run

        Returns:
            The analysis result, with per-repository failures attached

        Raises:
            AnalysisCancelledError: If the run was cancelled
        """
        logger.info(
            "Analyzing %d repositories from %s to %s",
            len(repositories),
            options.window.since.isoformat(),
            options.window.until.isoformat(),
        )
        collector = RepositoryCollector(self.source, max_workers=self.max_workers, cancel_event=cancel_event)
        outcome = collector.collect(repositories, options)
        return reduce_results(outcome.stats, options, failures=outcome.failures)
