"""Concurrent fan-out to source collectors under one time budget."""

import logging
import time
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field

from talentscout.config.settings import Settings
from talentscout.core.constants import (
    DISABLED_SOURCE_ERROR,
    SOURCE_LIMIT_ERROR,
    TIMEOUT_ERROR,
    UNKNOWN_SOURCE_ERROR,
)
from talentscout.core.models import (
    CanonicalProfile,
    DeduplicationMetrics,
    RawCandidateRecord,
    SearchCriteria,
    SourceOutcome,
)
from talentscout.sources.base import BaseSource, Deadline, SourceRegistry

from .dedupe import DedupeEngine

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]


@dataclass
class CollectionReport:
    """Everything one orchestration run produced."""

    outcomes: dict[str, SourceOutcome] = field(default_factory=dict)
    profiles: list[CanonicalProfile] = field(default_factory=list)
    deduplication_metrics: DeduplicationMetrics = field(default_factory=DeduplicationMetrics)
    elapsed_ms: int = 0
    budget_s: float = 0.0

    @property
    def records(self) -> list[RawCandidateRecord]:
        return [r for outcome in self.outcomes.values() for r in outcome.records]


class CollectionOrchestrator:
    """Runs every requested collector in parallel against a shared deadline.

    A collector still running at the deadline is abandoned and reported
    as a timeout; results of collectors that finished are kept. The
    outcome map always has one entry per requested source.
    """

    def __init__(
        self,
        settings: Settings,
        sources: Mapping[str, BaseSource] | None = None,
        clock: Callable[[], float] = time.monotonic,
        dedupe: DedupeEngine | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            settings: Application settings.
            sources: Collector instances by name; defaults to the registry.
            clock: Monotonic clock used for the deadline.
            dedupe: Deduplication engine; built from settings if None.
        """
        self.settings = settings
        self._sources = dict(sources) if sources is not None else None
        self.clock = clock
        self.dedupe = dedupe or DedupeEngine(name_threshold=settings.dedupe.name_threshold)

    def effective_budget(self, criteria: SearchCriteria) -> float:
        return min(criteria.time_budget, self.settings.collection.max_time_budget)

    def _lookup(self, name: str) -> BaseSource | None:
        if self._sources is not None:
            return self._sources.get(name)
        return SourceRegistry.create(name, self.settings)

    def _resolve(self, criteria: SearchCriteria) -> tuple[dict[str, BaseSource], dict[str, SourceOutcome]]:
        """Split requested sources into runnable collectors and pre-failed outcomes."""
        runnable: dict[str, BaseSource] = {}
        rejected: dict[str, SourceOutcome] = {}
        max_sources = self.settings.collection.max_sources
        for position, name in enumerate(criteria.sources):
            if position >= max_sources:
                rejected[name] = SourceOutcome(error=SOURCE_LIMIT_ERROR)
                continue
            source = self._lookup(name)
            if source is None:
                rejected[name] = SourceOutcome(error=UNKNOWN_SOURCE_ERROR)
            elif not source.enabled:
                rejected[name] = SourceOutcome(error=DISABLED_SOURCE_ERROR)
            else:
                runnable[name] = source
        for name, outcome in rejected.items():
            logger.warning("Source '%s' not run: %s", name, outcome.error)
        return runnable, rejected

    def collect(
        self,
        criteria: SearchCriteria,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, SourceOutcome]:
        """Fan out to collectors and return one outcome per requested source."""
        progress = on_progress or (lambda stage, msg: None)
        runnable, outcomes = self._resolve(criteria)
        budget = self.effective_budget(criteria)
        deadline = Deadline(budget, clock=self.clock)

        if runnable:
            progress("collect", f"Querying {len(runnable)} sources ({budget:.0f}s budget)...")
            outcomes.update(self._fan_out(runnable, criteria, deadline, budget, progress))

        return {name: outcomes[name] for name in criteria.sources}

    def _fan_out(
        self,
        runnable: dict[str, BaseSource],
        criteria: SearchCriteria,
        deadline: Deadline,
        budget: float,
        progress: ProgressCallback,
    ) -> dict[str, SourceOutcome]:
        outcomes: dict[str, SourceOutcome] = {}
        executor = ThreadPoolExecutor(max_workers=len(runnable), thread_name_prefix="collector")
        try:
            futures: dict[Future, str] = {
                executor.submit(source.collect, criteria, deadline): name
                for name, source in runnable.items()
            }
            try:
                for future in as_completed(futures, timeout=deadline.remaining()):
                    name = futures[future]
                    outcome = self._outcome_of(name, future)
                    outcomes[name] = outcome
                    if outcome.error:
                        progress("source", f"{name}: failed ({outcome.error})")
                    else:
                        progress("source", f"{name}: {len(outcome.records)} candidates ({outcome.elapsed_ms}ms)")
            except FuturesTimeoutError:
                # Stragglers are recorded as timeouts below
                pass

            for future, name in futures.items():
                if name in outcomes:
                    continue
                future.cancel()
                logger.warning("Source '%s' did not finish within %.1fs", name, budget)
                progress("source", f"{name}: timed out")
                outcomes[name] = SourceOutcome(error=TIMEOUT_ERROR, elapsed_ms=int(budget * 1000))
        finally:
            # Hung collectors keep their thread but never block the caller
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    @staticmethod
    def _outcome_of(name: str, future: Future) -> SourceOutcome:
        try:
            return future.result()
        except Exception as e:
            logger.exception("Source '%s' raised outside its collector", name)
            return SourceOutcome(error=f"Unexpected error: {type(e).__name__}")

    def orchestrate(
        self,
        criteria: SearchCriteria,
        on_progress: ProgressCallback | None = None,
    ) -> CollectionReport:
        """Collect from all sources, then deduplicate the combined records."""
        progress = on_progress or (lambda stage, msg: None)
        start = time.monotonic()
        outcomes = self.collect(criteria, on_progress=progress)
        report = CollectionReport(outcomes=outcomes, budget_s=self.effective_budget(criteria))

        records = report.records
        progress("dedupe", f"Deduplicating {len(records)} records...")
        report.profiles, report.deduplication_metrics = self.dedupe.deduplicate(records)
        m = report.deduplication_metrics
        progress("dedupe", f"Merged {m.duplicates_removed} duplicates ({m.deduplicated_count} profiles)")
        report.elapsed_ms = int((time.monotonic() - start) * 1000)
        return report


__all__ = ["CollectionOrchestrator", "CollectionReport", "ProgressCallback"]
