"""End-to-end search pipeline.

criteria -> concurrent collection -> deduplication -> scoring -> assembly.
"""

import logging
import time
from collections.abc import Callable, Mapping

from talentscout.config.settings import Settings
from talentscout.core.models import SearchCriteria, SearchResult
from talentscout.sources.base import BaseSource

from .assemble import assemble_result
from .orchestrator import CollectionOrchestrator
from .score import ScoringEngine

logger = logging.getLogger(__name__)


def build_criteria(
    settings: Settings,
    query: str,
    *,
    location: str | None = None,
    skills: list[str] | None = None,
    keywords: list[str] | None = None,
    role_types: list[str] | None = None,
    sources: list[str] | None = None,
    time_budget: float | None = None,
    limit: int = 50,
) -> SearchCriteria:
    """Build criteria, filling sources and time budget from settings.

    Raises:
        CriteriaValidationError: If the resulting criteria are invalid.
    """
    collection = settings.collection
    return SearchCriteria(
        query=query,
        location=location,
        skills=list(skills or []),
        keywords=list(keywords or []),
        role_types=list(role_types or []),
        sources=list(sources or collection.default_sources),
        time_budget=time_budget if time_budget is not None else collection.default_time_budget,
        limit=limit,
    )


class SearchPipeline:
    """Runs one candidate search from criteria to final payload."""

    def __init__(
        self,
        settings: Settings,
        sources: Mapping[str, BaseSource] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the search pipeline.

        Args:
            settings: Application settings.
            sources: Collector instances by name; defaults to the registry.
            clock: Monotonic clock for the collection deadline.
        """
        self.settings = settings
        self.orchestrator = CollectionOrchestrator(settings, sources=sources, clock=clock)
        self.scorer = ScoringEngine(settings.scoring)

    def run(
        self,
        criteria: SearchCriteria,
        on_progress: Callable[[str, str], None] | None = None,
    ) -> SearchResult:
        """Execute the search.

        Args:
            criteria: Validated search criteria.
            on_progress: Optional callback for progress updates.
                        Called with (stage_name: str, message: str).

        Returns:
            SearchResult with ranked candidates, one outcome per requested
            source, deduplication, performance and quality metrics.
        """
        start = time.monotonic()

        def progress(stage: str, msg: str) -> None:
            logger.info("[%s] %s", stage, msg)
            if on_progress:
                on_progress(stage, msg)

        progress("start", f"Searching for '{criteria.query}' across {len(criteria.sources)} sources...")
        report = self.orchestrator.orchestrate(criteria, on_progress=progress)

        progress("score", f"Scoring {len(report.profiles)} profiles...")
        ranked = self.scorer.score_all(report.profiles, criteria)

        total_ms = int((time.monotonic() - start) * 1000)
        result = assemble_result(
            criteria,
            report.outcomes,
            ranked,
            report.deduplication_metrics,
            total_time_ms=total_ms,
        )
        progress("assemble", f"{len(result.candidates)} candidates ready ({total_ms}ms)")
        return result


__all__ = ["SearchPipeline", "build_criteria"]
