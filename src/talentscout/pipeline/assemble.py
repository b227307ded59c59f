"""Final payload assembly: truncation, metrics and error summary."""

import logging
from datetime import datetime

from talentscout.core.constants import TIMEOUT_ERROR
from talentscout.core.exceptions import AggregationError
from talentscout.core.models import (
    CanonicalProfile,
    DeduplicationMetrics,
    SearchCriteria,
    SearchResult,
    SourceOutcome,
)
from talentscout.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def performance_metrics(outcomes: dict[str, SourceOutcome], total_time_ms: int) -> dict:
    requested = len(outcomes)
    succeeded = sum(1 for o in outcomes.values() if o.succeeded)
    timed_out = sum(1 for o in outcomes.values() if o.error == TIMEOUT_ERROR)
    per_source = {name: o.elapsed_ms for name, o in outcomes.items()}
    return {
        "total_time_ms": total_time_ms,
        "success_rate": round(succeeded / requested, 4) if requested else 0.0,
        "per_source_time": per_source,
        "timeout_rate": round(timed_out / requested, 4) if requested else 0.0,
        "average_time_per_source": round(sum(per_source.values()) / requested, 1) if requested else 0.0,
    }


def quality_metrics(
    outcomes: dict[str, SourceOutcome],
    candidates: list[CanonicalProfile],
    dedupe_metrics: DeduplicationMetrics,
) -> dict:
    requested = len(outcomes)
    succeeded = sum(1 for o in outcomes.values() if o.succeeded)
    scores = [c.score.final_score for c in candidates if c.score is not None]
    return {
        "completion_rate": round(succeeded / requested * 100, 2) if requested else 0.0,
        "graceful_degradation": succeeded < requested,
        "deduplication_rate": dedupe_metrics.deduplication_rate,
        "average_score": round(sum(scores) / len(scores), 2) if scores else 0.0,
    }


def assemble_result(
    criteria: SearchCriteria,
    outcomes: dict[str, SourceOutcome],
    ranked: list[CanonicalProfile],
    dedupe_metrics: DeduplicationMetrics,
    total_time_ms: int,
    timestamp: datetime | None = None,
) -> SearchResult:
    """Package ranked profiles and per-source outcomes into a SearchResult.

    Args:
        criteria: The criteria the run was made for.
        outcomes: One outcome per requested source, in request order.
        ranked: Scored profiles, best first.
        dedupe_metrics: Metrics from the deduplication step.
        total_time_ms: Wall time of the whole run.
        timestamp: Completion time (defaults to now).

    Returns:
        SearchResult; flagged degraded when no source produced any record.
    """
    candidates = ranked[: criteria.limit]
    errors = [{"source": name, "error": o.error} for name, o in outcomes.items() if o.error]

    degraded = not any(o.records for o in outcomes.values())
    if degraded:
        err = AggregationError(f"No records from any of {len(outcomes)} sources")
        logger.warning("%s; returning an empty result", err)
        candidates = []

    return SearchResult(
        query=criteria.query,
        location=criteria.location,
        timestamp=timestamp or utc_now(),
        candidates=candidates,
        results=outcomes,
        deduplication_metrics=dedupe_metrics,
        performance_metrics=performance_metrics(outcomes, total_time_ms),
        quality_metrics=quality_metrics(outcomes, candidates, dedupe_metrics),
        errors=errors,
        degraded=degraded,
    )


__all__ = ["assemble_result", "performance_metrics", "quality_metrics"]
