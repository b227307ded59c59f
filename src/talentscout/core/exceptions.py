"""Exception taxonomy for the sourcing pipeline."""

from .constants import TIMEOUT_ERROR


class TalentScoutError(Exception):
    """Base exception for all talentscout errors."""


class CriteriaValidationError(TalentScoutError):
    """Search criteria are malformed or incomplete. Not retryable."""


class SourceError(TalentScoutError):
    """Failure scoped to a single source collector."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class SourceFetchError(SourceError):
    """Network, HTTP or parse failure inside one collector."""


class RateLimitError(SourceError):
    """The platform signalled a rate limit; stop querying for this run."""


class SourceTimeoutError(SourceError):
    """The collector ran into its deadline."""

    def __init__(self, source: str, message: str = TIMEOUT_ERROR):
        super().__init__(source, message)


class AggregationError(TalentScoutError):
    """Every source came back empty; the run can only produce a degraded result."""


__all__ = [
    "TalentScoutError",
    "CriteriaValidationError",
    "SourceError",
    "SourceFetchError",
    "RateLimitError",
    "SourceTimeoutError",
    "AggregationError",
]
