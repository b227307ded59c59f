"""Core data models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import CriteriaValidationError


class SearchCriteria(BaseModel):
    """Structured search request consumed by the pipeline.

    Immutable once constructed. Validation failures are raised as
    CriteriaValidationError before any network activity happens.
    """

    model_config = ConfigDict(frozen=True)

    query: str
    location: str | None = None
    skills: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    role_types: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    time_budget: float = 60.0
    limit: int = 50

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValueError as e:
            raise CriteriaValidationError(str(e)) from e

    @field_validator("query")
    @classmethod
    def validate_query(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("query must not be empty")
        return value

    @field_validator("location")
    @classmethod
    def normalize_location(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("skills", "keywords", "role_types")
    @classmethod
    def strip_terms(cls, value: list[str]) -> list[str]:
        return [v.strip() for v in value if v and v.strip()]

    @field_validator("sources")
    @classmethod
    def normalize_sources(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for name in value:
            name = (name or "").strip().lower()
            if name and name not in seen:
                seen.append(name)
        if not seen:
            raise ValueError("at least one source must be selected")
        return seen

    @field_validator("time_budget")
    @classmethod
    def validate_time_budget(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("time_budget must be positive")
        return value

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("limit must be at least 1")
        return value

    def search_terms(self) -> list[str]:
        """Skills followed by keywords, de-duplicated case-insensitively."""
        terms: list[str] = []
        seen: set[str] = set()
        for term in [*self.skills, *self.keywords]:
            key = term.lower()
            if key not in seen:
                seen.add(key)
                terms.append(term)
        return terms


class RawCandidateRecord(BaseModel):
    """One source's view of one person."""

    model_config = ConfigDict(frozen=True)

    source: str
    platform_id: str
    name: str | None = None
    title: str | None = None
    location: str | None = None
    avatar_url: str | None = None
    email: str | None = None
    summary: str | None = None
    profile_url: str | None = None
    github_username: str | None = None
    linkedin_url: str | None = None
    stackoverflow_id: str | None = None
    website_url: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience_years: float | None = None
    followers: int = 0
    stars: int = 0
    repo_count: int = 0
    reputation: int = 0
    last_active: datetime | None = None
    rank_score: float = 0.0

    @property
    def source_key(self) -> str:
        return f"{self.source}:{self.platform_id}"


class SourceReference(BaseModel):
    """Pointer back to the platform record a profile was built from."""

    platform: str
    platform_id: str
    url: str | None = None


class MergeProvenance(BaseModel):
    """How many and which raw records formed a canonical profile."""

    record_count: int = 1
    record_keys: list[str] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)


class RiskFlag(BaseModel):
    code: str
    label: str
    penalty: float


class ScoreBreakdown(BaseModel):
    """Per-profile score components, each in [0, 100]."""

    skill_match: float = 0.0
    experience: float = 0.0
    reputation: float = 0.0
    freshness: float = 0.0
    social_proof: float = 0.0
    weighted_total: float = 0.0
    risk_flags: list[RiskFlag] = Field(default_factory=list)
    risk_penalty: float = 0.0
    final_score: float = 0.0

    @model_validator(mode="after")
    def clamp_final_score(self) -> "ScoreBreakdown":
        self.final_score = max(0.0, min(100.0, self.final_score))
        return self


class EmailConfidence(BaseModel):
    score: int = 0
    level: Literal["high", "medium", "low"] = "low"
    type: Literal["personal", "work", "generic", "mailing_list"] = "generic"


class CanonicalProfile(BaseModel):
    """Merged identity built from one or more raw records."""

    id: str
    name: str | None = None
    title: str | None = None
    location: str | None = None
    avatar_url: str | None = None
    email: str | None = None
    summary: str | None = None
    profile_url: str | None = None
    github_username: str | None = None
    linkedin_url: str | None = None
    stackoverflow_id: str | None = None
    website_url: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience_years: float | None = None
    followers: int = 0
    stars: int = 0
    repo_count: int = 0
    reputation: int = 0
    last_active: datetime | None = None
    sources: list[SourceReference] = Field(default_factory=list)
    provenance: MergeProvenance = Field(default_factory=MergeProvenance)
    score: ScoreBreakdown | None = None
    email_confidence: EmailConfidence | None = None

    @property
    def platforms(self) -> list[str]:
        return sorted({ref.platform for ref in self.sources})


class SourceOutcome(BaseModel):
    """Per-source result wrapper. Present for every requested source."""

    records: list[RawCandidateRecord] = Field(default_factory=list)
    total_found: int = 0
    error: str | None = None
    elapsed_ms: int = 0
    rate_limited: bool = False
    queries_run: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None


class DeduplicationMetrics(BaseModel):
    original_count: int = 0
    deduplicated_count: int = 0
    duplicates_removed: int = 0
    merge_decisions: int = 0
    deduplication_rate: float = 0.0


class SearchResult(BaseModel):
    """Final payload produced by one pipeline run."""

    query: str
    location: str | None = None
    timestamp: datetime
    candidates: list[CanonicalProfile] = Field(default_factory=list)
    results: dict[str, SourceOutcome] = Field(default_factory=dict)
    deduplication_metrics: DeduplicationMetrics = Field(default_factory=DeduplicationMetrics)
    performance_metrics: dict[str, Any] = Field(default_factory=dict)
    quality_metrics: dict[str, Any] = Field(default_factory=dict)
    errors: list[dict[str, str]] = Field(default_factory=list)
    degraded: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serializable dict of the whole result."""
        return self.model_dump(mode="json")


__all__ = [
    "SearchCriteria",
    "RawCandidateRecord",
    "SourceReference",
    "MergeProvenance",
    "RiskFlag",
    "ScoreBreakdown",
    "EmailConfidence",
    "CanonicalProfile",
    "SourceOutcome",
    "DeduplicationMetrics",
    "SearchResult",
]
