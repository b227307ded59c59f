"""Composite scoring and risk flags for canonical profiles."""

import logging
from collections.abc import Iterable
from datetime import datetime

from talentscout.config.settings import ScoringConfig
from talentscout.core.models import CanonicalProfile, RiskFlag, ScoreBreakdown, SearchCriteria
from talentscout.sources.skills import SYNONYMS
from talentscout.utils.datetime import days_since
from talentscout.utils.text import contains_term, normalize_term

from .email_confidence import classify_email

logger = logging.getLogger(__name__)

NEUTRAL_SKILL_SCORE = 50.0
MIN_CONTAINED_LENGTH = 3

# (max days since activity, freshness score); anything older scores 20
FRESHNESS_STEPS = ((7, 100.0), (30, 80.0), (90, 60.0), (180, 40.0))
STALE_FRESHNESS = 20.0

INACTIVE_DAYS = 730
MIN_SKILLS = 3
MIN_SUMMARY_LENGTH = 50
MIN_EXPERIENCE_YEARS = 1
LOW_SCORE_THRESHOLD = 30


def _terms_match(term: str, skill: str) -> bool:
    """Exact match, or one contains the other as whole tokens (3+ chars)."""
    normalized_term, normalized_skill = normalize_term(term), normalize_term(skill)
    if not normalized_term or not normalized_skill:
        return False
    if normalized_term == normalized_skill:
        return True
    if len(term) >= MIN_CONTAINED_LENGTH and len(skill) >= MIN_CONTAINED_LENGTH:
        return contains_term(term, skill) or contains_term(skill, term)
    return False


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class ScoringEngine:
    """Weighted five-component score minus weighted risk penalties."""

    def __init__(self, config: ScoringConfig | None = None, now: datetime | None = None):
        self.config = config or ScoringConfig()
        self.weights = self.config.weights.normalized()
        self.penalties = self.config.risk_penalties
        self.now = now
        self.synonyms: dict[str, list[str]] = {k: list(v) for k, v in SYNONYMS.items()}
        for term, extra in self.config.synonyms.items():
            self.synonyms.setdefault(term.lower(), []).extend(extra)

    def skill_match(self, profile: CanonicalProfile, criteria: SearchCriteria) -> float:
        """Share of criteria terms matched directly or through a synonym."""
        terms = criteria.search_terms()
        if not terms:
            return NEUTRAL_SKILL_SCORE
        skills = [s.lower() for s in profile.skills]
        matched = 0
        for term in terms:
            candidates = [term, *self.synonyms.get(term.lower(), [])]
            if any(_terms_match(c.lower(), s) for c in candidates for s in skills):
                matched += 1
        return _clamp(matched / len(terms) * 100)

    @staticmethod
    def experience(profile: CanonicalProfile) -> float:
        years = _clamp(profile.experience_years or 1, 1, 15)
        return min(90.0, years * 5 + min(profile.repo_count, 30) * 0.5)

    @staticmethod
    def reputation(profile: CanonicalProfile) -> float:
        return _clamp(profile.followers * 0.5 + profile.stars * 0.2 + profile.reputation / 100)

    @staticmethod
    def social_proof(profile: CanonicalProfile) -> float:
        return _clamp(profile.followers / 5)

    def freshness(self, profile: CanonicalProfile) -> float:
        age = days_since(profile.last_active, self.now)
        if age is None:
            return STALE_FRESHNESS
        for limit, value in FRESHNESS_STEPS:
            if age < limit:
                return value
        return STALE_FRESHNESS

    def risk_flags(self, profile: CanonicalProfile, weighted_total: float) -> list[RiskFlag]:
        p = self.penalties
        flags = []
        age = days_since(profile.last_active, self.now)
        if age is not None and age > INACTIVE_DAYS:
            flags.append(RiskFlag(code="inactive", label="Inactive for over 2 years", penalty=p.inactive))
        if len(profile.skills) < MIN_SKILLS:
            flags.append(RiskFlag(code="few_skills", label="Fewer than 3 skills", penalty=p.few_skills))
        if len((profile.summary or "").strip()) < MIN_SUMMARY_LENGTH:
            flags.append(RiskFlag(code="short_summary", label="Summary under 50 characters", penalty=p.short_summary))
        if profile.experience_years is not None and profile.experience_years < MIN_EXPERIENCE_YEARS:
            flags.append(RiskFlag(code="low_experience", label="Less than 1 year of experience", penalty=p.low_experience))
        if not (profile.location or "").strip():
            flags.append(RiskFlag(code="no_location", label="No location", penalty=p.no_location))
        if weighted_total < LOW_SCORE_THRESHOLD:
            flags.append(RiskFlag(code="low_score", label="Overall score below 30", penalty=p.low_score))
        return flags

    def score(self, profile: CanonicalProfile, criteria: SearchCriteria) -> ScoreBreakdown:
        components = {
            "skill_match": self.skill_match(profile, criteria),
            "experience": self.experience(profile),
            "reputation": self.reputation(profile),
            "freshness": self.freshness(profile),
            "social_proof": self.social_proof(profile),
        }
        weights = self.weights.model_dump()
        weighted_total = sum(value * weights[name] / 100 for name, value in components.items())
        flags = self.risk_flags(profile, weighted_total)
        penalty = sum(flag.penalty for flag in flags)
        return ScoreBreakdown(
            **{name: round(value, 2) for name, value in components.items()},
            weighted_total=round(weighted_total, 2),
            risk_flags=flags,
            risk_penalty=penalty,
            final_score=round(max(0.0, weighted_total - penalty), 2),
        )

    def score_all(
        self,
        profiles: Iterable[CanonicalProfile],
        criteria: SearchCriteria,
    ) -> list[CanonicalProfile]:
        """Attach scores and email confidence, sorted best first.

        Ties on final score fall back to the weighted total, then profile id.
        """
        scored = []
        for profile in profiles:
            platform = profile.sources[0].platform if profile.sources else None
            scored.append(profile.model_copy(update={
                "score": self.score(profile, criteria),
                "email_confidence": classify_email(profile.email, platform, profile),
            }))
        scored.sort(key=lambda p: (-p.score.final_score, -p.score.weighted_total, p.id))
        logger.info("Scored %d profiles", len(scored))
        return scored


__all__ = ["ScoringEngine"]
