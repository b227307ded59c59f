"""Tests for core data models."""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from talentscout.core.exceptions import CriteriaValidationError
from talentscout.core.models import (
    RawCandidateRecord,
    ScoreBreakdown,
    SearchCriteria,
    SearchResult,
    SourceOutcome,
)


class TestSearchCriteria:
    """Criteria validation happens before any network activity."""

    def test_empty_query_rejected(self):
        with pytest.raises(CriteriaValidationError):
            SearchCriteria(query="   ", sources=["github"])

    def test_no_sources_rejected(self):
        with pytest.raises(CriteriaValidationError):
            SearchCriteria(query="python developer", sources=[])

    def test_non_positive_budget_rejected(self):
        with pytest.raises(CriteriaValidationError):
            SearchCriteria(query="dev", sources=["github"], time_budget=0)

    def test_limit_must_be_positive(self):
        with pytest.raises(CriteriaValidationError):
            SearchCriteria(query="dev", sources=["github"], limit=0)

    def test_sources_normalized_and_deduplicated(self):
        criteria = SearchCriteria(query="dev", sources=["GitHub", "github", " google "])
        assert criteria.sources == ["github", "google"]

    def test_query_and_location_stripped(self):
        criteria = SearchCriteria(query="  react dev ", location="  ", sources=["github"])
        assert criteria.query == "react dev"
        assert criteria.location is None

    def test_is_immutable(self):
        criteria = SearchCriteria(query="dev", sources=["github"])
        with pytest.raises(ValidationError):
            criteria.query = "other"

    def test_search_terms_deduplicated_case_insensitively(self):
        criteria = SearchCriteria(
            query="dev",
            sources=["github"],
            skills=["Python", "React"],
            keywords=["python", "AWS"],
        )
        assert criteria.search_terms() == ["Python", "React", "AWS"]


class TestRecordsAndOutcomes:
    def test_source_key(self):
        record = RawCandidateRecord(source="github", platform_id="octocat")
        assert record.source_key == "github:octocat"

    def test_outcome_success_flag(self):
        assert SourceOutcome().succeeded
        assert not SourceOutcome(error="timeout").succeeded


class TestScoreBreakdown:
    def test_final_score_clamped_high(self):
        assert ScoreBreakdown(final_score=150).final_score == 100

    def test_final_score_clamped_low(self):
        assert ScoreBreakdown(final_score=-5).final_score == 0


class TestSearchResult:
    def test_payload_is_json_serializable(self):
        result = SearchResult(
            query="dev",
            timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
            results={"github": SourceOutcome(error="timeout")},
            errors=[{"source": "github", "error": "timeout"}],
        )
        payload = result.to_payload()
        encoded = json.dumps(payload)
        assert "timeout" in encoded
        assert payload["results"]["github"]["total_found"] == 0
        assert set(payload) >= {
            "candidates",
            "results",
            "deduplication_metrics",
            "performance_metrics",
            "errors",
        }
