"""End-to-end tests for the search pipeline with fake collectors."""

import json
import time

from talentscout.core.models import SearchCriteria
from talentscout.pipeline import SearchPipeline, build_criteria

SOURCES = ["github", "stackoverflow", "google", "linkedin"]


def _criteria(sources=SOURCES, **kwargs):
    return SearchCriteria(query="python developer", sources=sources, **kwargs)


class TestBuildCriteria:
    def test_defaults_from_settings(self, settings):
        criteria = build_criteria(settings, "react developer")
        assert criteria.sources == settings.collection.default_sources
        assert criteria.time_budget == settings.collection.default_time_budget

    def test_explicit_values_win(self, settings):
        criteria = build_criteria(settings, "dev", sources=["devto"], time_budget=5, limit=3)
        assert criteria.sources == ["devto"]
        assert criteria.time_budget == 5
        assert criteria.limit == 3


class TestSearchPipeline:
    """Collection, deduplication, scoring and assembly together."""

    def test_all_sources_time_out(self, settings, fake_source, release_event):
        sources = {name: fake_source(settings, name, release=release_event) for name in SOURCES}
        pipeline = SearchPipeline(settings, sources=sources)

        start = time.monotonic()
        result = pipeline.run(_criteria(time_budget=0.5))

        assert time.monotonic() - start < 3
        assert result.candidates == []
        assert result.degraded
        assert list(result.results) == SOURCES
        assert [e["error"] for e in result.errors] == ["timeout"] * 4
        assert result.performance_metrics["timeout_rate"] == 1.0
        assert result.quality_metrics["graceful_degradation"] is True

    def test_cross_source_merge(self, settings, fake_source, record_factory):
        sources = {
            "github": fake_source(
                settings,
                "github",
                records=[record_factory("github", "asmith", name="Alice Smith", github_username="asmith", followers=90)],
            ),
            "google": fake_source(
                settings,
                "google",
                records=[
                    record_factory(
                        "google",
                        "https://github.com/asmith",
                        name="Alice Smith",
                        github_username="asmith",
                        email="alice.smith@gmail.com",
                    )
                ],
            ),
        }
        result = SearchPipeline(settings, sources=sources).run(_criteria(["github", "google"], skills=["python"]))

        assert not result.degraded
        assert result.errors == []
        assert len(result.candidates) == 1
        candidate = result.candidates[0]
        assert candidate.platforms == ["github", "google"]
        assert candidate.followers == 90
        assert candidate.score is not None
        assert candidate.score.skill_match == 100
        assert candidate.email_confidence.level == "high"
        metrics = result.deduplication_metrics
        assert (metrics.original_count, metrics.deduplicated_count, metrics.duplicates_removed) == (2, 1, 1)

    def test_partial_failure_keeps_results(self, settings, fake_source, record_factory):
        sources = {
            "github": fake_source(settings, "github", records=[record_factory("github", "a", name="Ann")]),
            "linkedin": fake_source(settings, "linkedin", enabled=False),
        }
        result = SearchPipeline(settings, sources=sources).run(_criteria(["github", "linkedin", "myspace"]))
        assert len(result.candidates) == 1
        assert set(result.results) == {"github", "linkedin", "myspace"}
        assert {e["source"] for e in result.errors} == {"linkedin", "myspace"}
        assert result.performance_metrics["success_rate"] == round(1 / 3, 4)

    def test_limit_truncates_ranked_candidates(self, settings, fake_source, record_factory):
        records = [record_factory("github", f"user{i}", followers=i * 10) for i in range(5)]
        sources = {"github": fake_source(settings, "github", records=records)}
        result = SearchPipeline(settings, sources=sources).run(_criteria(["github"], limit=2))
        assert [c.id for c in result.candidates] == ["github:user4", "github:user3"]

    def test_payload_is_json(self, settings, fake_source, record_factory):
        sources = {"github": fake_source(settings, "github", records=[record_factory("github", "a")])}
        stages = []
        result = SearchPipeline(settings, sources=sources).run(
            _criteria(["github"]),
            on_progress=lambda stage, msg: stages.append(stage),
        )
        payload = json.loads(json.dumps(result.to_payload()))
        assert payload["query"] == "python developer"
        assert payload["results"]["github"]["records"][0]["platform_id"] == "a"
        assert stages[0] == "start"
        assert {"collect", "dedupe", "score"} <= set(stages)
        assert stages[-1] == "assemble"
