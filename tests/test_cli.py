"""Tests for the click command line interface."""

import json
import logging
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from talentscout.cli.main import cli
from talentscout.core.models import (
    CanonicalProfile,
    ScoreBreakdown,
    SearchResult,
    SourceOutcome,
    SourceReference,
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("GITHUB_TOKEN", "STACKEXCHANGE_KEY", "GOOGLE_API_KEY", "GOOGLE_CSE_ID", "APIFY_TOKEN"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def restore_logging():
    # The CLI reconfigures the root logger
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def canned_result():
    profile = CanonicalProfile(
        id="github:asmith",
        name="Alice Smith",
        location="Berlin",
        sources=[SourceReference(platform="github", platform_id="asmith")],
        score=ScoreBreakdown(final_score=81.5),
    )
    return SearchResult(
        query="python developer",
        timestamp=datetime(2026, 10, 1, tzinfo=timezone.utc),
        candidates=[profile],
        results={"github": SourceOutcome(elapsed_ms=420), "linkedin": SourceOutcome(error="timeout")},
        errors=[{"source": "linkedin", "error": "timeout"}],
    )


class TestSourcesCommand:
    def test_lists_registered_sources(self, runner, tmp_path):
        result = runner.invoke(cli, ["--base-dir", str(tmp_path), "sources"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert any(line.startswith("* github") and line.endswith("enabled") for line in lines)
        assert any("google" in line and "not configured" in line for line in lines)
        assert any(line.startswith("  devto") for line in lines)

    def test_invalid_config(self, runner, tmp_path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("- nope\n", encoding="utf-8")
        result = runner.invoke(cli, ["--base-dir", str(tmp_path), "sources"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestSearchCommand:
    def test_empty_query_is_usage_error(self, runner, tmp_path):
        result = runner.invoke(cli, ["--base-dir", str(tmp_path), "search", "   "])
        assert result.exit_code == 2

    def test_writes_payload_and_saves(self, runner, tmp_path, canned_result):
        output = tmp_path / "out" / "result.json"
        with patch("talentscout.cli.main.SearchPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = canned_result
            result = runner.invoke(
                cli,
                [
                    "--base-dir", str(tmp_path),
                    "search", "python developer",
                    "-s", "python",
                    "--source", "github",
                    "--source", "linkedin",
                    "--budget", "10",
                    "-o", str(output),
                    "--save",
                ],
            )

        assert result.exit_code == 0, result.output
        criteria = pipeline_cls.return_value.run.call_args.args[0]
        assert criteria.sources == ["github", "linkedin"]
        assert criteria.skills == ["python"]
        assert criteria.time_budget == 10

        assert "Alice Smith" in result.output
        assert "error: timeout" in result.output
        assert "Payload written to" in result.output
        assert json.loads(output.read_text(encoding="utf-8"))["candidates"][0]["id"] == "github:asmith"
        assert "Saved candidates: 1 new, 0 updated" in result.output
        assert (tmp_path / "data" / "candidates.sqlite").exists()

    def test_no_candidates(self, runner, tmp_path):
        empty = SearchResult(
            query="x",
            timestamp=datetime(2026, 10, 1, tzinfo=timezone.utc),
            results={"github": SourceOutcome(error="timeout")},
            degraded=True,
        )
        with patch("talentscout.cli.main.SearchPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = empty
            result = runner.invoke(cli, ["--base-dir", str(tmp_path), "search", "x"])
        assert result.exit_code == 0
        assert "No candidates found" in result.output
